"""Agent runtime — lifecycle and scheduler shared by every scheduled agent.

Each agent owns one asyncio task running a polling loop:

1. stop if the running flag was cleared;
2. run the agent task when ``now >= next_run``, then set
   ``last_run = now`` and ``next_run = now + frequency``;
3. drain the agent's inbox from the bus, one handler call per message,
   stopping early if the agent is stopped mid-batch;
4. sleep ``poll_interval_seconds``.

A failing task is logged and followed by ``error_backoff_seconds`` of
sleep; a failing message handler only affects that message.  Time comes
from an injectable ``Clock`` so tests can drive the loop on virtual time.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC
from abc import abstractmethod
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any
from typing import Protocol
from typing import TYPE_CHECKING

from carepilot.config import SchedulerConfig
from carepilot.models.messages import AgentConfig
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import AgentStatus
from carepilot.models.messages import MessagePriority
from carepilot.observability import record_latency

if TYPE_CHECKING:
    from carepilot.agents.bus import MessageBus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class Clock(Protocol):
    """Time source used by the scheduler."""

    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall-clock time and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


# ---------------------------------------------------------------------------
# BaseAgent
# ---------------------------------------------------------------------------


class BaseAgent(ABC):
    """Foundation for autonomous, independently scheduled agents.

    Subclasses implement ``execute_task`` (compute), ``apply_result``
    (commit) and ``handle_message``.  The split lets the runtime discard
    a result whose computation finished after ``stop()`` was called.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        bus: MessageBus,
        clock: Clock | None = None,
        scheduler_config: SchedulerConfig | None = None,
    ) -> None:
        self._config = config
        self._bus = bus
        self._clock = clock or SystemClock()
        self._scheduler = scheduler_config or SchedulerConfig()

        self._running = False
        self._stopped = False
        self._generation = 0
        self._sleeping = False
        self._loop_task: asyncio.Task[None] | None = None

        self._last_run: datetime | None = None
        self._next_run: datetime | None = None
        self._total_cost = 0.0
        self._run_count = 0

    # -- identity --

    @property
    def id(self) -> str:
        return self._config.id

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def frequency(self) -> timedelta:
        return timedelta(seconds=self._config.frequency_seconds)

    @property
    def is_running(self) -> bool:
        return self._running

    # -- agent-specific hooks --

    @abstractmethod
    async def execute_task(self) -> Any:
        """Compute one run's result.  Must not mutate shared state."""

    async def apply_result(self, result: Any) -> None:
        """Commit a computed result (store it, send messages)."""
        del result

    @abstractmethod
    async def handle_message(self, message: AgentMessage) -> None:
        """React to one inbound message."""

    # -- lifecycle --

    async def start(self) -> None:
        """Run the first task immediately, then start the polling loop."""
        if self._running:
            logger.info("%s: already running", self.name)
            return
        if not self._config.is_active:
            logger.info("%s: inactive, not starting", self.name)
            return

        logger.info("%s: starting autonomous operation", self.name)
        self._running = True
        self._stopped = False
        now = self._clock.now()
        self._last_run = now
        self._next_run = now + self.frequency

        try:
            await self._execute()
        except Exception:
            logger.exception("%s: initial run failed", self.name)

        if self._running:
            self._loop_task = asyncio.create_task(self._loop(), name=f"agent:{self.id}")

    def stop(self) -> None:
        """Prevent future runs and message draining.

        A sleeping loop is cancelled right away; a loop in the middle of
        a task finishes that task, discards its result and exits.
        """
        if not self._running:
            return
        logger.info("%s: stopping autonomous operation", self.name)
        self._running = False
        self._stopped = True
        self._generation += 1
        if self._loop_task is not None and self._sleeping:
            self._loop_task.cancel()

    async def join(self) -> None:
        """Wait for the loop task to exit after ``stop()``."""
        task = self._loop_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            self._loop_task = None

    async def run_now(self) -> None:
        """Force one task run outside the cadence (e.g. from a handler).

        An agent that was never started can still be run on demand; once
        ``stop()`` has been called this is a no-op until the next ``start()``.
        """
        if self._stopped:
            logger.info("%s: stopped, skipping on-demand run", self.name)
            return
        await self._execute()

    # -- loop --

    async def run_cycle(self) -> None:
        """One loop iteration: maybe run the task, then drain the inbox."""
        if not self._running:
            return
        now = self._clock.now()
        if self._next_run is not None and now >= self._next_run:
            await self._execute()
        if not self._running:
            return
        await self._drain_messages()

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_cycle()
                if not self._running:
                    break
                await self._sleep(self._scheduler.poll_interval_seconds)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s: error in autonomous loop", self.name)
                if not self._running:
                    break
                await self._sleep(self._scheduler.error_backoff_seconds)
        logger.info("%s: loop exited", self.name)

    async def _sleep(self, seconds: float) -> None:
        self._sleeping = True
        try:
            await self._clock.sleep(seconds)
        finally:
            self._sleeping = False

    async def _execute(self) -> None:
        generation = self._generation
        start = self._clock.now()
        ok = False
        try:
            result = await self.execute_task()
            ok = True
        finally:
            elapsed = (self._clock.now() - start).total_seconds() * 1000
            record_latency(operation=f"agent.{self.id}", duration_ms=elapsed, ok=ok)

        if generation != self._generation:
            logger.info("%s: stopped during run, discarding result", self.name)
            return

        await self.apply_result(result)
        self.record_run()
        now = self._clock.now()
        self._last_run = now
        self._next_run = now + self.frequency

    async def _drain_messages(self) -> None:
        # One message at a time so a stop mid-batch leaves the rest queued.
        for _ in range(self._bus.pending(self.id)):
            if not self._running:
                break
            message = self._bus.receive_next(self.id)
            if message is None:
                break
            try:
                await self.handle_message(message)
            except Exception:
                logger.exception(
                    "%s: error handling message %s (%s)",
                    self.name,
                    message.id,
                    message.type,
                )

    # -- bookkeeping --

    def record_run(self) -> None:
        self._run_count += 1
        self._total_cost += self._config.cost_per_run
        logger.info(
            "%s: run %d cost $%.4f (total $%.4f)",
            self.name,
            self._run_count,
            self._config.cost_per_run,
            self._total_cost,
        )

    def set_frequency(self, seconds: float) -> None:
        """Change this agent's cadence, keeping ``next_run = last_run + frequency``."""
        if seconds <= 0:
            raise ValueError("frequency must be positive")
        if seconds == self._config.frequency_seconds:
            return
        logger.info(
            "%s: cadence %.0fs -> %.0fs",
            self.name,
            self._config.frequency_seconds,
            seconds,
        )
        self._config = self._config.model_copy(update={"frequency_seconds": seconds})
        if self._last_run is not None:
            self._next_run = self._last_run + self.frequency

    async def send_message(
        self,
        to: str,
        type: str,
        data: dict[str, Any] | None = None,
        priority: MessagePriority = MessagePriority.medium,
    ) -> None:
        """Hand a message to the bus for *to*."""
        self._bus.send(
            AgentMessage(
                sender=self.id,
                to=to,
                type=type,
                data=data or {},
                timestamp=self._clock.now(),
                priority=priority,
            )
        )

    def status(self) -> AgentStatus:
        """Read-only snapshot of this agent's counters."""
        return AgentStatus(
            id=self.id,
            name=self.name,
            is_running=self._running,
            last_run=self._last_run,
            next_run=self._next_run,
            total_cost=round(self._total_cost, 6),
            run_count=self._run_count,
        )
