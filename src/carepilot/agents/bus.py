"""In-process message routing between named agents.

Delivery is FIFO per recipient and at-least-once within a running
process.  Nothing is persisted: undelivered messages are lost on
restart.  ``send`` and ``receive`` hold a lock so concurrent senders
(including worker threads) never corrupt a queue.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from itertools import count

from carepilot.agents.runtime import BaseAgent
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import AgentStatus
from carepilot.models.messages import SystemStatus

logger = logging.getLogger(__name__)


class MessageBus:
    """Per-recipient mailboxes plus the agent registry.

    The total number of queued messages is capped; when full, the oldest
    message across all mailboxes is dropped.
    """

    def __init__(self, *, max_pending_messages: int = 1000) -> None:
        if max_pending_messages < 1:
            raise ValueError("max_pending_messages must be >= 1")
        self._max_pending = max_pending_messages
        self._lock = threading.Lock()
        self._queues: dict[str, deque[tuple[int, AgentMessage]]] = {}
        self._seq = count()
        self._total = 0
        self._agents: dict[str, BaseAgent] = {}
        self._initialized = False

    # -- registry --

    def register(self, agent: BaseAgent) -> None:
        if agent.id in self._agents:
            raise ValueError(f"Agent '{agent.id}' is already registered")
        self._agents[agent.id] = agent
        logger.debug("Registered agent %s", agent.id)

    def get(self, agent_id: str) -> BaseAgent | None:
        return self._agents.get(agent_id)

    @property
    def agents(self) -> list[BaseAgent]:
        return list(self._agents.values())

    # -- messaging --

    def send(self, message: AgentMessage) -> None:
        """Enqueue *message* for ``message.to``."""
        with self._lock:
            queue = self._queues.setdefault(message.to, deque())
            queue.append((next(self._seq), message))
            self._total += 1
            if self._total > self._max_pending:
                self._drop_oldest()
        if message.to not in self._agents:
            logger.debug("Queued message %s for unregistered agent %s", message.type, message.to)

    def receive_next(self, agent_id: str) -> AgentMessage | None:
        """Pop the oldest message queued for *agent_id*, or ``None``."""
        with self._lock:
            queue = self._queues.get(agent_id)
            if not queue:
                return None
            _, message = queue.popleft()
            if not queue:
                del self._queues[agent_id]
            self._total -= 1
            return message

    def receive(self, agent_id: str) -> list[AgentMessage]:
        """Return and clear every message queued for *agent_id*."""
        with self._lock:
            queue = self._queues.pop(agent_id, None)
            if not queue:
                return []
            self._total -= len(queue)
            return [message for _, message in queue]

    def pending(self, agent_id: str | None = None) -> int:
        with self._lock:
            if agent_id is None:
                return self._total
            return len(self._queues.get(agent_id, ()))

    def _drop_oldest(self) -> None:
        oldest_key: str | None = None
        oldest_seq = -1
        for key, queue in self._queues.items():
            if queue and (oldest_key is None or queue[0][0] < oldest_seq):
                oldest_key, oldest_seq = key, queue[0][0]
        if oldest_key is None:
            return
        _, dropped = self._queues[oldest_key].popleft()
        if not self._queues[oldest_key]:
            del self._queues[oldest_key]
        self._total -= 1
        logger.warning(
            "Message queue full (%d), dropped %s -> %s (%s)",
            self._max_pending,
            dropped.sender,
            dropped.to,
            dropped.type,
        )

    # -- lifecycle --

    async def start_all(self) -> None:
        """Start every registered agent; one failing agent does not block the rest."""
        for agent in self._agents.values():
            try:
                await agent.start()
            except Exception:
                logger.exception("Failed to start agent %s", agent.id)
        self._initialized = True
        logger.info("Started %d agents", len(self._agents))

    async def stop_all(self) -> None:
        for agent in self._agents.values():
            try:
                agent.stop()
            except Exception:
                logger.exception("Failed to stop agent %s", agent.id)
        for agent in self._agents.values():
            await agent.join()
        self._initialized = False
        logger.info("Stopped all agents")

    # -- introspection --

    def statuses(self) -> list[AgentStatus]:
        return [agent.status() for agent in self._agents.values()]

    def system_status(self) -> SystemStatus:
        statuses = self.statuses()
        return SystemStatus(
            total_agents=len(statuses),
            running_agents=sum(1 for s in statuses if s.is_running),
            total_cost=round(sum(s.total_cost for s in statuses), 6),
            pending_messages=self.pending(),
            is_initialized=self._initialized,
        )
