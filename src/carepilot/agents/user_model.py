"""User model agent — passively learns logging and response behavior.

No inference calls.  The learned profile is published to the follow-up
agent as a ``behavior_patterns_updated`` message so it can tune its
cadence.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from datetime import datetime
from datetime import timedelta
from enum import Enum
from statistics import median
from typing import TYPE_CHECKING

from pydantic import BaseModel
from pydantic import Field

from carepilot.agents.memory import HealthMemoryAgent
from carepilot.agents.runtime import BaseAgent
from carepilot.agents.runtime import Clock
from carepilot.config import AgentCadenceConfig
from carepilot.config import SchedulerConfig
from carepilot.models.messages import AgentConfig
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import FOLLOW_UP_AGENT_ID
from carepilot.models.messages import MessageType
from carepilot.models.messages import USER_MODEL_AGENT_ID
from carepilot.models.symptoms import Severity
from carepilot.models.symptoms import SymptomObservation
from carepilot.stores.base import SymptomLogStore

if TYPE_CHECKING:
    from carepilot.agents.bus import MessageBus

logger = logging.getLogger(__name__)

LOGGING_WINDOW_DAYS = 30
LOW_LOGGING_RATIO = 0.2
HIGH_LOGGING_RATIO = 0.6
RELEARN_AFTER = timedelta(days=3)
# Follow-up response latencies kept for the median.
RESPONSE_WINDOW = 20


class LoggingFrequency(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class ResponseTime(str, Enum):
    immediate = "immediate"
    delayed = "delayed"
    never = "never"
    unknown = "unknown"


class BehaviorProfile(BaseModel):
    """What the agent has learned about the user."""

    logging_frequency: LoggingFrequency = LoggingFrequency.medium
    logging_ratio: float = Field(
        default=0.0,
        description="Share of the last 30 days with at least one log.",
    )
    response_time: ResponseTime = ResponseTime.unknown
    dominant_severity: Severity = Severity.mild
    common_symptoms: list[str] = Field(default_factory=list)
    updated_at: datetime


def classify_logging(ratio: float) -> LoggingFrequency:
    if ratio < LOW_LOGGING_RATIO:
        return LoggingFrequency.low
    if ratio > HIGH_LOGGING_RATIO:
        return LoggingFrequency.high
    return LoggingFrequency.medium


def classify_response(latencies: Sequence[timedelta], *, unanswered: bool = False) -> ResponseTime:
    """Median follow-up response latency: <1 h immediate, <24 h delayed, else never."""
    if not latencies:
        return ResponseTime.never if unanswered else ResponseTime.unknown
    typical = median(latencies)
    if typical < timedelta(hours=1):
        return ResponseTime.immediate
    if typical < timedelta(hours=24):
        return ResponseTime.delayed
    return ResponseTime.never


class UserModelAgent(BaseAgent):
    """Scheduled learner, weekly by default."""

    def __init__(
        self,
        *,
        symptom_store: SymptomLogStore,
        bus: MessageBus,
        clock: Clock | None = None,
        scheduler_config: SchedulerConfig | None = None,
        cadence: AgentCadenceConfig | None = None,
        memory: HealthMemoryAgent | None = None,
    ) -> None:
        cadence = cadence or AgentCadenceConfig()
        super().__init__(
            AgentConfig(
                id=USER_MODEL_AGENT_ID,
                name="User Model Agent",
                description="Learns logging frequency and follow-up response behavior",
                frequency_seconds=cadence.user_model_frequency_seconds,
                cost_per_run=cadence.user_model_cost_per_run,
            ),
            bus=bus,
            clock=clock,
            scheduler_config=scheduler_config,
        )
        self._symptom_store = symptom_store
        self._memory = memory or HealthMemoryAgent()
        self._profile: BehaviorProfile | None = None
        self._latencies: deque[timedelta] = deque(maxlen=RESPONSE_WINDOW)
        self._awaiting_since: datetime | None = None

    @property
    def profile(self) -> BehaviorProfile | None:
        return self._profile

    def learn(self, observations: Sequence[SymptomObservation], now: datetime) -> BehaviorProfile:
        window_start = now - timedelta(days=LOGGING_WINDOW_DAYS)
        days_with_logs = {o.timestamp.date() for o in observations if o.timestamp >= window_start}
        ratio = round(len(days_with_logs) / LOGGING_WINDOW_DAYS, 3)

        unanswered = self._awaiting_since is not None and now - self._awaiting_since >= timedelta(hours=24)
        context = self._memory.analyze(observations)
        return BehaviorProfile(
            logging_frequency=classify_logging(ratio),
            logging_ratio=ratio,
            response_time=classify_response(self._latencies, unanswered=unanswered),
            dominant_severity=context.trends.severity,
            common_symptoms=[p.symptom for p in context.patterns[:3]],
            updated_at=now,
        )

    async def execute_task(self) -> BehaviorProfile:
        observations = await self._symptom_store.list_all()
        return self.learn(observations, self._clock.now())

    async def apply_result(self, result: BehaviorProfile) -> None:
        self._profile = result
        logger.info(
            "Learned behavior: logging=%s (%.2f), response=%s",
            result.logging_frequency.value,
            result.logging_ratio,
            result.response_time.value,
        )
        await self.send_message(
            FOLLOW_UP_AGENT_ID,
            MessageType.behavior_patterns_updated.value,
            result.model_dump(mode="json"),
        )

    async def handle_message(self, message: AgentMessage) -> None:
        if message.type == MessageType.follow_up_sent:
            if self._awaiting_since is None:
                self._awaiting_since = message.timestamp
        elif message.type == MessageType.symptom_log_added:
            if self._awaiting_since is not None:
                self._latencies.append(message.timestamp - self._awaiting_since)
                self._awaiting_since = None
            if self._profile is None or self._clock.now() - self._profile.updated_at > RELEARN_AFTER:
                logger.info("%s: relearning early after new log", self.name)
                await self.run_now()
        else:
            logger.debug("%s: ignoring message type %s", self.name, message.type)
