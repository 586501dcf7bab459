"""Follow-up agent — periodic check for things the user has not reported on.

Every run looks for three kinds of missing update:

- no symptom log for ``missed_log_days``;
- an open recommendation older than ``overdue_recommendation_days``;
- a worsening trend over the last ``pattern_window_days``.

Each one becomes a conversational question through the action
coordinator.  Questions wait in ``pending_questions()`` until the caller
takes them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from typing import TYPE_CHECKING

from carepilot.agents.coordinator import ActionCoordinatorAgent
from carepilot.agents.memory import HealthMemoryAgent
from carepilot.agents.runtime import BaseAgent
from carepilot.agents.runtime import Clock
from carepilot.config import AgentCadenceConfig
from carepilot.config import FollowUpConfig
from carepilot.config import SchedulerConfig
from carepilot.models.decisions import MissingUpdate
from carepilot.models.decisions import MissingUpdateType
from carepilot.models.messages import AgentConfig
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import FOLLOW_UP_AGENT_ID
from carepilot.models.messages import MessageType
from carepilot.models.messages import USER_MODEL_AGENT_ID
from carepilot.models.recommendations import Recommendation
from carepilot.models.recommendations import RecommendationPriority
from carepilot.models.recommendations import RiskLevel
from carepilot.models.symptoms import SymptomObservation
from carepilot.models.symptoms import TrendDirection
from carepilot.stores.base import RecommendationStore
from carepilot.stores.base import SymptomLogStore

if TYPE_CHECKING:
    from carepilot.agents.bus import MessageBus

logger = logging.getLogger(__name__)

_RISK_BY_PRIORITY = {
    RecommendationPriority.HIGH: RiskLevel.high,
    RecommendationPriority.MEDIUM: RiskLevel.medium,
    RecommendationPriority.LOW: RiskLevel.low,
}


@dataclass(frozen=True)
class FollowUpResult:
    updates: list[MissingUpdate]
    questions: list[str]


class FollowUpAgent(BaseAgent):
    """Scheduled follow-up checker, every six hours by default."""

    def __init__(
        self,
        *,
        coordinator: ActionCoordinatorAgent,
        symptom_store: SymptomLogStore,
        recommendation_store: RecommendationStore,
        bus: MessageBus,
        clock: Clock | None = None,
        scheduler_config: SchedulerConfig | None = None,
        cadence: AgentCadenceConfig | None = None,
        follow_up_config: FollowUpConfig | None = None,
        memory: HealthMemoryAgent | None = None,
    ) -> None:
        self._cadence = cadence or AgentCadenceConfig()
        super().__init__(
            AgentConfig(
                id=FOLLOW_UP_AGENT_ID,
                name="Follow-up Agent",
                description="Asks about missed logs, overdue recommendations and pattern changes",
                frequency_seconds=self._cadence.follow_up_frequency_seconds,
                cost_per_run=self._cadence.follow_up_cost_per_run,
            ),
            bus=bus,
            clock=clock,
            scheduler_config=scheduler_config,
        )
        self._coordinator = coordinator
        self._symptom_store = symptom_store
        self._recommendation_store = recommendation_store
        self._settings = follow_up_config or FollowUpConfig()
        self._memory = memory or HealthMemoryAgent()
        self._last_log_at: datetime | None = None
        self._pending: list[str] = []

    # -- questions --

    def pending_questions(self) -> list[str]:
        return list(self._pending)

    def take_questions(self) -> list[str]:
        """Return and clear the pending questions."""
        questions, self._pending = self._pending, []
        return questions

    # -- detection --

    def detect_missing_updates(
        self,
        observations: Sequence[SymptomObservation],
        recommendations: Sequence[Recommendation],
        now: datetime,
    ) -> list[MissingUpdate]:
        updates: list[MissingUpdate] = []

        last_log = max((o.timestamp for o in observations), default=None)
        if self._last_log_at is not None and (last_log is None or self._last_log_at > last_log):
            last_log = self._last_log_at
        if last_log is not None:
            gap = now - last_log
            if gap >= timedelta(days=self._settings.missed_log_days):
                updates.append(
                    MissingUpdate(
                        type=MissingUpdateType.missing_update,
                        description=f"No health log for {gap.days} days",
                        priority=RiskLevel.medium,
                    )
                )

        overdue_after = timedelta(days=self._settings.overdue_recommendation_days)
        for rec in recommendations:
            if rec.is_open() and now - rec.created_at >= overdue_after:
                updates.append(
                    MissingUpdate(
                        type=MissingUpdateType.overdue_recommendation,
                        description=f"Recommendation '{rec.title}' still open after "
                        f"{(now - rec.created_at).days} days",
                        priority=_RISK_BY_PRIORITY[rec.priority],
                    )
                )

        window_start = now - timedelta(days=self._settings.pattern_window_days)
        recent = [o for o in observations if o.timestamp >= window_start]
        context = self._memory.analyze(recent)
        if context.trends.overall == TrendDirection.worsening:
            concerns = [p.symptom for p in context.patterns if p.trend == TrendDirection.worsening]
            subject = ", ".join(concerns) if concerns else "recent symptoms"
            updates.append(
                MissingUpdate(
                    type=MissingUpdateType.pattern_change,
                    description=f"Worsening pattern in {subject}",
                    priority=RiskLevel.high,
                )
            )
        return updates

    # -- task --

    async def execute_task(self) -> FollowUpResult:
        observations = await self._symptom_store.list_all()
        recommendations = await self._recommendation_store.list_all()
        updates = self.detect_missing_updates(observations, recommendations, self._clock.now())
        if not updates:
            logger.info("%s: nothing to follow up on", self.name)
            return FollowUpResult(updates=[], questions=[])
        questions = await self._coordinator.create_follow_up_questions(updates)
        return FollowUpResult(updates=updates, questions=questions)

    async def apply_result(self, result: FollowUpResult) -> None:
        new = [q for q in result.questions if q not in self._pending]
        if not new:
            return
        self._pending.extend(new)
        logger.info("%s: %d new follow-up question(s)", self.name, len(new))
        await self.send_message(
            USER_MODEL_AGENT_ID,
            MessageType.follow_up_sent.value,
            {
                "questions": new,
                "update_types": [u.type.value for u in result.updates],
            },
        )

    async def check_now(self) -> list[str]:
        """Run a follow-up check immediately and return the pending questions."""
        await self.run_now()
        return self.pending_questions()

    # -- messages --

    async def handle_message(self, message: AgentMessage) -> None:
        if message.type == MessageType.symptom_log_added:
            if self._last_log_at is None or message.timestamp > self._last_log_at:
                self._last_log_at = message.timestamp
        elif message.type == MessageType.behavior_patterns_updated:
            self._tune_cadence(message.data.get("logging_frequency"))
        else:
            logger.debug("%s: ignoring message type %s", self.name, message.type)

    def _tune_cadence(self, logging_frequency: str | None) -> None:
        if logging_frequency == "high":
            seconds = self._cadence.follow_up_frequency_high_logging_seconds
        elif logging_frequency == "low":
            seconds = self._cadence.follow_up_frequency_low_logging_seconds
        else:
            seconds = self._cadence.follow_up_frequency_seconds
        self.set_frequency(seconds)
