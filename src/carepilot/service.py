"""Autonomous health service — the single entry point for the primary path.

Wires the gateway, message bus and agents together.  The primary path
runs inline in the caller's task; the follow-up and user-model agents
run on their own cadence once ``start()`` is called and hear about new
logs through the bus.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from time import perf_counter

from carepilot.agents.analyzer import SymptomAnalyzer
from carepilot.agents.analyzer import TranscriptSource
from carepilot.agents.bus import MessageBus
from carepilot.agents.coordinator import ActionCoordinatorAgent
from carepilot.agents.coordinator import StrategyContext
from carepilot.agents.decision import DecisionContext
from carepilot.agents.decision import DecisionEngineAgent
from carepilot.agents.follow_up import FollowUpAgent
from carepilot.agents.memory import HealthMemoryAgent
from carepilot.agents.runtime import Clock
from carepilot.agents.runtime import SystemClock
from carepilot.agents.user_model import UserModelAgent
from carepilot.config import AgentCadenceConfig
from carepilot.config import FollowUpConfig
from carepilot.config import SchedulerConfig
from carepilot.inference.gateway import InferenceGateway
from carepilot.models.decisions import AutonomousHealthResponse
from carepilot.models.decisions import MissingUpdate
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import AgentStatus
from carepilot.models.messages import FOLLOW_UP_AGENT_ID
from carepilot.models.messages import MessageType
from carepilot.models.messages import SystemStatus
from carepilot.models.messages import USER_MODEL_AGENT_ID
from carepilot.models.recommendations import Recommendation
from carepilot.models.symptoms import SymptomObservation
from carepilot.observability import record_latency
from carepilot.stores.base import RecommendationStore
from carepilot.stores.base import SymptomLogStore
from carepilot.stores.memory import InMemoryRecommendationStore
from carepilot.stores.memory import InMemorySymptomLogStore

logger = logging.getLogger(__name__)

PIPELINE_SENDER = "health-pipeline"


class AutonomousHealthService:
    """Facade over the decision pipeline and the scheduled agents."""

    def __init__(
        self,
        gateway: InferenceGateway,
        *,
        symptom_store: SymptomLogStore | None = None,
        recommendation_store: RecommendationStore | None = None,
        clock: Clock | None = None,
        scheduler_config: SchedulerConfig | None = None,
        cadence: AgentCadenceConfig | None = None,
        follow_up_config: FollowUpConfig | None = None,
    ) -> None:
        scheduler_config = scheduler_config or SchedulerConfig()
        self._clock = clock or SystemClock()
        self.symptom_store = symptom_store or InMemorySymptomLogStore()
        self.recommendation_store = recommendation_store or InMemoryRecommendationStore()

        self.bus = MessageBus(max_pending_messages=scheduler_config.max_pending_messages)
        self.analyzer = SymptomAnalyzer(gateway)
        self.memory = HealthMemoryAgent()
        self.decision_engine = DecisionEngineAgent(gateway)
        self.coordinator = ActionCoordinatorAgent(gateway)

        self.follow_up = FollowUpAgent(
            coordinator=self.coordinator,
            symptom_store=self.symptom_store,
            recommendation_store=self.recommendation_store,
            bus=self.bus,
            clock=self._clock,
            scheduler_config=scheduler_config,
            cadence=cadence,
            follow_up_config=follow_up_config,
            memory=self.memory,
        )
        self.user_model = UserModelAgent(
            symptom_store=self.symptom_store,
            bus=self.bus,
            clock=self._clock,
            scheduler_config=scheduler_config,
            cadence=cadence,
            memory=self.memory,
        )
        self.bus.register(self.follow_up)
        self.bus.register(self.user_model)

    # -- lifecycle --

    async def start(self) -> None:
        await self.bus.start_all()

    async def stop(self) -> None:
        await self.bus.stop_all()

    # -- primary path --

    async def process_symptom_autonomously(
        self,
        transcript_source: TranscriptSource,
        all_symptoms: Sequence[SymptomObservation],
        existing_recommendations: Sequence[Recommendation],
    ) -> AutonomousHealthResponse:
        """Recording to decision, recommendations and strategy.

        Inference failures degrade to fallbacks and never raise; only a
        failed audio transcription propagates.
        """
        start = perf_counter()
        ok = False
        try:
            observation = await self.analyzer.observe(transcript_source, timestamp=self._clock.now())
            history = [*all_symptoms, observation]
            memory_context = self.memory.analyze(history)

            decision = await self.decision_engine.make_health_decision(
                DecisionContext(
                    user_input=observation.transcript,
                    current_symptoms=(observation,),
                    existing_recommendations=tuple(existing_recommendations),
                    memory_context=memory_context,
                )
            )

            if decision.is_monitoring:
                recommendations: list[Recommendation] = []
            else:
                recommendations = self.coordinator.create_recommendations(
                    decision,
                    existing_recommendations,
                    health_domain=observation.health_domain,
                    triggering_symptoms=[observation.summary] if observation.summary else [],
                )

            strategy = await self.coordinator.create_health_strategy(
                StrategyContext(
                    decision=decision,
                    user_input=observation.transcript,
                    current_symptoms=(observation,),
                )
            )

            self._notify_log_added(observation)
            logger.info(
                "Processed observation %s: %s (priority=%s), %d new recommendation(s)",
                observation.id,
                decision.primary_action,
                decision.priority.value,
                len(recommendations),
            )
            ok = True
            return AutonomousHealthResponse(
                observation=observation,
                memory_context=memory_context,
                decision=decision,
                strategy=strategy,
                recommendations=recommendations,
            )
        finally:
            record_latency(
                operation="pipeline.process_symptom",
                duration_ms=(perf_counter() - start) * 1000,
                ok=ok,
            )

    def _notify_log_added(self, observation: SymptomObservation) -> None:
        for recipient in (FOLLOW_UP_AGENT_ID, USER_MODEL_AGENT_ID):
            self.bus.send(
                AgentMessage(
                    sender=PIPELINE_SENDER,
                    to=recipient,
                    type=MessageType.symptom_log_added.value,
                    data={
                        "observation_id": observation.id,
                        "severity": observation.severity.value,
                    },
                    timestamp=observation.timestamp,
                )
            )

    # -- secondary paths --

    async def create_appointment_questions(
        self,
        title: str,
        symptoms: Sequence[SymptomObservation],
    ) -> list[str]:
        return await self.coordinator.create_appointment_questions(title, symptoms)

    async def create_follow_up_questions(self, missing_updates: Sequence[MissingUpdate]) -> list[str]:
        return await self.coordinator.create_follow_up_questions(missing_updates)

    # -- introspection --

    def agent_statuses(self) -> list[AgentStatus]:
        return self.bus.statuses()

    def system_status(self) -> SystemStatus:
        return self.bus.system_status()
