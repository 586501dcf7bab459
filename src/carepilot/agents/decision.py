"""Decision engine agent — one prioritized, conflict-resolved decision.

Pipeline, strictly sequential:

1. situation analysis (one inference call);
2. conflict identification (skipped below two existing recommendations);
3. action-needed gate (pure logic);
4. monitoring decision when no action is needed (terminal);
5. decision synthesis (one inference call);
6. conflict resolution (one call, only when conflicts were found).

``make_health_decision`` never raises.  Unparsable output from a step
falls back to that step's default; any other failure falls back to the
conservative decision.  A fallback decision has the same shape as a
reasoned one and is only distinguishable by its generic wording.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from time import perf_counter

from carepilot.agents import prompts
from carepilot.agents.schemas import Conflict
from carepilot.agents.schemas import DecisionDraft
from carepilot.agents.schemas import SituationAnalysis
from carepilot.inference.errors import InvalidResponse
from carepilot.inference.gateway import InferenceGateway
from carepilot.inference.parsing import parse_model
from carepilot.inference.parsing import parse_model_list
from carepilot.inference.parsing import parse_string_list
from carepilot.models.decisions import Decision
from carepilot.models.decisions import DecisionPriority
from carepilot.models.decisions import RiskAssessment
from carepilot.models.recommendations import Recommendation
from carepilot.models.recommendations import RiskLevel
from carepilot.models.symptoms import MemoryContext
from carepilot.models.symptoms import SymptomObservation
from carepilot.observability import record_latency

logger = logging.getLogger(__name__)

MONITORING_ACTION = "Continue monitoring"

_ELEVATED = {DecisionPriority.urgent, DecisionPriority.high}
_PRIORITY_RANK = {
    DecisionPriority.low: 0,
    DecisionPriority.medium: 1,
    DecisionPriority.high: 2,
    DecisionPriority.urgent: 3,
}


@dataclass(frozen=True)
class DecisionContext:
    """Everything one decision is made from."""

    user_input: str
    current_symptoms: Sequence[SymptomObservation] = field(default_factory=tuple)
    existing_recommendations: Sequence[Recommendation] = field(default_factory=tuple)
    memory_context: MemoryContext = field(default_factory=MemoryContext.empty)


# ---------------------------------------------------------------------------
# Named defaults
# ---------------------------------------------------------------------------


def default_situation() -> SituationAnalysis:
    return SituationAnalysis()


def default_draft() -> DecisionDraft:
    return DecisionDraft(
        primary_action="Monitor symptoms",
        priority=DecisionPriority.medium,
        reasoning="Based on current symptoms",
        timeline="Within 24 hours",
    )


def monitoring_decision() -> Decision:
    """Returned when the action-needed gate is false."""
    return Decision(
        primary_action="Continue monitoring current health patterns",
        priority=DecisionPriority.low,
        reasoning="No new action required at this time - current patterns are stable",
        conflicts=[],
        resolved_actions=[MONITORING_ACTION],
        timeline="Continue current routine",
        risk_assessment=RiskAssessment(
            level=RiskLevel.low,
            factors=["Stable health patterns", "No new concerns identified"],
        ),
        is_monitoring=True,
    )


def fallback_decision() -> Decision:
    """Conservative decision used when the pipeline fails."""
    return Decision(
        primary_action="Monitor symptoms and consult healthcare provider if needed",
        priority=DecisionPriority.medium,
        reasoning="Conservative approach based on available information",
        conflicts=[],
        resolved_actions=["Monitor symptoms"],
        timeline="Within 24 hours",
        risk_assessment=RiskAssessment(
            level=RiskLevel.low,
            factors=["Limited information available"],
        ),
    )


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class DecisionEngineAgent:
    """Turns the current situation plus memory into a single decision."""

    id = "decision-engine"
    name = "Decision Engine Agent"

    def __init__(self, gateway: InferenceGateway) -> None:
        self._gateway = gateway

    async def make_health_decision(self, context: DecisionContext) -> Decision:
        start = perf_counter()
        ok = True
        try:
            return await self._decide(context)
        except Exception:
            ok = False
            logger.exception("Decision pipeline failed, using fallback decision")
            return fallback_decision()
        finally:
            record_latency(
                operation="decision.make_health_decision",
                duration_ms=(perf_counter() - start) * 1000,
                ok=ok,
            )

    async def _decide(self, context: DecisionContext) -> Decision:
        situation = await self.analyze_current_situation(context)
        conflicts = await self.identify_conflicts(context)

        has_new_input = bool(context.user_input.strip()) or bool(context.current_symptoms)
        if not self.assess_action_needed(
            situation,
            context.existing_recommendations,
            has_new_input=has_new_input,
        ):
            logger.info("No action needed for '%s', monitoring", situation.primary_concern)
            return monitoring_decision()

        draft = await self.make_autonomous_decision(context, situation, conflicts)
        resolved = await self.resolve_conflicts(context, draft, conflicts)

        priority = draft.priority
        # Decision priority never sits below an elevated situation urgency
        if situation.urgency in _ELEVATED and _PRIORITY_RANK[priority] < _PRIORITY_RANK[situation.urgency]:
            priority = situation.urgency

        decision = Decision(
            primary_action=draft.primary_action,
            priority=priority,
            reasoning=draft.reasoning,
            conflicts=[c.description for c in conflicts],
            resolved_actions=resolved or [draft.primary_action],
            timeline=draft.timeline,
            risk_assessment=draft.risk_assessment,
        )
        logger.info(
            "Decision: %s (priority=%s, %d action(s), %d conflict(s))",
            decision.primary_action,
            decision.priority.value,
            len(decision.resolved_actions),
            len(decision.conflicts),
        )
        return decision

    # -- step 1 --

    async def analyze_current_situation(self, context: DecisionContext) -> SituationAnalysis:
        request = prompts.situation_analysis(
            context.user_input,
            context.current_symptoms,
            context.memory_context,
        )
        raw = await self._gateway.complete(request)
        try:
            return parse_model(raw, SituationAnalysis)
        except InvalidResponse as exc:
            logger.warning("Unparsable situation analysis, using defaults: %s", exc)
            return default_situation()

    # -- step 2 --

    async def identify_conflicts(self, context: DecisionContext) -> list[Conflict]:
        if len(context.existing_recommendations) < 2:
            return []
        request = prompts.conflict_identification(
            context.user_input,
            context.existing_recommendations,
        )
        raw = await self._gateway.complete(request)
        try:
            return parse_model_list(raw, Conflict, key="conflicts")
        except InvalidResponse as exc:
            logger.warning("Unparsable conflict list, assuming none: %s", exc)
            return []

    # -- step 3 --

    @staticmethod
    def assess_action_needed(
        situation: SituationAnalysis,
        existing: Sequence[Recommendation],
        *,
        has_new_input: bool = True,
    ) -> bool:
        """True if the concern is new, the urgency is elevated, or anything is still open.

        Any incomplete recommendation forces action, even one unrelated
        to the current input.  With nothing newly reported (no input and
        no current symptoms) there is no new concern to cover.
        """
        concern = situation.primary_concern.strip().lower()
        is_new_issue = (
            has_new_input
            and bool(concern)
            and not any(concern in r.title.lower() for r in existing)
        )
        if is_new_issue:
            return True
        if situation.urgency in _ELEVATED:
            return True
        return any(not r.is_completed for r in existing)

    # -- step 5 --

    async def make_autonomous_decision(
        self,
        context: DecisionContext,
        situation: SituationAnalysis,
        conflicts: Sequence[Conflict],
    ) -> DecisionDraft:
        request = prompts.decision_synthesis(
            context.user_input,
            situation,
            conflicts,
            context.memory_context,
        )
        raw = await self._gateway.complete(request)
        try:
            return parse_model(raw, DecisionDraft)
        except InvalidResponse as exc:
            logger.warning("Unparsable decision, using defaults: %s", exc)
            return default_draft()

    # -- step 6 --

    async def resolve_conflicts(
        self,
        context: DecisionContext,
        draft: DecisionDraft,
        conflicts: Sequence[Conflict],
    ) -> list[str]:
        if not conflicts:
            return [draft.primary_action]
        request = prompts.conflict_resolution(context.user_input, draft, conflicts)
        raw = await self._gateway.complete(request)
        try:
            actions = parse_string_list(raw, key="resolvedActions")
        except InvalidResponse as exc:
            logger.warning("Unparsable conflict resolution: %s", exc)
            return [draft.primary_action]
        return [a.strip() for a in actions if a.strip()] or [draft.primary_action]
