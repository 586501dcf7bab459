"""Action coordinator agent — decisions into recommendations, questions and strategies.

Four independent operations:

- ``create_recommendations``: pure transformation with duplicate
  suppression, no inference;
- ``create_appointment_questions``: one call, static five-question
  fallback;
- ``create_follow_up_questions``: one call per item, failures isolated
  per item;
- ``create_health_strategy``: five sequential calls, all-or-nothing
  static fallback.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field

from carepilot.agents import prompts
from carepilot.agents.schemas import FollowUpQuestion
from carepilot.agents.schemas import PrimaryStrategy
from carepilot.inference.errors import InferenceError
from carepilot.inference.errors import InvalidResponse
from carepilot.inference.gateway import InferenceGateway
from carepilot.inference.parsing import parse_model
from carepilot.inference.parsing import parse_model_list
from carepilot.inference.parsing import parse_string_list
from carepilot.models.decisions import CommunicationPlan
from carepilot.models.decisions import Decision
from carepilot.models.decisions import DecisionPriority
from carepilot.models.decisions import MissingUpdate
from carepilot.models.decisions import ProviderRecommendation
from carepilot.models.decisions import Strategy
from carepilot.models.decisions import StrategyTimeline
from carepilot.models.recommendations import InterventionType
from carepilot.models.recommendations import Recommendation
from carepilot.models.recommendations import RecommendationCategory
from carepilot.models.recommendations import RecommendationPriority
from carepilot.models.recommendations import RecommendationUrgency
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import SymptomObservation

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_QUESTIONS = 5
MIN_SUB_STRATEGIES = 3
MAX_SUB_STRATEGIES = 5

FALLBACK_APPOINTMENT_QUESTIONS = (
    "What is causing my symptoms?",
    "What tests do I need?",
    "What are my treatment options?",
    "When should I follow up?",
    "Are there any red flags to watch for?",
)

# priority -> (recommendation priority, urgency)
_PRIORITY_MAP = {
    DecisionPriority.urgent: (RecommendationPriority.HIGH, RecommendationUrgency.immediate),
    DecisionPriority.high: (RecommendationPriority.HIGH, RecommendationUrgency.within_days),
    DecisionPriority.medium: (RecommendationPriority.MEDIUM, RecommendationUrgency.within_weeks),
    DecisionPriority.low: (RecommendationPriority.LOW, RecommendationUrgency.within_weeks),
}

_INTERVENTION_BY_PRIORITY = {
    DecisionPriority.urgent: InterventionType.emergency_care,
    DecisionPriority.high: InterventionType.professional_care,
    DecisionPriority.medium: InterventionType.self_care,
    DecisionPriority.low: InterventionType.self_care,
}

_CATEGORY_KEYWORDS = (
    (RecommendationCategory.emergency, ("emergency", "911", "urgent care")),
    (RecommendationCategory.appointment, ("appointment", "doctor", "physician", "provider", "specialist", "consult")),
    (RecommendationCategory.medication, ("medication", "medicine", "dose", "ibuprofen", "prescription")),
    (RecommendationCategory.monitoring, ("monitor", "track", "log", "record")),
    (RecommendationCategory.preventive, ("screening", "vaccine", "prevent", "check-up", "checkup")),
)


@dataclass(frozen=True)
class StrategyContext:
    """Input to ``create_health_strategy``."""

    decision: Decision
    user_input: str = ""
    current_symptoms: Sequence[SymptomObservation] = field(default_factory=tuple)


def fallback_strategy() -> Strategy:
    """The static strategy returned when any strategy call fails."""
    return Strategy(
        primary_strategy="Monitor symptoms and consult healthcare provider if needed",
        sub_strategies=[
            "Track symptoms daily",
            "Maintain current medications",
            "Follow up with healthcare provider",
        ],
        timeline=StrategyTimeline(
            immediate=["Monitor symptoms"],
            short_term=["Schedule healthcare appointment"],
            long_term=["Follow up care plan"],
        ),
        provider_recommendations=[
            ProviderRecommendation(
                type="Primary Care Physician",
                reason="General health assessment",
                urgency=DecisionPriority.medium,
            )
        ],
        communication_plan=CommunicationPlan(
            provider_questions=list(FALLBACK_APPOINTMENT_QUESTIONS),
            medical_summary="Patient reporting symptoms requiring medical evaluation",
            follow_up_plan="Schedule follow-up appointment based on provider recommendations",
        ),
    )


def is_duplicate(title: str, existing: Sequence[Recommendation]) -> bool:
    """Case-insensitive title equality or rationale containment, ignoring cancelled items."""
    needle = title.strip().lower()
    if not needle:
        return True
    for rec in existing:
        if rec.is_cancelled:
            continue
        if rec.title.strip().lower() == needle or needle in rec.rationale.lower():
            return True
    return False


def _category_for(action: str) -> RecommendationCategory:
    text = action.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return RecommendationCategory.lifestyle


class ActionCoordinatorAgent:
    """Turns decisions into concrete, deduplicated guidance."""

    id = "action-coordinator"
    name = "Action Coordinator Agent"

    def __init__(self, gateway: InferenceGateway) -> None:
        self._gateway = gateway

    # -- recommendations --

    def create_recommendations(
        self,
        decision: Decision,
        existing: Sequence[Recommendation],
        *,
        health_domain: HealthDomain = HealthDomain.general_wellness,
        triggering_symptoms: Sequence[str] = (),
    ) -> list[Recommendation]:
        """One recommendation per resolved action that is not already covered."""
        priority, urgency = _PRIORITY_MAP[decision.priority]
        created: list[Recommendation] = []
        seen: set[str] = set()
        for action in decision.resolved_actions:
            title = action.strip()
            if is_duplicate(title, existing) or title.lower() in seen:
                logger.debug("Skipping duplicate recommendation '%s'", title)
                continue
            seen.add(title.lower())
            created.append(
                Recommendation(
                    title=title,
                    description=decision.reasoning,
                    category=_category_for(title),
                    priority=priority,
                    urgency=urgency,
                    health_domain=health_domain,
                    rationale=decision.reasoning,
                    triggering_symptoms=list(triggering_symptoms),
                    risk_level=decision.risk_assessment.level,
                    intervention_type=_INTERVENTION_BY_PRIORITY[decision.priority],
                )
            )
        logger.info(
            "Created %d recommendation(s) from %d action(s)",
            len(created),
            len(decision.resolved_actions),
        )
        return created

    # -- appointment questions --

    async def create_appointment_questions(
        self,
        title: str,
        symptoms: Sequence[SymptomObservation],
    ) -> list[str]:
        try:
            raw = await self._gateway.complete(prompts.appointment_questions(title, symptoms))
            questions = [q.strip() for q in parse_string_list(raw, key="questions") if q.strip()]
        except InferenceError as exc:
            logger.warning("Appointment questions failed, using fallback: %s", exc)
            return list(FALLBACK_APPOINTMENT_QUESTIONS)
        except Exception:
            logger.exception("Unexpected error creating appointment questions")
            return list(FALLBACK_APPOINTMENT_QUESTIONS)
        if not questions:
            logger.warning("No appointment questions returned, using fallback")
            return list(FALLBACK_APPOINTMENT_QUESTIONS)
        return questions[:MAX_APPOINTMENT_QUESTIONS]

    # -- follow-up questions --

    async def create_follow_up_questions(self, missing_updates: Sequence[MissingUpdate]) -> list[str]:
        questions: list[str] = []
        for update in missing_updates:
            try:
                raw = await self._gateway.complete(prompts.follow_up_question(update))
                question = parse_model(raw, FollowUpQuestion).question.strip()
            except InferenceError as exc:
                logger.warning("Follow-up question for %s skipped: %s", update.type.value, exc)
                continue
            except Exception:
                logger.exception("Unexpected error creating follow-up question for %s", update.type.value)
                continue
            if question:
                questions.append(question)
        return questions

    # -- strategy --

    async def create_health_strategy(self, context: StrategyContext) -> Strategy:
        try:
            return await self._build_strategy(context)
        except InferenceError as exc:
            logger.warning("Strategy creation failed, using fallback strategy: %s", exc)
        except Exception:
            logger.exception("Unexpected error creating strategy, using fallback strategy")
        return fallback_strategy()

    async def _build_strategy(self, context: StrategyContext) -> Strategy:
        decision = context.decision

        raw = await self._gateway.complete(prompts.primary_strategy(decision, context.user_input))
        primary = parse_model(raw, PrimaryStrategy).primary_strategy.strip()

        raw = await self._gateway.complete(prompts.sub_strategies(decision, context.user_input))
        subs = [s.strip() for s in parse_string_list(raw, key="subStrategies") if s.strip()]
        if len(subs) < MIN_SUB_STRATEGIES:
            raise InvalidResponse(f"expected at least {MIN_SUB_STRATEGIES} sub-strategies, got {len(subs)}")

        raw = await self._gateway.complete(prompts.strategy_timeline(decision))
        timeline = parse_model(raw, StrategyTimeline)

        raw = await self._gateway.complete(
            prompts.provider_recommendations(decision, context.current_symptoms)
        )
        providers = parse_model_list(raw, ProviderRecommendation, key="providerRecommendations")

        raw = await self._gateway.complete(
            prompts.communication_plan(decision, context.current_symptoms)
        )
        plan = parse_model(raw, CommunicationPlan)

        return Strategy(
            primary_strategy=primary,
            sub_strategies=subs[:MAX_SUB_STRATEGIES],
            timeline=timeline,
            provider_recommendations=providers,
            communication_plan=plan,
        )
