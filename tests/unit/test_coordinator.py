"""Unit tests for the action coordinator agent."""

from __future__ import annotations

import json

from carepilot.agents.coordinator import ActionCoordinatorAgent
from carepilot.agents.coordinator import FALLBACK_APPOINTMENT_QUESTIONS
from carepilot.agents.coordinator import fallback_strategy
from carepilot.agents.coordinator import is_duplicate
from carepilot.agents.coordinator import StrategyContext
from carepilot.inference.errors import RequestFailed
from carepilot.inference.gateway import InferenceRequest
from carepilot.models.decisions import Decision
from carepilot.models.decisions import DecisionPriority
from carepilot.models.decisions import MissingUpdate
from carepilot.models.decisions import MissingUpdateType
from carepilot.models.recommendations import InterventionType
from carepilot.models.recommendations import Recommendation
from carepilot.models.recommendations import RecommendationCategory
from carepilot.models.recommendations import RecommendationPriority
from carepilot.models.recommendations import RecommendationUrgency
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import SymptomObservation

APPOINTMENT = "Generate 5 relevant questions for a medical appointment"
PRIMARY = "Create a primary health strategy"
SUBS = "Create 3-5 sub-strategies"
TIMELINE = "Create a timeline"
PROVIDERS = "Create provider recommendations"
PLAN = "Create a communication plan"

_STRATEGY_ROUTES = {
    PRIMARY: {"primaryStrategy": "Get recurring headaches evaluated"},
    SUBS: ["Keep a headache diary", "Limit screen time", "Hydrate", "Sleep 8 hours", "Cut caffeine", "Walk daily"],
    TIMELINE: {
        "immediate": ["Rest in a dark room"],
        "shortTerm": ["Book a GP visit"],
        "longTerm": ["Review triggers monthly"],
    },
    PROVIDERS: [{"type": "Neurologist", "reason": "Recurring headaches", "urgency": "High"}],
    PLAN: {
        "providerQuestions": ["Could this be migraine?"],
        "medicalSummary": "Recurring tension-type headaches for two weeks",
        "followUpPlan": "Review diary in four weeks",
    },
}


def _decision(
    *actions: str,
    priority: DecisionPriority = DecisionPriority.high,
    reasoning: str = "Headaches are getting more frequent",
) -> Decision:
    return Decision(
        primary_action=actions[0] if actions else "Monitor symptoms",
        priority=priority,
        reasoning=reasoning,
        resolved_actions=list(actions),
    )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class TestIsDuplicate:
    def test_title_match_is_case_insensitive(self):
        assert is_duplicate("Track symptoms", [Recommendation(title="  TRACK SYMPTOMS ")])

    def test_rationale_containment(self):
        existing = [Recommendation(title="Diary", rationale="Please track symptoms daily for a week")]
        assert is_duplicate("Track symptoms daily", existing)

    def test_cancelled_items_ignored(self):
        existing = [Recommendation(title="Track symptoms", is_cancelled=True)]
        assert not is_duplicate("Track symptoms", existing)

    def test_blank_title_counts_as_duplicate(self):
        assert is_duplicate("   ", [])


class TestCreateRecommendations:
    def test_one_per_new_action(self, make_gateway):
        coordinator = ActionCoordinatorAgent(make_gateway())
        decision = _decision(
            "Schedule doctor appointment",
            "Track symptoms daily",
            "schedule doctor appointment",
        )

        recs = coordinator.create_recommendations(
            decision,
            [],
            health_domain=HealthDomain.illness,
            triggering_symptoms=["Throbbing headache"],
        )

        assert [r.title for r in recs] == ["Schedule doctor appointment", "Track symptoms daily"]
        first, second = recs
        assert first.category == RecommendationCategory.appointment
        assert second.category == RecommendationCategory.monitoring
        assert first.priority == RecommendationPriority.HIGH
        assert first.urgency == RecommendationUrgency.within_days
        assert first.intervention_type == InterventionType.professional_care
        assert first.health_domain == HealthDomain.illness
        assert first.triggering_symptoms == ["Throbbing headache"]
        assert first.rationale == decision.reasoning
        assert first.is_open()

    def test_existing_titles_suppressed(self, make_gateway):
        coordinator = ActionCoordinatorAgent(make_gateway())
        existing = [Recommendation(title="Drink more water")]

        recs = coordinator.create_recommendations(_decision("Drink more water", "Rest"), existing)

        assert [r.title for r in recs] == ["Rest"]

    def test_urgent_decision_mapping(self, make_gateway):
        coordinator = ActionCoordinatorAgent(make_gateway())
        [rec] = coordinator.create_recommendations(
            _decision("Go to the emergency department", priority=DecisionPriority.urgent),
            [],
        )
        assert rec.urgency == RecommendationUrgency.immediate
        assert rec.category == RecommendationCategory.emergency
        assert rec.intervention_type == InterventionType.emergency_care

    def test_low_priority_defaults_to_lifestyle(self, make_gateway):
        coordinator = ActionCoordinatorAgent(make_gateway())
        [rec] = coordinator.create_recommendations(
            _decision("Go for a short walk", priority=DecisionPriority.low),
            [],
        )
        assert rec.priority == RecommendationPriority.LOW
        assert rec.category == RecommendationCategory.lifestyle
        assert rec.intervention_type == InterventionType.self_care


# ---------------------------------------------------------------------------
# Appointment questions
# ---------------------------------------------------------------------------


class TestAppointmentQuestions:
    async def test_truncated_to_five(self, make_gateway):
        gateway = make_gateway({APPOINTMENT: [f"Question {n}?" for n in range(7)]})
        coordinator = ActionCoordinatorAgent(gateway)
        symptoms = [SymptomObservation(summary="Throbbing headache")]

        questions = await coordinator.create_appointment_questions("Neurologist visit", symptoms)

        assert questions == [f"Question {n}?" for n in range(5)]
        [call] = gateway.calls
        assert "Neurologist visit" in call.instruction
        assert "Throbbing headache" in call.task

    async def test_repeatable_for_same_input(self, make_gateway):
        gateway = make_gateway({APPOINTMENT: {"questions": ["What tests do I need?"]}})
        coordinator = ActionCoordinatorAgent(gateway)

        first = await coordinator.create_appointment_questions("GP visit", [])
        second = await coordinator.create_appointment_questions("GP visit", [])

        assert first == second == ["What tests do I need?"]

    async def test_fallback_on_gateway_error(self, make_gateway):
        gateway = make_gateway({APPOINTMENT: RequestFailed("provider HTTP 500", status=500)})
        questions = await ActionCoordinatorAgent(gateway).create_appointment_questions("GP visit", [])
        assert questions == list(FALLBACK_APPOINTMENT_QUESTIONS)

    async def test_fallback_on_unparsable_output(self, make_gateway):
        gateway = make_gateway({APPOINTMENT: "1. What is wrong with me?"})
        questions = await ActionCoordinatorAgent(gateway).create_appointment_questions("GP visit", [])
        assert questions == list(FALLBACK_APPOINTMENT_QUESTIONS)

    async def test_fallback_on_empty_list(self, make_gateway):
        gateway = make_gateway({APPOINTMENT: ["  "]})
        questions = await ActionCoordinatorAgent(gateway).create_appointment_questions("GP visit", [])
        assert len(questions) == 5
        assert questions == list(FALLBACK_APPOINTMENT_QUESTIONS)


# ---------------------------------------------------------------------------
# Follow-up questions
# ---------------------------------------------------------------------------


class _PerUpdateGateway:
    """Answers follow-up prompts per update; overdue items fail."""

    def __init__(self) -> None:
        self.calls: list[InferenceRequest] = []

    async def complete(self, request: InferenceRequest) -> str:
        self.calls.append(request)
        if "overdue_recommendation" in request.task:
            raise RequestFailed("provider HTTP 500", status=500)
        if "pattern_change" in request.task:
            return "no json here"
        return json.dumps({"question": "  How have you been feeling since your last log?  "})

    async def transcribe(self, audio) -> str:
        del audio
        return ""


class TestFollowUpQuestions:
    async def test_failures_isolated_per_item(self):
        gateway = _PerUpdateGateway()
        updates = [
            MissingUpdate(type=MissingUpdateType.overdue_recommendation, description="Recommendation 'Rest' open"),
            MissingUpdate(type=MissingUpdateType.missing_update, description="No health log for 4 days"),
            MissingUpdate(type=MissingUpdateType.pattern_change, description="Worsening pattern in headache"),
        ]

        questions = await ActionCoordinatorAgent(gateway).create_follow_up_questions(updates)

        assert questions == ["How have you been feeling since your last log?"]
        assert len(gateway.calls) == 3
        assert all(call.temperature == 0.3 for call in gateway.calls)

    async def test_no_updates_no_calls(self, make_gateway):
        gateway = make_gateway()
        assert await ActionCoordinatorAgent(gateway).create_follow_up_questions([]) == []
        assert gateway.calls == []


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------


class TestHealthStrategy:
    async def test_full_strategy(self, make_gateway):
        gateway = make_gateway(dict(_STRATEGY_ROUTES))
        strategy = await ActionCoordinatorAgent(gateway).create_health_strategy(
            StrategyContext(decision=_decision("Book a GP visit"), user_input="Headaches again")
        )

        assert strategy.primary_strategy == "Get recurring headaches evaluated"
        assert len(strategy.sub_strategies) == 5
        assert strategy.timeline.short_term == ["Book a GP visit"]
        assert strategy.provider_recommendations[0].type == "Neurologist"
        assert strategy.provider_recommendations[0].urgency == DecisionPriority.high
        assert strategy.communication_plan.follow_up_plan == "Review diary in four weeks"
        assert len(gateway.calls) == 5

    async def test_unparsable_timeline_falls_back_entirely(self, make_gateway):
        routes = dict(_STRATEGY_ROUTES)
        routes[TIMELINE] = "soon, then later"
        gateway = make_gateway(routes)

        strategy = await ActionCoordinatorAgent(gateway).create_health_strategy(
            StrategyContext(decision=_decision("Book a GP visit"))
        )

        assert strategy == fallback_strategy()
        assert gateway.calls_matching(PROVIDERS) == []

    async def test_empty_sub_strategies_fall_back(self, make_gateway):
        routes = dict(_STRATEGY_ROUTES)
        routes[SUBS] = []
        gateway = make_gateway(routes)

        strategy = await ActionCoordinatorAgent(gateway).create_health_strategy(
            StrategyContext(decision=_decision("Book a GP visit"))
        )

        assert strategy == fallback_strategy()

    async def test_too_few_sub_strategies_fall_back(self, make_gateway):
        routes = dict(_STRATEGY_ROUTES)
        routes[SUBS] = ["Keep a headache diary", "  "]
        gateway = make_gateway(routes)

        strategy = await ActionCoordinatorAgent(gateway).create_health_strategy(
            StrategyContext(decision=_decision("Book a GP visit"))
        )

        assert strategy == fallback_strategy()
        assert gateway.calls_matching(TIMELINE) == []

    async def test_gateway_error_falls_back(self, make_gateway):
        gateway = make_gateway({PRIMARY: RequestFailed("provider HTTP 503", status=503)})
        strategy = await ActionCoordinatorAgent(gateway).create_health_strategy(
            StrategyContext(decision=_decision("Book a GP visit"))
        )
        assert strategy == fallback_strategy()

    def test_fallback_strategy_shape(self):
        strategy = fallback_strategy()
        assert strategy.primary_strategy == "Monitor symptoms and consult healthcare provider if needed"
        assert len(strategy.sub_strategies) == 3
        assert strategy.provider_recommendations[0].type == "Primary Care Physician"
        assert len(strategy.communication_plan.provider_questions) == 5
