"""Prompt construction for every inference call the agents make.

Each builder returns an ``InferenceRequest`` whose instruction names the
exact JSON shape expected back; the calling agent validates the answer
against the matching model in ``carepilot.agents.schemas``.  Kept apart
from the agents so wording can change without touching pipeline logic.
"""

from __future__ import annotations

from collections.abc import Sequence

from carepilot.agents.schemas import Conflict
from carepilot.agents.schemas import DecisionDraft
from carepilot.agents.schemas import SituationAnalysis
from carepilot.inference.gateway import InferenceRequest
from carepilot.models.decisions import Decision
from carepilot.models.decisions import MissingUpdate
from carepilot.models.recommendations import Recommendation
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import MemoryContext
from carepilot.models.symptoms import SymptomObservation

_JSON_ONLY = "Return ONLY the JSON, no other text."


def _summaries(symptoms: Sequence[SymptomObservation]) -> str:
    return ", ".join(s.summary for s in symptoms if s.summary) or "none"


def _bullets(lines: Sequence[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


# ---------------------------------------------------------------------------
# Symptom analysis
# ---------------------------------------------------------------------------


def observation_analysis(transcript: str) -> InferenceRequest:
    domains = ", ".join(d.value for d in HealthDomain)
    instruction = (
        "You classify a spoken health journal entry. Return JSON with:\n"
        + _bullets(
            [
                "summary: one sentence describing the symptoms in plain language",
                f"healthDomain: one of [{domains}]",
                "severity: one of [mild, moderate, severe]",
                "impact: one of [low, medium, high] impact on daily life",
            ]
        )
        + f"\n{_JSON_ONLY}"
    )
    return InferenceRequest(
        instruction=instruction,
        task=f"Journal entry transcript:\n{transcript}",
        max_tokens=300,
    )


# ---------------------------------------------------------------------------
# Decision engine
# ---------------------------------------------------------------------------


def situation_analysis(
    user_input: str,
    current_symptoms: Sequence[SymptomObservation],
    memory: MemoryContext,
) -> InferenceRequest:
    instruction = (
        "Analyze the current health situation and return JSON with:\n"
        + _bullets(
            [
                "urgency: one of [urgent, high, medium, low]",
                "primaryConcern: main health issue to address",
                "contributingFactors: array of contributing factors",
                "riskLevel: one of [low, medium, high]",
            ]
        )
        + f"\n{_JSON_ONLY}"
    )
    task = (
        "Analyze current situation:\n"
        f"User input: {user_input}\n"
        f"Current symptoms: {_summaries(current_symptoms)}\n"
        f"Memory context: {memory.trends.model_dump_json()}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=400)


def conflict_identification(
    user_input: str,
    existing: Sequence[Recommendation],
) -> InferenceRequest:
    instruction = (
        "Identify conflicts between health recommendations and return a JSON "
        "array whose items have:\n"
        + _bullets(
            [
                "description: description of the conflict",
                "priority1: first conflicting recommendation",
                "priority2: second conflicting recommendation",
                "resolution: how to resolve the conflict",
            ]
        )
        + "\nReturn [] when there is no conflict. "
        + _JSON_ONLY
    )
    task = (
        "Identify conflicts between:\n"
        f"User input: {user_input}\n"
        f"Existing recommendations: {', '.join(r.title for r in existing)}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=600)


def decision_synthesis(
    user_input: str,
    situation: SituationAnalysis,
    conflicts: Sequence[Conflict],
    memory: MemoryContext,
) -> InferenceRequest:
    instruction = (
        "Make an autonomous health decision and return JSON with:\n"
        + _bullets(
            [
                "primaryAction: main action to take",
                "priority: one of [urgent, high, medium, low]",
                "reasoning: explanation for the decision",
                "timeline: when to take action",
                "riskAssessment: object with level (low/medium/high) and "
                "factors (array)",
            ]
        )
        + f"\n{_JSON_ONLY}"
    )
    conflict_lines = [c.description for c in conflicts] or ["none"]
    task = (
        "Make decision based on:\n"
        f"Situation: {situation.model_dump_json(by_alias=True)}\n"
        f"Conflicts: {'; '.join(conflict_lines)}\n"
        f"User input: {user_input}\n"
        f"History: {memory.historical_context.narrative}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=500)


def conflict_resolution(
    user_input: str,
    draft: DecisionDraft,
    conflicts: Sequence[Conflict],
) -> InferenceRequest:
    instruction = (
        "Resolve the health conflicts against the decision and return a JSON "
        "array of concrete resolved actions (strings). " + _JSON_ONLY
    )
    task = (
        "Resolve conflicts:\n"
        f"Decision: {draft.model_dump_json(by_alias=True)}\n"
        f"Conflicts: {'; '.join(c.model_dump_json() for c in conflicts)}\n"
        f"User input: {user_input}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=400)


# ---------------------------------------------------------------------------
# Action coordinator
# ---------------------------------------------------------------------------


def appointment_questions(
    title: str,
    symptoms: Sequence[SymptomObservation],
) -> InferenceRequest:
    instruction = (
        f'Generate 5 relevant questions for a medical appointment about "{title}". '
        "Focus on symptoms, concerns, and preparation. "
        "Return a JSON array of strings. " + _JSON_ONLY
    )
    task = (
        f"Generate questions for appointment: {title}\n"
        f"Relevant symptoms: {_summaries(symptoms)}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=400)


def follow_up_question(update: MissingUpdate) -> InferenceRequest:
    instruction = (
        "Generate one follow-up question based on the missing update. Make it "
        'conversational and specific to the situation. Return JSON {"question": "..."}. '
        + _JSON_ONLY
    )
    return InferenceRequest(
        instruction=instruction,
        task=f"Generate follow-up question for: {update.description} ({update.type.value})",
        max_tokens=100,
        temperature=0.3,
    )


def primary_strategy(decision: Decision, user_input: str) -> InferenceRequest:
    instruction = (
        "Create a primary health strategy based on the decision. Return JSON "
        '{"primaryStrategy": "<single sentence>"}. ' + _JSON_ONLY
    )
    task = (
        "Create strategy for:\n"
        f"Decision: {decision.primary_action}\n"
        f"Reasoning: {decision.reasoning}\n"
        f"User input: {user_input}\n"
        f"Priority: {decision.priority.value}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=100)


def sub_strategies(decision: Decision, user_input: str) -> InferenceRequest:
    instruction = "Create 3-5 sub-strategies and return a JSON array of strings. " + _JSON_ONLY
    task = (
        "Create sub-strategies for:\n"
        f"Primary action: {decision.primary_action}\n"
        f"Resolved actions: {', '.join(decision.resolved_actions)}\n"
        f"User input: {user_input}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=300)


def strategy_timeline(decision: Decision) -> InferenceRequest:
    instruction = (
        "Create a timeline and return JSON with:\n"
        + _bullets(
            [
                "immediate: array of actions to take within 24 hours",
                "shortTerm: array of actions to take within 1 week",
                "longTerm: array of actions to take within 1 month",
            ]
        )
        + f"\n{_JSON_ONLY}"
    )
    task = (
        "Create timeline for:\n"
        f"Decision: {decision.primary_action}\n"
        f"Timeline: {decision.timeline}\n"
        f"Priority: {decision.priority.value}\n"
        f"Resolved actions: {', '.join(decision.resolved_actions)}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=400)


def provider_recommendations(
    decision: Decision,
    current_symptoms: Sequence[SymptomObservation],
) -> InferenceRequest:
    instruction = (
        "Create provider recommendations and return a JSON array whose items have:\n"
        + _bullets(
            [
                "type: type of healthcare provider",
                "reason: why this provider is recommended",
                "urgency: one of [urgent, high, medium, low]",
            ]
        )
        + f"\n{_JSON_ONLY}"
    )
    task = (
        "Create provider recommendations for:\n"
        f"Decision: {decision.primary_action}\n"
        f"Priority: {decision.priority.value}\n"
        f"Risk assessment: {decision.risk_assessment.model_dump_json()}\n"
        f"Current symptoms: {_summaries(current_symptoms)}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=400)


def communication_plan(
    decision: Decision,
    current_symptoms: Sequence[SymptomObservation],
) -> InferenceRequest:
    instruction = (
        "Create a communication plan and return JSON with:\n"
        + _bullets(
            [
                "providerQuestions: array of 5 questions to ask the healthcare provider",
                "medicalSummary: brief medical summary for the provider",
                "followUpPlan: plan for follow-up care",
            ]
        )
        + f"\n{_JSON_ONLY}"
    )
    task = (
        "Create communication plan for:\n"
        f"Decision: {decision.primary_action}\n"
        f"Current symptoms: {_summaries(current_symptoms)}\n"
        f"Priority: {decision.priority.value}\n"
        f"Planned actions: {', '.join(decision.resolved_actions)}"
    )
    return InferenceRequest(instruction=instruction, task=task, max_tokens=600)
