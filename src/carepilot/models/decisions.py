"""Decision, strategy and follow-up models.

``RiskAssessment`` and the strategy parts accept camelCase keys as well
as field names so inference output can be validated against them
directly.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic.alias_generators import to_camel

from carepilot.models.recommendations import Recommendation
from carepilot.models.recommendations import RiskLevel
from carepilot.models.symptoms import MemoryContext
from carepilot.models.symptoms import SymptomObservation

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _lower(value: object) -> object:
    return value.strip().lower() if isinstance(value, str) else value


class DecisionPriority(str, Enum):
    """Priority of a decision (and of situation urgency)."""

    urgent = "urgent"
    high = "high"
    medium = "medium"
    low = "low"


class RiskAssessment(BaseModel):
    """Risk level and the factors behind it."""

    model_config = _CAMEL

    level: RiskLevel = RiskLevel.low
    factors: list[str] = Field(default_factory=list)

    normalize_level = field_validator("level", mode="before")(_lower)


class Decision(BaseModel):
    """The atomic unit of "what to do now"."""

    model_config = {"frozen": True}

    primary_action: str
    priority: DecisionPriority
    reasoning: str
    conflicts: list[str] = Field(default_factory=list)
    resolved_actions: list[str] = Field(default_factory=list)
    timeline: str = ""
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    is_monitoring: bool = Field(
        default=False,
        description="True only when the action gate found nothing to act on.",
    )


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------


class StrategyTimeline(BaseModel):
    """Actions split over three horizons."""

    model_config = _CAMEL

    immediate: list[str]
    short_term: list[str]
    long_term: list[str]


class ProviderRecommendation(BaseModel):
    """A type of provider to see, why, and how soon."""

    model_config = _CAMEL

    type: str
    reason: str
    urgency: DecisionPriority = DecisionPriority.medium

    normalize_urgency = field_validator("urgency", mode="before")(_lower)


class CommunicationPlan(BaseModel):
    """What to tell and ask the provider."""

    model_config = _CAMEL

    provider_questions: list[str]
    medical_summary: str
    follow_up_plan: str


class Strategy(BaseModel):
    """Multi-horizon elaboration of a decision."""

    model_config = {"frozen": True}

    primary_strategy: str
    sub_strategies: list[str]
    timeline: StrategyTimeline
    provider_recommendations: list[ProviderRecommendation]
    communication_plan: CommunicationPlan


# ---------------------------------------------------------------------------
# Follow-up
# ---------------------------------------------------------------------------


class MissingUpdateType(str, Enum):
    """Why a follow-up question is needed."""

    missing_update = "missing_update"
    overdue_recommendation = "overdue_recommendation"
    pattern_change = "pattern_change"


class MissingUpdate(BaseModel):
    """One item the follow-up check wants the user to report on."""

    type: MissingUpdateType
    description: str
    priority: RiskLevel = RiskLevel.medium


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------


class AutonomousHealthResponse(BaseModel):
    """Everything the primary path produces for one recording."""

    observation: SymptomObservation
    memory_context: MemoryContext
    decision: Decision
    strategy: Strategy
    recommendations: list[Recommendation] = Field(
        default_factory=list,
        description="New, deduplicated recommendations derived from the decision.",
    )
