"""Inference payload models.

Pydantic schemas for the structured content the agents request from the
inference gateway.  These are intermediate representations: the agents
map them onto the domain models in ``carepilot.models``.  Keys are
accepted in camelCase (the prompt wording) or snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic.alias_generators import to_camel

from carepilot.models.decisions import DecisionPriority
from carepilot.models.decisions import RiskAssessment
from carepilot.models.recommendations import RiskLevel
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import Impact
from carepilot.models.symptoms import Severity

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _lower(value: object) -> object:
    return value.strip().lower() if isinstance(value, str) else value


def _snake(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower().replace(" ", "_").replace("-", "_")
    return value


class SituationAnalysis(BaseModel):
    """Step 1 of the decision pipeline."""

    model_config = _CAMEL

    urgency: DecisionPriority = Field(
        default=DecisionPriority.medium,
        description="One of urgent, high, medium, low.",
    )
    primary_concern: str = Field(
        default="General health concern",
        description="Main health issue to address.",
    )
    contributing_factors: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.low

    normalize_urgency = field_validator("urgency", mode="before")(_lower)
    normalize_risk = field_validator("risk_level", mode="before")(_lower)


class Conflict(BaseModel):
    """A conflict between two recommendations."""

    description: str
    priority1: str = ""
    priority2: str = ""
    resolution: str = ""


class DecisionDraft(BaseModel):
    """Step 5 of the decision pipeline, before conflict resolution."""

    model_config = _CAMEL

    primary_action: str = Field(min_length=1)
    priority: DecisionPriority
    reasoning: str = ""
    timeline: str = ""
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)

    normalize_priority = field_validator("priority", mode="before")(_lower)


class ObservationAnalysis(BaseModel):
    """Classification of one transcript."""

    model_config = _CAMEL

    summary: str = Field(min_length=1)
    health_domain: HealthDomain = HealthDomain.general_wellness
    severity: Severity = Severity.mild
    impact: Impact = Impact.low

    normalize_domain = field_validator("health_domain", mode="before")(_snake)
    normalize_severity = field_validator("severity", mode="before")(_lower)
    normalize_impact = field_validator("impact", mode="before")(_lower)


class FollowUpQuestion(BaseModel):
    """A single conversational follow-up question."""

    question: str = Field(min_length=1)


class PrimaryStrategy(BaseModel):
    """One-sentence primary strategy."""

    model_config = _CAMEL

    primary_strategy: str = Field(min_length=1)
