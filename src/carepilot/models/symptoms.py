"""Symptom observations and the memory context derived from them."""

from __future__ import annotations

import uuid
from datetime import datetime
from datetime import timezone
from enum import Enum

from pydantic import BaseModel
from pydantic import Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Reported severity of one observation."""

    mild = "mild"
    moderate = "moderate"
    severe = "severe"


SEVERITY_RANK = {Severity.mild: 1, Severity.moderate: 2, Severity.severe: 3}


class Impact(str, Enum):
    """Impact of a symptom on daily life."""

    low = "low"
    medium = "medium"
    high = "high"


class HealthDomain(str, Enum):
    """Primary health domain a recording is classified under."""

    physical_injury = "physical_injury"
    illness = "illness"
    mental_health = "mental_health"
    weight_management = "weight_management"
    nutrition = "nutrition"
    sleep = "sleep"
    exercise = "exercise"
    reproductive = "reproductive"
    chronic_conditions = "chronic_conditions"
    medication = "medication"
    preventive = "preventive"
    general_wellness = "general_wellness"


class TrendDirection(str, Enum):
    """Direction of a trend over time."""

    improving = "improving"
    stable = "stable"
    worsening = "worsening"


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SymptomObservation(BaseModel):
    """A single symptom recording, immutable once created."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: f"obs_{uuid.uuid4().hex}")
    timestamp: datetime = Field(default_factory=_utcnow)
    transcript: str = ""
    summary: str = ""
    health_domain: HealthDomain = HealthDomain.general_wellness
    severity: Severity = Severity.mild
    impact: Impact = Impact.low


# ---------------------------------------------------------------------------
# Memory context
# ---------------------------------------------------------------------------


class SymptomPattern(BaseModel):
    """A recurring symptom term, recomputed on every memory run."""

    symptom: str
    frequency: int = 0
    first_occurrence: datetime
    last_occurrence: datetime
    trend: TrendDirection = TrendDirection.stable


class HealthTrends(BaseModel):
    """Overall direction, logging rate and typical severity."""

    overall: TrendDirection = TrendDirection.stable
    frequency: float = Field(
        default=0.0,
        description="Average observations per week over the history span.",
    )
    severity: Severity = Severity.mild


class HistoricalContext(BaseModel):
    """Longer-horizon context handed to decision synthesis."""

    recurring_issues: list[str] = Field(default_factory=list)
    lifestyle_factors: list[str] = Field(default_factory=list)
    trigger_patterns: list[str] = Field(default_factory=list)
    narrative: str = Field(
        default="No prior symptom history.",
        description="Plain-language summary of the history.",
    )


class HealthSummary(BaseModel):
    """Where the user's attention should go."""

    primary_concerns: list[str] = Field(default_factory=list)
    improvement_areas: list[str] = Field(default_factory=list)
    stable_areas: list[str] = Field(default_factory=list)


class MemoryContext(BaseModel):
    """Output of the health memory agent, consumed once per decision."""

    patterns: list[SymptomPattern] = Field(default_factory=list)
    trends: HealthTrends = Field(default_factory=HealthTrends)
    historical_context: HistoricalContext = Field(default_factory=HistoricalContext)
    health_summary: HealthSummary = Field(default_factory=HealthSummary)

    @classmethod
    def empty(cls) -> MemoryContext:
        """The context returned for empty or malformed histories."""
        return cls()
