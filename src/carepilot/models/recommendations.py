"""Recommendation model and its enums."""

from __future__ import annotations

import uuid
from datetime import datetime
from datetime import timezone
from enum import Enum

from pydantic import BaseModel
from pydantic import Field

from carepilot.models.symptoms import HealthDomain


class RecommendationPriority(str, Enum):
    """Display priority of a recommendation."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RecommendationUrgency(str, Enum):
    """How soon a recommendation should be acted on."""

    immediate = "immediate"
    within_days = "within days"
    within_weeks = "within weeks"


class RiskLevel(str, Enum):
    """Three-level risk classification."""

    low = "low"
    medium = "medium"
    high = "high"


class InterventionType(str, Enum):
    """Who carries out the recommendation."""

    self_care = "self_care"
    professional_care = "professional_care"
    emergency_care = "emergency_care"


class RecommendationCategory(str, Enum):
    """Kind of recommendation."""

    appointment = "appointment"
    medication = "medication"
    lifestyle = "lifestyle"
    monitoring = "monitoring"
    emergency = "emergency"
    preventive = "preventive"


class Recommendation(BaseModel):
    """An actionable recommendation.

    Created by the action coordinator.  Completion and cancellation are
    toggled by the recommendation store, never by the pipeline.
    """

    id: str = Field(default_factory=lambda: f"rec_{uuid.uuid4().hex}")
    title: str
    description: str = ""
    category: RecommendationCategory = RecommendationCategory.lifestyle
    priority: RecommendationPriority = RecommendationPriority.MEDIUM
    urgency: RecommendationUrgency = RecommendationUrgency.within_weeks
    health_domain: HealthDomain = HealthDomain.general_wellness
    rationale: str = ""
    triggering_symptoms: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.low
    intervention_type: InterventionType = InterventionType.self_care
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_completed: bool = False
    is_cancelled: bool = False

    def is_open(self) -> bool:
        """Neither completed nor cancelled."""
        return not (self.is_completed or self.is_cancelled)
