"""Domain models — observations, recommendations, decisions, messages."""

from carepilot.models.decisions import AutonomousHealthResponse
from carepilot.models.decisions import CommunicationPlan
from carepilot.models.decisions import Decision
from carepilot.models.decisions import DecisionPriority
from carepilot.models.decisions import MissingUpdate
from carepilot.models.decisions import MissingUpdateType
from carepilot.models.decisions import ProviderRecommendation
from carepilot.models.decisions import RiskAssessment
from carepilot.models.decisions import Strategy
from carepilot.models.decisions import StrategyTimeline
from carepilot.models.messages import AgentConfig
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import AgentStatus
from carepilot.models.messages import MessagePriority
from carepilot.models.messages import MessageType
from carepilot.models.messages import SystemStatus
from carepilot.models.recommendations import InterventionType
from carepilot.models.recommendations import Recommendation
from carepilot.models.recommendations import RecommendationCategory
from carepilot.models.recommendations import RecommendationPriority
from carepilot.models.recommendations import RecommendationUrgency
from carepilot.models.recommendations import RiskLevel
from carepilot.models.results import AgentStatusResult
from carepilot.models.results import ProcessSymptomResult
from carepilot.models.results import QuestionsResult
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import HealthSummary
from carepilot.models.symptoms import HealthTrends
from carepilot.models.symptoms import HistoricalContext
from carepilot.models.symptoms import Impact
from carepilot.models.symptoms import MemoryContext
from carepilot.models.symptoms import Severity
from carepilot.models.symptoms import SymptomObservation
from carepilot.models.symptoms import SymptomPattern
from carepilot.models.symptoms import TrendDirection

__all__ = [
    "AgentConfig",
    "AgentMessage",
    "AgentStatus",
    "AgentStatusResult",
    "AutonomousHealthResponse",
    "CommunicationPlan",
    "Decision",
    "DecisionPriority",
    "HealthDomain",
    "HealthSummary",
    "HealthTrends",
    "HistoricalContext",
    "Impact",
    "InterventionType",
    "MemoryContext",
    "MessagePriority",
    "MessageType",
    "MissingUpdate",
    "MissingUpdateType",
    "ProcessSymptomResult",
    "ProviderRecommendation",
    "QuestionsResult",
    "Recommendation",
    "RecommendationCategory",
    "RecommendationPriority",
    "RecommendationUrgency",
    "RiskAssessment",
    "RiskLevel",
    "Severity",
    "Strategy",
    "StrategyTimeline",
    "SymptomObservation",
    "SymptomPattern",
    "SystemStatus",
    "TrendDirection",
]
