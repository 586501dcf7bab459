"""Agents domain — runtime, message bus and the health pipeline agents."""

from carepilot.agents.analyzer import AudioRecording
from carepilot.agents.analyzer import SymptomAnalyzer
from carepilot.agents.bus import MessageBus
from carepilot.agents.coordinator import ActionCoordinatorAgent
from carepilot.agents.coordinator import StrategyContext
from carepilot.agents.decision import DecisionContext
from carepilot.agents.decision import DecisionEngineAgent
from carepilot.agents.follow_up import FollowUpAgent
from carepilot.agents.memory import HealthMemoryAgent
from carepilot.agents.runtime import BaseAgent
from carepilot.agents.runtime import Clock
from carepilot.agents.runtime import SystemClock
from carepilot.agents.user_model import BehaviorProfile
from carepilot.agents.user_model import UserModelAgent

__all__ = [
    "ActionCoordinatorAgent",
    "AudioRecording",
    "BaseAgent",
    "BehaviorProfile",
    "Clock",
    "DecisionContext",
    "DecisionEngineAgent",
    "FollowUpAgent",
    "HealthMemoryAgent",
    "MessageBus",
    "StrategyContext",
    "SymptomAnalyzer",
    "SystemClock",
    "UserModelAgent",
]
