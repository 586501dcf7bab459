"""Inter-agent messages and agent bookkeeping models."""

from __future__ import annotations

import uuid
from datetime import datetime
from datetime import timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class MessagePriority(str, Enum):
    """Priority attached to an agent message."""

    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class AgentMessage(BaseModel):
    """The only inter-agent communication primitive.

    ``from`` is a keyword, so the sender lives in ``sender`` and is
    serialized under the ``from`` alias.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: f"msg_{uuid.uuid4().hex}")
    sender: str = Field(alias="from")
    to: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    priority: MessagePriority = MessagePriority.medium


class AgentConfig(BaseModel):
    """Static description of one agent.

    ``frequency_seconds`` may be replaced by the owning agent (cadence
    tuning) via ``model_copy``; nothing else mutates it.
    """

    model_config = {"frozen": True}

    id: str
    name: str
    description: str = ""
    frequency_seconds: float
    is_active: bool = True
    cost_per_run: float = 0.0


class AgentStatus(BaseModel):
    """Read-only snapshot of an agent's runtime counters."""

    model_config = {"frozen": True}

    id: str
    name: str
    is_running: bool
    last_run: datetime | None = None
    next_run: datetime | None = None
    total_cost: float = 0.0
    run_count: int = 0


class SystemStatus(BaseModel):
    """Aggregate view over every registered agent."""

    total_agents: int
    running_agents: int
    total_cost: float
    pending_messages: int
    is_initialized: bool


# ---------------------------------------------------------------------------
# Addressing
# ---------------------------------------------------------------------------

FOLLOW_UP_AGENT_ID = "follow-up"
USER_MODEL_AGENT_ID = "user-model"


class MessageType(str, Enum):
    """Message types exchanged on the bus."""

    symptom_log_added = "symptom_log_added"
    follow_up_sent = "follow_up_sent"
    behavior_patterns_updated = "behavior_patterns_updated"
