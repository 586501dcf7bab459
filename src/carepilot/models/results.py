"""MCP tool result models."""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import Field

from carepilot.models.decisions import AutonomousHealthResponse
from carepilot.models.messages import AgentStatus
from carepilot.models.messages import SystemStatus


class ProcessSymptomResult(BaseModel):
    """Response from process_symptom."""

    status: str = Field(
        default="ok",
        description="Processing status (ok, rejected, error).",
    )
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code when status is not ok.",
    )
    message: str | None = None
    response: AutonomousHealthResponse | None = None


class QuestionsResult(BaseModel):
    """Response from appointment_questions and follow_up_questions."""

    status: str = Field(
        default="ok",
        description="Processing status (ok, rejected).",
    )
    error_code: str | None = None
    message: str | None = None
    questions: list[str] = Field(default_factory=list)


class AgentStatusResult(BaseModel):
    """Response from agent_status."""

    system: SystemStatus
    agents: list[AgentStatus] = Field(default_factory=list)
    metrics: dict[str, dict[str, float | int]] = Field(
        default_factory=dict,
        description="In-process latency and retry aggregates keyed by operation.",
    )
