"""Application configuration dataclasses.

Frozen dataclasses with sensible defaults for each subsystem.  Only
``InferenceConfig.from_env`` reads the environment, for the server entry
point; everything else is plain defaults overridden at construction time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_HOUR = 60 * 60
_DAY = 24 * _HOUR


@dataclass(frozen=True)
class InferenceConfig:
    """Inference provider settings used by the gateway."""

    provider: str = "openai"
    model: str = "gpt-4"
    transcription_model: str = "whisper-1"
    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: float = 30.0
    max_retries: int = 3
    # Fixed pause before every request, keeps us under steady-state limits
    throttle_seconds: float = 0.5
    backoff_base_seconds: float = 2.0

    @classmethod
    def from_env(cls) -> InferenceConfig:
        """Build a config from ``CAREPILOT_*`` variables (and ``OPENAI_API_KEY``)."""
        defaults = cls()
        return cls(
            provider=os.getenv("CAREPILOT_PROVIDER", defaults.provider),
            model=os.getenv("CAREPILOT_MODEL", defaults.model),
            transcription_model=os.getenv(
                "CAREPILOT_TRANSCRIPTION_MODEL", defaults.transcription_model
            ),
            api_key=os.getenv("CAREPILOT_API_KEY") or os.getenv("OPENAI_API_KEY"),
            base_url=os.getenv("CAREPILOT_BASE_URL", defaults.base_url),
        )


@dataclass(frozen=True)
class SchedulerConfig:
    """Agent runtime polling parameters."""

    poll_interval_seconds: float = 60.0
    error_backoff_seconds: float = 5 * 60.0
    max_pending_messages: int = 1000


@dataclass(frozen=True)
class AgentCadenceConfig:
    """Per-agent cadence (seconds) and nominal cost per run."""

    follow_up_frequency_seconds: float = 6 * _HOUR
    follow_up_cost_per_run: float = 0.01
    user_model_frequency_seconds: float = 7 * _DAY
    user_model_cost_per_run: float = 0.01
    # Follow-up cadence once the user model has classified logging frequency
    follow_up_frequency_high_logging_seconds: float = 12 * _HOUR
    follow_up_frequency_low_logging_seconds: float = 3 * _HOUR


@dataclass(frozen=True)
class FollowUpConfig:
    """Thresholds for detecting missing updates."""

    missed_log_days: int = 3
    overdue_recommendation_days: int = 7
    pattern_window_days: int = 7


@dataclass(frozen=True)
class StoreConfig:
    """Settings for the Redis-backed collaborator stores."""

    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "carepilot"
