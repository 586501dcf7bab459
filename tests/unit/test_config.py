"""Unit tests for configuration dataclasses."""

from dataclasses import FrozenInstanceError

import pytest

from carepilot.config import AgentCadenceConfig
from carepilot.config import FollowUpConfig
from carepilot.config import InferenceConfig
from carepilot.config import SchedulerConfig
from carepilot.config import StoreConfig


# ---------------------------------------------------------------------------
# InferenceConfig
# ---------------------------------------------------------------------------


class TestInferenceConfig:
    def test_defaults(self):
        cfg = InferenceConfig()
        assert cfg.provider == "openai"
        assert cfg.model == "gpt-4"
        assert cfg.transcription_model == "whisper-1"
        assert cfg.api_key is None
        assert cfg.base_url == "https://api.openai.com/v1"
        assert cfg.max_retries == 3
        assert cfg.throttle_seconds == 0.5
        assert cfg.backoff_base_seconds == 2.0

    def test_frozen(self):
        cfg = InferenceConfig()
        with pytest.raises(FrozenInstanceError):
            cfg.model = "other"  # type: ignore[misc]

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CAREPILOT_PROVIDER", "noop")
        monkeypatch.setenv("CAREPILOT_MODEL", "gpt-4o-mini")
        monkeypatch.delenv("CAREPILOT_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        cfg = InferenceConfig.from_env()
        assert cfg.provider == "noop"
        assert cfg.model == "gpt-4o-mini"
        assert cfg.api_key == "sk-test"
        assert cfg.transcription_model == "whisper-1"

    def test_from_env_prefers_carepilot_key(self, monkeypatch):
        monkeypatch.setenv("CAREPILOT_API_KEY", "sk-carepilot")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        assert InferenceConfig.from_env().api_key == "sk-carepilot"


# ---------------------------------------------------------------------------
# Scheduler / cadence
# ---------------------------------------------------------------------------


class TestSchedulerConfig:
    def test_defaults(self):
        cfg = SchedulerConfig()
        assert cfg.poll_interval_seconds == 60.0
        assert cfg.error_backoff_seconds == 300.0
        assert cfg.max_pending_messages == 1000


class TestAgentCadenceConfig:
    def test_defaults(self):
        cfg = AgentCadenceConfig()
        assert cfg.follow_up_frequency_seconds == 6 * 3600
        assert cfg.user_model_frequency_seconds == 7 * 86400
        assert cfg.follow_up_cost_per_run == 0.01
        assert cfg.user_model_cost_per_run == 0.01
        assert cfg.follow_up_frequency_high_logging_seconds == 12 * 3600
        assert cfg.follow_up_frequency_low_logging_seconds == 3 * 3600


class TestFollowUpConfig:
    def test_defaults(self):
        cfg = FollowUpConfig()
        assert cfg.missed_log_days == 3
        assert cfg.overdue_recommendation_days == 7
        assert cfg.pattern_window_days == 7


class TestStoreConfig:
    def test_defaults(self):
        cfg = StoreConfig()
        assert cfg.redis_url == "redis://localhost:6379"
        assert cfg.key_prefix == "carepilot"
