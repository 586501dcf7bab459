"""Unit tests for the user model agent."""

from __future__ import annotations

from datetime import timedelta

import pytest

from carepilot.agents.bus import MessageBus
from carepilot.agents.user_model import classify_logging
from carepilot.agents.user_model import classify_response
from carepilot.agents.user_model import LoggingFrequency
from carepilot.agents.user_model import ResponseTime
from carepilot.agents.user_model import UserModelAgent
from carepilot.models.messages import AgentMessage
from carepilot.models.messages import MessageType
from carepilot.models.symptoms import Severity
from carepilot.models.symptoms import SymptomObservation
from carepilot.stores.memory import InMemorySymptomLogStore


def _daily_logs(clock, days: int, summary: str = "Headache") -> list[SymptomObservation]:
    return [
        SymptomObservation(timestamp=clock.now() - timedelta(days=d), summary=summary)
        for d in range(days)
    ]


def _message(clock, message_type: MessageType, *, hours: float = 0) -> AgentMessage:
    return AgentMessage(
        sender="test",
        to="user-model",
        type=message_type.value,
        timestamp=clock.now() + timedelta(hours=hours),
    )


@pytest.fixture()
def bus() -> MessageBus:
    return MessageBus()


@pytest.fixture()
def build(bus, clock):
    def _build(observations=()):
        return UserModelAgent(
            symptom_store=InMemorySymptomLogStore(observations),
            bus=bus,
            clock=clock,
        )

    return _build


class TestClassifiers:
    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [
            (0.0, LoggingFrequency.low),
            (0.19, LoggingFrequency.low),
            (0.2, LoggingFrequency.medium),
            (0.6, LoggingFrequency.medium),
            (0.61, LoggingFrequency.high),
        ],
    )
    def test_logging(self, ratio, expected):
        assert classify_logging(ratio) == expected

    def test_response_without_data(self):
        assert classify_response([]) == ResponseTime.unknown
        assert classify_response([], unanswered=True) == ResponseTime.never

    @pytest.mark.parametrize(
        ("latencies", "expected"),
        [
            ([timedelta(minutes=30)], ResponseTime.immediate),
            ([timedelta(hours=2)], ResponseTime.delayed),
            ([timedelta(hours=30)], ResponseTime.never),
            ([timedelta(minutes=10), timedelta(hours=2), timedelta(hours=3)], ResponseTime.delayed),
        ],
    )
    def test_response_median(self, latencies, expected):
        assert classify_response(latencies) == expected


class TestLearn:
    def test_frequent_logger(self, build, clock):
        observations = _daily_logs(clock, 20)
        observations[0] = observations[0].model_copy(update={"severity": Severity.moderate})

        profile = build().learn(observations, clock.now())

        assert profile.logging_frequency == LoggingFrequency.high
        assert profile.logging_ratio == 0.667
        assert profile.dominant_severity == Severity.mild
        assert profile.common_symptoms == ["headache"]
        assert profile.response_time == ResponseTime.unknown
        assert profile.updated_at == clock.now()

    def test_infrequent_logger(self, build, clock):
        profile = build().learn(_daily_logs(clock, 4), clock.now())
        assert profile.logging_frequency == LoggingFrequency.low

    def test_old_logs_ignored(self, build, clock):
        old = [
            SymptomObservation(timestamp=clock.now() - timedelta(days=40 + d))
            for d in range(25)
        ]
        assert build().learn(old, clock.now()).logging_ratio == 0.0


class TestRuns:
    async def test_run_publishes_profile(self, build, bus, clock):
        agent = build(_daily_logs(clock, 20))

        await agent.run_now()

        assert agent.profile is not None
        [message] = bus.receive("follow-up")
        assert message.type == MessageType.behavior_patterns_updated
        assert message.data["logging_frequency"] == "high"
        assert message.data["response_time"] == "unknown"

    async def test_unanswered_follow_up_is_never(self, build, clock):
        agent = build(_daily_logs(clock, 10))
        await agent.handle_message(_message(clock, MessageType.follow_up_sent))
        clock.advance(25 * 3600)

        await agent.run_now()

        assert agent.profile.response_time == ResponseTime.never


class TestMessages:
    async def test_response_time_uses_recent_window(self, build, clock):
        agent = build(_daily_logs(clock, 10))
        offset = 0.0
        for delay in [2.0] * 30 + [0.1] * 20:
            await agent.handle_message(_message(clock, MessageType.follow_up_sent, hours=offset))
            await agent.handle_message(_message(clock, MessageType.symptom_log_added, hours=offset + delay))
            offset += 3

        await agent.run_now()

        assert agent.profile.response_time == ResponseTime.immediate

    async def test_response_latency_measured(self, build, clock):
        agent = build(_daily_logs(clock, 10))
        await agent.handle_message(_message(clock, MessageType.follow_up_sent))
        await agent.handle_message(_message(clock, MessageType.symptom_log_added, hours=2))

        assert agent.profile is not None
        assert agent.profile.response_time == ResponseTime.delayed

    async def test_first_log_triggers_learning(self, build, clock):
        agent = build()
        assert agent.profile is None

        await agent.handle_message(_message(clock, MessageType.symptom_log_added))

        assert agent.profile is not None
        assert agent.status().run_count == 1

    async def test_fresh_profile_not_relearned(self, build, clock):
        agent = build(_daily_logs(clock, 10))
        await agent.run_now()
        clock.advance(3600)

        await agent.handle_message(_message(clock, MessageType.symptom_log_added))

        assert agent.status().run_count == 1

    async def test_stale_profile_relearned(self, build, clock):
        agent = build(_daily_logs(clock, 10))
        await agent.run_now()
        clock.advance(4 * 86400)

        await agent.handle_message(_message(clock, MessageType.symptom_log_added))

        assert agent.status().run_count == 2
        assert agent.profile.updated_at == clock.now()
