"""CarePilot — FastMCP v2 server exposing the health pipeline as MCP tools.

Tools delegate to ``AutonomousHealthService``.  Call ``configure()``
before using the server; without a ``redis_url`` the symptom log and
recommendations live in process memory.
"""

from __future__ import annotations

import asyncio
import logging
import os
from time import perf_counter

from dotenv import load_dotenv
from fastmcp import FastMCP
from redis.asyncio import Redis  # type: ignore[import-untyped]

from carepilot.agents.analyzer import AudioRecording
from carepilot.agents.analyzer import TranscriptSource
from carepilot.agents.runtime import Clock
from carepilot.config import AgentCadenceConfig
from carepilot.config import FollowUpConfig
from carepilot.config import InferenceConfig
from carepilot.config import SchedulerConfig
from carepilot.config import StoreConfig
from carepilot.inference.gateway import build_gateway
from carepilot.inference.gateway import InferenceGateway
from carepilot.models.results import AgentStatusResult
from carepilot.models.results import ProcessSymptomResult
from carepilot.models.results import QuestionsResult
from carepilot.observability import metrics_snapshot
from carepilot.observability import record_latency
from carepilot.service import AutonomousHealthService
from carepilot.stores.base import RecommendationStore
from carepilot.stores.base import SymptomLogStore
from carepilot.stores.redis_store import RedisRecommendationStore
from carepilot.stores.redis_store import RedisSymptomLogStore

mcp = FastMCP("CarePilot")

MAX_APPOINTMENT_SYMPTOMS = 10

# ---------------------------------------------------------------------------
# Service instance (set via configure())
# ---------------------------------------------------------------------------

_service: AutonomousHealthService | None = None
_redis: Redis | None = None


async def configure(
    redis_url: str | None = None,
    *,
    inference_config: InferenceConfig | None = None,
    gateway: InferenceGateway | None = None,
    symptom_store: SymptomLogStore | None = None,
    recommendation_store: RecommendationStore | None = None,
    store_config: StoreConfig | None = None,
    clock: Clock | None = None,
    scheduler_config: SchedulerConfig | None = None,
    cadence: AgentCadenceConfig | None = None,
    follow_up_config: FollowUpConfig | None = None,
    start_agents: bool = False,
) -> None:
    """Build the service and its stores.

    Must be called before the MCP tools can function.  Explicit stores
    win over ``redis_url``.
    """
    global _service, _redis
    await shutdown()

    if redis_url is not None and (symptom_store is None or recommendation_store is None):
        prefix = (store_config or StoreConfig()).key_prefix
        _redis = Redis.from_url(redis_url)
        symptom_store = symptom_store or RedisSymptomLogStore(_redis, prefix=prefix)
        recommendation_store = recommendation_store or RedisRecommendationStore(_redis, prefix=prefix)

    _service = AutonomousHealthService(
        gateway or build_gateway(inference_config or InferenceConfig()),
        symptom_store=symptom_store,
        recommendation_store=recommendation_store,
        clock=clock,
        scheduler_config=scheduler_config,
        cadence=cadence,
        follow_up_config=follow_up_config,
    )
    if start_agents:
        await _service.start()


async def shutdown() -> None:
    """Stop the agents and close backend clients."""
    global _service, _redis
    if _service is not None:
        await _service.stop()
        _service = None
    if _redis is not None:
        try:
            await _redis.aclose()
        except RuntimeError:
            # Tests may reconfigure across event loops.
            pass
        _redis = None


def _get_service() -> AutonomousHealthService:
    """Return the service instance or raise."""
    if _service is None:
        raise RuntimeError("Service not configured. Call configure() first.")
    return _service


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool
async def process_symptom(
    transcript: str | None = None,
    audio_path: str | None = None,
) -> ProcessSymptomResult:
    """Turn a symptom narration into a decision, recommendations and a strategy.

    The new observation and recommendations are appended to the stores.

    Args:
        transcript: What the user said, as text.
        audio_path: Path to a recording to transcribe instead.
    """
    start = perf_counter()
    ok = False
    try:
        service = _get_service()

        if (transcript is None) == (audio_path is None):
            return ProcessSymptomResult(
                status="rejected",
                error_code="invalid_input",
                message="Provide exactly one of transcript or audio_path.",
            )
        source: TranscriptSource
        if audio_path is not None:
            source = AudioRecording(audio_path)
        else:
            assert transcript is not None
            if not transcript.strip():
                return ProcessSymptomResult(
                    status="rejected",
                    error_code="empty_transcript",
                    message="transcript must not be empty.",
                )
            source = transcript

        history = await service.symptom_store.list_all()
        existing = await service.recommendation_store.list_all()
        response = await service.process_symptom_autonomously(source, history, existing)

        await service.symptom_store.append(response.observation)
        await service.recommendation_store.append(response.recommendations)
        ok = True
        return ProcessSymptomResult(response=response)
    finally:
        record_latency(
            operation="mcp.process_symptom",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def appointment_questions(title: str) -> QuestionsResult:
    """Generate five questions to ask at an appointment.

    Args:
        title: Appointment type or title (e.g. "Neurologist visit").
    """
    start = perf_counter()
    ok = False
    try:
        service = _get_service()
        if not title.strip():
            return QuestionsResult(
                status="rejected",
                error_code="empty_title",
                message="title must not be empty.",
            )
        history = await service.symptom_store.list_all()
        questions = await service.create_appointment_questions(
            title.strip(), history[-MAX_APPOINTMENT_SYMPTOMS:]
        )
        ok = True
        return QuestionsResult(questions=questions)
    finally:
        record_latency(
            operation="mcp.appointment_questions",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def follow_up_questions() -> QuestionsResult:
    """Run a follow-up check now and return (and clear) the pending questions."""
    start = perf_counter()
    ok = False
    try:
        service = _get_service()
        await service.follow_up.check_now()
        ok = True
        return QuestionsResult(questions=service.follow_up.take_questions())
    finally:
        record_latency(
            operation="mcp.follow_up_questions",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def agent_status() -> AgentStatusResult:
    """Report each scheduled agent's counters plus in-process metrics."""
    service = _get_service()
    return AgentStatusResult(
        system=service.system_status(),
        agents=service.agent_statuses(),
        metrics=metrics_snapshot(),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _serve() -> None:
    await configure(
        os.getenv("CAREPILOT_REDIS_URL"),
        inference_config=InferenceConfig.from_env(),
        store_config=StoreConfig(key_prefix=os.getenv("CAREPILOT_KEY_PREFIX", "carepilot")),
        start_agents=True,
    )
    try:
        await mcp.run_async()
    finally:
        await shutdown()


def main() -> None:
    """``carepilot-server`` console script."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("CAREPILOT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
