"""Root conftest — suite markers, .env opt-ins and shared test doubles.

Unit tests run without external services.  The Redis testcontainer
lives in ``tests/integration/conftest.py``.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv

from carepilot.inference.gateway import AudioHandle
from carepilot.inference.gateway import InferenceRequest
from carepilot.observability import reset_metrics

# Load repository-root .env for test opt-ins (existing env vars stay authoritative).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=False)

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Attach suite markers from test path.

    - `tests/unit/*` -> `unit`
    - `tests/integration/*` -> `integration`
    """
    root = Path(__file__).resolve().parents[1]
    for item in items:
        item_path = Path(str(item.fspath)).resolve()
        try:
            rel = item_path.relative_to(root)
        except ValueError:
            continue

        parts = rel.parts
        if len(parts) < 2 or parts[0] != "tests":
            continue
        if parts[1] == "unit":
            item.add_marker(pytest.mark.unit)
        elif parts[1] == "integration":
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def _clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class ScriptedGateway:
    """Gateway double answering by instruction keyword.

    ``routes`` maps a substring of the instruction to either a raw string
    or an exception instance to raise.  Unmatched requests get ``"{}"``.
    Every request is recorded in ``calls``.
    """

    def __init__(
        self,
        routes: dict[str, str | dict | list | Exception] | None = None,
        *,
        transcript: str | Exception = "",
    ) -> None:
        self.routes = dict(routes or {})
        self.transcript = transcript
        self.calls: list[InferenceRequest] = []
        self.transcribed: list[AudioHandle] = []

    async def complete(self, request: InferenceRequest) -> str:
        self.calls.append(request)
        for needle, answer in self.routes.items():
            if needle in request.instruction:
                if isinstance(answer, Exception):
                    raise answer
                if isinstance(answer, (dict, list)):
                    return json.dumps(answer)
                return answer
        return "{}"

    async def transcribe(self, audio: AudioHandle) -> str:
        self.transcribed.append(audio)
        if isinstance(self.transcript, Exception):
            raise self.transcript
        return self.transcript

    def calls_matching(self, needle: str) -> list[InferenceRequest]:
        return [c for c in self.calls if needle in c.instruction]


class VirtualClock:
    """Clock double: ``sleep`` advances virtual time and yields to the loop."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


@pytest.fixture()
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture()
def make_gateway() -> type[ScriptedGateway]:
    """Factory for ``ScriptedGateway`` instances."""
    return ScriptedGateway
