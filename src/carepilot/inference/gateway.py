"""Resilient client boundary to the external text-generation service.

The gateway owns throttling, retries and backoff.  Only throttling-class
failures (HTTP 429) and connection-level failures are retried; any other
HTTP error status fails the call immediately.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Protocol
from typing import runtime_checkable
from urllib.error import HTTPError
from urllib.error import URLError
from urllib.request import Request
from urllib.request import urlopen

from carepilot.config import InferenceConfig
from carepilot.inference.errors import InvalidResponse
from carepilot.inference.errors import MaxRetriesExceeded
from carepilot.inference.errors import RateLimited
from carepilot.inference.errors import RequestFailed
from carepilot.inference.errors import TransientNetworkError
from carepilot.observability import record_latency
from carepilot.observability import record_retry

logger = logging.getLogger(__name__)

AudioHandle = str | Path | bytes
Sleeper = Callable[[float], Awaitable[None]]

# "Please try again in 2.5s" / "try again in 450ms"
_RETRY_HINT_RE = re.compile(r"try again in\s*([\d.]+)\s*(ms|s)\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InferenceRequest:
    """One instruction/task pair sent to the provider."""

    instruction: str
    task: str
    max_tokens: int = 400
    temperature: float = 0.2


@runtime_checkable
class InferenceGateway(Protocol):
    """Protocol for inference providers.

    ``complete`` returns the raw message content; callers decode it with
    ``carepilot.inference.parsing``.  Tests use scripted fakes.
    """

    async def complete(self, request: InferenceRequest) -> str: ...

    async def transcribe(self, audio: AudioHandle) -> str: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_retry_hint(body: str) -> float | None:
    """Return the provider's "try again in ..." hint in seconds, if any."""
    match = _RETRY_HINT_RE.search(body)
    if match is None:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    return value / 1000.0 if match.group(2).lower() == "ms" else value


def _retry_after_header(exc: HTTPError) -> float | None:
    raw = exc.headers.get("Retry-After") if exc.headers is not None else None
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _encode_multipart(
    fields: dict[str, str], *, filename: str, content: bytes
) -> tuple[bytes, str]:
    boundary = f"carepilot-{uuid.uuid4().hex}"
    parts: list[bytes] = []
    for name, value in fields.items():
        parts.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'
            f"{value}\r\n".encode()
        )
    parts.append(
        f'--{boundary}\r\nContent-Disposition: form-data; name="file"; '
        f'filename="{filename}"\r\nContent-Type: application/octet-stream\r\n\r\n'.encode()
    )
    parts.append(content)
    parts.append(f"\r\n--{boundary}--\r\n".encode())
    return b"".join(parts), f"multipart/form-data; boundary={boundary}"


# ---------------------------------------------------------------------------
# Gateways
# ---------------------------------------------------------------------------


class NoopGateway:
    """Offline gateway: every completion is an empty JSON object.

    Consumers validate that against their schemas and fall back to their
    static defaults, so the pipeline stays fully deterministic.
    """

    async def complete(self, request: InferenceRequest) -> str:
        del request
        return "{}"

    async def transcribe(self, audio: AudioHandle) -> str:
        del audio
        return ""


class OpenAICompatibleGateway:
    """OpenAI-compatible chat-completions and transcription client."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4",
        transcription_model: str = "whisper-1",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        throttle_seconds: float = 0.5,
        backoff_base_seconds: float = 2.0,
        sleep: Sleeper | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._api_key = api_key
        self._model = model
        self._transcription_model = transcription_model
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._throttle_seconds = throttle_seconds
        self._backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep or asyncio.sleep

    # -- public --

    async def complete(self, request: InferenceRequest) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": request.instruction},
                {"role": "user", "content": request.task},
            ],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        body = json.dumps(payload).encode("utf-8")
        raw = await self._deliver(
            "inference.complete",
            "/chat/completions",
            body,
            "application/json",
        )
        try:
            data = json.loads(raw)
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise InvalidResponse(
                "provider response missing choices[0].message.content"
            ) from exc
        if not isinstance(content, str):
            raise InvalidResponse("provider response content must be a string")
        return content

    async def transcribe(self, audio: AudioHandle) -> str:
        if isinstance(audio, bytes):
            content, filename = audio, "recording.m4a"
        else:
            path = Path(audio)
            content = await asyncio.to_thread(path.read_bytes)
            filename = path.name
        body, content_type = _encode_multipart(
            {"model": self._transcription_model},
            filename=filename,
            content=content,
        )
        raw = await self._deliver(
            "inference.transcribe",
            "/audio/transcriptions",
            body,
            content_type,
        )
        try:
            text = json.loads(raw)["text"]
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidResponse("transcription response missing 'text'") from exc
        if not isinstance(text, str):
            raise InvalidResponse("transcription text must be a string")
        return text

    # -- retry loop --

    def _backoff(self, attempt: int) -> float:
        return self._backoff_base_seconds**attempt

    async def _deliver(
        self,
        operation: str,
        path: str,
        body: bytes,
        content_type: str,
    ) -> str:
        """Throttle, then attempt delivery up to ``max_retries`` times."""
        await self._sleep(self._throttle_seconds)

        start = perf_counter()
        ok = False
        last_error: Exception | None = None
        try:
            for attempt in range(1, self._max_retries + 1):
                try:
                    raw = await asyncio.to_thread(
                        self._post_sync, path, body, content_type
                    )
                    ok = True
                    return raw
                except RateLimited as exc:
                    last_error = exc
                    reason = "rate_limited"
                    wait = (
                        exc.retry_after
                        if exc.retry_after is not None
                        else self._backoff(attempt)
                    )
                except TransientNetworkError as exc:
                    last_error = exc
                    reason = "network"
                    wait = self._backoff(attempt)

                logger.warning(
                    "%s attempt %d/%d failed (%s): %s",
                    operation,
                    attempt,
                    self._max_retries,
                    reason,
                    last_error,
                )
                if attempt == self._max_retries:
                    break
                record_retry(operation=operation, reason=reason)
                logger.info("%s retrying in %.3fs", operation, wait)
                await self._sleep(wait)

            logger.error(
                "%s giving up after %d attempts", operation, self._max_retries
            )
            raise MaxRetriesExceeded(
                f"{operation}: max retries ({self._max_retries}) exceeded",
                attempts=self._max_retries,
            ) from last_error
        except RequestFailed as exc:
            logger.error("%s failed without retry: %s", operation, exc)
            raise
        finally:
            record_latency(
                operation=operation,
                duration_ms=(perf_counter() - start) * 1000,
                ok=ok,
            )

    def _post_sync(self, path: str, body: bytes, content_type: str) -> str:
        request = Request(
            url=f"{self._base_url}{path}",
            data=body,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": content_type,
            },
            method="POST",
        )
        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                return response.read().decode("utf-8")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            if exc.code == 429:
                hint = parse_retry_hint(detail)
                if hint is None:
                    hint = _retry_after_header(exc)
                raise RateLimited(
                    f"provider HTTP 429: {detail[:200]}", retry_after=hint
                ) from exc
            raise RequestFailed(
                f"provider HTTP {exc.code}: {detail[:200]}", status=exc.code
            ) from exc
        except URLError as exc:
            raise TransientNetworkError(
                f"provider network error: {exc.reason}"
            ) from exc
        except OSError as exc:
            raise TransientNetworkError(f"provider IO error: {exc}") from exc


def build_gateway(config: InferenceConfig, *, sleep: Sleeper | None = None) -> InferenceGateway:
    """Create a concrete gateway from ``InferenceConfig``."""

    provider = config.provider.strip().lower()
    if provider == "openai":
        if not config.api_key:
            raise ValueError("inference_config.api_key is required when provider='openai'")
        return OpenAICompatibleGateway(
            api_key=config.api_key,
            model=config.model,
            transcription_model=config.transcription_model,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            max_retries=config.max_retries,
            throttle_seconds=config.throttle_seconds,
            backoff_base_seconds=config.backoff_base_seconds,
            sleep=sleep,
        )
    if provider == "noop":
        return NoopGateway()
    raise ValueError(
        f"Unsupported inference_config.provider '{config.provider}'. "
        "Supported providers: openai, noop."
    )
