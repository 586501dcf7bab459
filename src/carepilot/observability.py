"""Lightweight in-process observability for inference calls and agent runs."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class LatencySummary:
    """Aggregated latency metrics for one operation."""

    count: int = 0
    error_count: int = 0
    total_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0
    last_ms: float = 0.0


class _MetricsRecorder:
    def __init__(self) -> None:
        self._lock = Lock()
        self._latency: dict[str, LatencySummary] = {}
        self._retries: Counter[tuple[str, str]] = Counter()

    def record_latency(self, *, operation: str, duration_ms: float, ok: bool) -> None:
        normalized = max(float(duration_ms), 0.0)
        with self._lock:
            summary = self._latency.setdefault(operation, LatencySummary())
            summary.count += 1
            if not ok:
                summary.error_count += 1
            summary.total_ms += normalized
            summary.last_ms = normalized
            if summary.count == 1:
                summary.min_ms = normalized
                summary.max_ms = normalized
            else:
                summary.min_ms = min(summary.min_ms, normalized)
                summary.max_ms = max(summary.max_ms, normalized)

        logger.debug(
            "latency operation=%s duration_ms=%.3f ok=%s",
            operation,
            normalized,
            ok,
        )

    def record_retry(self, *, operation: str, reason: str) -> None:
        with self._lock:
            self._retries[(operation, reason)] += 1
        logger.debug("retry operation=%s reason=%s", operation, reason)

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            result: dict[str, dict[str, float | int]] = {}
            for operation, summary in sorted(self._latency.items()):
                result[operation] = {
                    "count": summary.count,
                    "error_count": summary.error_count,
                    "total_ms": round(summary.total_ms, 3),
                    "avg_ms": round(
                        summary.total_ms / summary.count if summary.count else 0.0,
                        3,
                    ),
                    "min_ms": round(summary.min_ms, 3),
                    "max_ms": round(summary.max_ms, 3),
                    "last_ms": round(summary.last_ms, 3),
                }
            for (operation, reason), count in sorted(self._retries.items()):
                entry = result.setdefault(operation, {})
                entry[f"retries.{reason}"] = count
            return result

    def reset(self) -> None:
        with self._lock:
            self._latency.clear()
            self._retries.clear()


_RECORDER = _MetricsRecorder()


def record_latency(*, operation: str, duration_ms: float, ok: bool = True) -> None:
    """Record one latency sample."""
    _RECORDER.record_latency(operation=operation, duration_ms=duration_ms, ok=ok)


def record_retry(*, operation: str, reason: str) -> None:
    """Count one gateway retry (``reason`` is ``rate_limited`` or ``network``)."""
    _RECORDER.record_retry(operation=operation, reason=reason)


def metrics_snapshot() -> dict[str, dict[str, float | int]]:
    """Return current in-process aggregates keyed by operation."""
    return _RECORDER.snapshot()


def reset_metrics() -> None:
    """Clear all aggregates (test helper)."""
    _RECORDER.reset()
