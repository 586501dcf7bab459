"""Redis-backed collaborator stores.

Each document is a JSON string keyed by ``{prefix}:observation:{id}`` or
``{prefix}:recommendation:{id}``.  A sorted set per kind
(``{prefix}:observations`` / ``{prefix}:recommendations``, score =
timestamp) keeps the log ordered oldest first.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from redis.asyncio import Redis  # type: ignore[import-untyped]

from carepilot.models.recommendations import Recommendation
from carepilot.models.symptoms import SymptomObservation

logger = logging.getLogger(__name__)

_CLEAR_BATCH_SIZE = 100


def _decode(raw: bytes | str) -> str:
    return raw.decode() if isinstance(raw, bytes) else raw


class _RedisDocumentStore:
    """Shared JSON-document-plus-index plumbing."""

    def __init__(self, redis: Redis, *, prefix: str, kind: str, index: str) -> None:
        self._redis = redis
        self._prefix = prefix
        self._doc_key = f"{prefix}:{kind}"
        self._index_key = f"{prefix}:{index}"

    def _key(self, doc_id: str) -> str:
        return f"{self._doc_key}:{doc_id}"

    async def _fetch_ordered(self) -> list[str]:
        ids = await self._redis.zrange(self._index_key, 0, -1)
        if not ids:
            return []

        decoded_ids = [_decode(raw_id) for raw_id in ids]
        pipe = self._redis.pipeline()
        for doc_id in decoded_ids:
            pipe.get(self._key(doc_id))
        raw_results = await pipe.execute()

        stale_ids: list[str] = []
        results: list[str] = []
        for doc_id, raw in zip(decoded_ids, raw_results):
            if raw is None:
                stale_ids.append(doc_id)
            else:
                results.append(_decode(raw))

        if stale_ids:
            logger.warning("Pruning %d stale %s index entries", len(stale_ids), self._index_key)
            await self._redis.zrem(self._index_key, *stale_ids)
        return results

    async def count(self) -> int:
        return await self._redis.zcard(self._index_key)

    async def clear(self) -> None:
        """Remove every key under this store's prefix, in batches."""
        batch: list = []
        for pattern in (f"{self._doc_key}:*", self._index_key):
            async for key in self._redis.scan_iter(match=pattern):
                batch.append(key)
                if len(batch) >= _CLEAR_BATCH_SIZE:
                    await self._redis.delete(*batch)
                    batch.clear()
        if batch:
            await self._redis.delete(*batch)


class RedisSymptomLogStore(_RedisDocumentStore):
    def __init__(self, redis: Redis, *, prefix: str = "carepilot") -> None:
        super().__init__(redis, prefix=prefix, kind="observation", index="observations")

    async def append(self, observation: SymptomObservation) -> str:
        pipe = self._redis.pipeline()
        pipe.set(self._key(observation.id), observation.model_dump_json())
        pipe.zadd(self._index_key, {observation.id: observation.timestamp.timestamp()})
        await pipe.execute()
        return observation.id

    async def list_all(self) -> list[SymptomObservation]:
        return [SymptomObservation.model_validate_json(raw) for raw in await self._fetch_ordered()]


class RedisRecommendationStore(_RedisDocumentStore):
    def __init__(self, redis: Redis, *, prefix: str = "carepilot") -> None:
        super().__init__(redis, prefix=prefix, kind="recommendation", index="recommendations")

    async def append(self, recommendations: Sequence[Recommendation]) -> list[str]:
        if not recommendations:
            return []
        pipe = self._redis.pipeline()
        for rec in recommendations:
            pipe.set(self._key(rec.id), rec.model_dump_json())
            pipe.zadd(self._index_key, {rec.id: rec.created_at.timestamp()})
        await pipe.execute()
        return [r.id for r in recommendations]

    async def get(self, recommendation_id: str) -> Recommendation | None:
        data = await self._redis.get(self._key(recommendation_id))
        if data is None:
            return None
        return Recommendation.model_validate_json(data)

    async def list_all(self) -> list[Recommendation]:
        return [Recommendation.model_validate_json(raw) for raw in await self._fetch_ordered()]

    async def mark_completed(self, recommendation_id: str, completed: bool = True) -> Recommendation | None:
        return await self._update(recommendation_id, is_completed=completed)

    async def mark_cancelled(self, recommendation_id: str, cancelled: bool = True) -> Recommendation | None:
        return await self._update(recommendation_id, is_cancelled=cancelled)

    async def _update(self, recommendation_id: str, **changes: bool) -> Recommendation | None:
        rec = await self.get(recommendation_id)
        if rec is None:
            return None
        updated = rec.model_copy(update=changes)
        await self._redis.set(self._key(recommendation_id), updated.model_dump_json())
        return updated
