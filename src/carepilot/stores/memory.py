"""In-process stores for tests and embedded use."""

from __future__ import annotations

from collections.abc import Sequence

from carepilot.models.recommendations import Recommendation
from carepilot.models.symptoms import SymptomObservation


class InMemorySymptomLogStore:
    def __init__(self, observations: Sequence[SymptomObservation] = ()) -> None:
        self._observations: list[SymptomObservation] = list(observations)

    async def append(self, observation: SymptomObservation) -> str:
        self._observations.append(observation)
        return observation.id

    async def list_all(self) -> list[SymptomObservation]:
        return sorted(self._observations, key=lambda o: o.timestamp)

    async def count(self) -> int:
        return len(self._observations)

    async def clear(self) -> None:
        self._observations.clear()


class InMemoryRecommendationStore:
    def __init__(self, recommendations: Sequence[Recommendation] = ()) -> None:
        self._items: dict[str, Recommendation] = {r.id: r for r in recommendations}

    async def append(self, recommendations: Sequence[Recommendation]) -> list[str]:
        for rec in recommendations:
            self._items[rec.id] = rec
        return [r.id for r in recommendations]

    async def get(self, recommendation_id: str) -> Recommendation | None:
        return self._items.get(recommendation_id)

    async def list_all(self) -> list[Recommendation]:
        return sorted(self._items.values(), key=lambda r: r.created_at)

    async def mark_completed(self, recommendation_id: str, completed: bool = True) -> Recommendation | None:
        return self._update(recommendation_id, is_completed=completed)

    async def mark_cancelled(self, recommendation_id: str, cancelled: bool = True) -> Recommendation | None:
        return self._update(recommendation_id, is_cancelled=cancelled)

    async def clear(self) -> None:
        self._items.clear()

    def _update(self, recommendation_id: str, **changes: bool) -> Recommendation | None:
        rec = self._items.get(recommendation_id)
        if rec is None:
            return None
        updated = rec.model_copy(update=changes)
        self._items[recommendation_id] = updated
        return updated
