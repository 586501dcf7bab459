"""Storage collaborator protocols.

The pipeline only reads ordered sequences and appends; completion and
cancellation of recommendations belong to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from typing import runtime_checkable

from carepilot.models.recommendations import Recommendation
from carepilot.models.symptoms import SymptomObservation


@runtime_checkable
class SymptomLogStore(Protocol):
    """Ordered (oldest first) log of symptom observations."""

    async def append(self, observation: SymptomObservation) -> str: ...

    async def list_all(self) -> list[SymptomObservation]: ...

    async def count(self) -> int: ...

    async def clear(self) -> None: ...


@runtime_checkable
class RecommendationStore(Protocol):
    """Ordered (oldest first) recommendations with completion toggles."""

    async def append(self, recommendations: Sequence[Recommendation]) -> list[str]: ...

    async def get(self, recommendation_id: str) -> Recommendation | None: ...

    async def list_all(self) -> list[Recommendation]: ...

    async def mark_completed(self, recommendation_id: str, completed: bool = True) -> Recommendation | None: ...

    async def mark_cancelled(self, recommendation_id: str, cancelled: bool = True) -> Recommendation | None: ...

    async def clear(self) -> None: ...
