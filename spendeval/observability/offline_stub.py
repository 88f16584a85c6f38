"""Stub observability source paired with the offline adapter."""

from __future__ import annotations

from typing import Optional

from spendeval.observability.base import ObservabilitySource
from spendeval.types import ObservedTrace


class OfflineStubObservability(ObservabilitySource):
    """Every session immediately has one trace carrying a fixed score."""

    name = "offline_stub"

    def __init__(self, score: float = 10.0) -> None:
        self.score = score

    async def find_latest_trace(self, session_id: str) -> Optional[ObservedTrace]:
        return ObservedTrace(id=f"offline-{session_id}")

    async def get_score(self, trace_id: str) -> Optional[float]:
        return self.score
