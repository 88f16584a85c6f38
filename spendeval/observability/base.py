"""Observability source interface: trace correlation and score lookup."""

from __future__ import annotations

import abc
from datetime import datetime, timezone
from typing import Optional

from spendeval.types import ObservedTrace

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ObservabilitySource(abc.ABC):
    """Read side of the tracing backend.

    Both lookups return None for "not there yet" and never raise for
    transport problems, so polling loops keep going.
    """

    name: str = "base"

    @abc.abstractmethod
    async def find_latest_trace(self, session_id: str) -> Optional[ObservedTrace]:
        ...

    @abc.abstractmethod
    async def get_score(self, trace_id: str) -> Optional[float]:
        ...

    def trace_url(self, trace_id: str) -> Optional[str]:
        return None

    async def aclose(self) -> None:
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _sort_key(indexed: tuple[int, ObservedTrace]) -> tuple[datetime, int]:
    index, trace = indexed
    ts = trace.timestamp
    if ts is None:
        ts = _EPOCH
    elif ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts, index


def select_latest_trace(traces: list[ObservedTrace], policy: str = "backend_order") -> Optional[ObservedTrace]:
    """Pick the most recent trace of a session.

    backend_order: last element wins, trusting the backend to list traces
    in creation order. timestamp: latest creation timestamp wins, ties and
    missing timestamps fall back to backend order.
    """
    if not traces:
        return None
    if policy == "timestamp":
        return max(enumerate(traces), key=_sort_key)[1]
    return traces[-1]
