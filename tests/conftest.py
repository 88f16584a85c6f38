"""Shared fakes: a controllable clock and a scripted observability backend."""

from __future__ import annotations

from typing import Optional

import pytest

from spendeval.observability.base import ObservabilitySource
from spendeval.types import ObservedTrace


class FakeClock:
    """Monotonic clock that only moves when the code under test sleeps."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedObservability(ObservabilitySource):
    """Trace appears once the clock reaches trace_at, score once it reaches score_at.

    None for either means it never appears.
    """

    name = "scripted"

    def __init__(
        self,
        clock: FakeClock,
        trace_at: Optional[float] = 0.0,
        score_at: Optional[float] = 0.0,
        score: float = 9.0,
        trace_id: str = "trace-1",
    ) -> None:
        self.clock = clock
        self.trace_at = trace_at
        self.score_at = score_at
        self.score = score
        self.trace_id = trace_id
        self.trace_calls: list[str] = []
        self.score_calls: list[str] = []

    async def find_latest_trace(self, session_id: str) -> Optional[ObservedTrace]:
        self.trace_calls.append(session_id)
        if self.trace_at is not None and self.clock() >= self.trace_at:
            return ObservedTrace(id=self.trace_id)
        return None

    async def get_score(self, trace_id: str) -> Optional[float]:
        self.score_calls.append(trace_id)
        if self.score_at is not None and self.clock() >= self.score_at:
            return self.score
        return None

    def trace_url(self, trace_id: str) -> Optional[str]:
        return f"https://langfuse.test/project/p1/traces/{trace_id}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scripted(clock):
    def _make(**kwargs) -> ScriptedObservability:
        return ScriptedObservability(clock, **kwargs)

    return _make
