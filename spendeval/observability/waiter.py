"""Bounded polling for an asynchronously produced trace and eval score.

The waiter is a small state machine:

    AWAITING_TRACE -> AWAITING_SCORE -> RESOLVED
    AWAITING_TRACE | AWAITING_SCORE -> TIMED_OUT

One clock reading at entry starts a single deadline shared by both waiting
states. Once a trace id is known it is never looked up again. Clock and
sleep are injectable so tests can drive time without real delays.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from spendeval.config import settings
from spendeval.logging import get_logger
from spendeval.observability.base import ObservabilitySource
from spendeval.types import ResolvedScore

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class WaitState(str, Enum):
    AWAITING_TRACE = "AWAITING_TRACE"
    AWAITING_SCORE = "AWAITING_SCORE"
    RESOLVED = "RESOLVED"
    TIMED_OUT = "TIMED_OUT"


class ScoreTimeout(Exception):
    """Deadline reached before a score was available."""

    def __init__(
        self,
        session_id: str,
        elapsed_s: float,
        timeout_s: float,
        trace_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id
        self.elapsed_s = elapsed_s
        self.timeout_s = timeout_s
        self.trace_id = trace_id
        missing = "score" if trace_id else "trace"
        super().__init__(
            f"Eval score not found within {timeout_s:g}s for session={session_id} "
            f"(no {missing} after {elapsed_s:.1f}s)"
        )

    @property
    def trace_found(self) -> bool:
        return self.trace_id is not None


class ScoreWaiter:
    def __init__(
        self,
        source: ObservabilitySource,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._source = source
        self._clock = clock
        self._sleep = sleep
        self.state = WaitState.AWAITING_TRACE

    async def wait_for_score(
        self,
        session_id: str,
        timeout_s: float | None = None,
        interval_s: float | None = None,
    ) -> ResolvedScore:
        timeout_s = settings.score_timeout_s if timeout_s is None else timeout_s
        interval_s = settings.poll_interval_s if interval_s is None else interval_s

        start = self._clock()
        trace_id: Optional[str] = None
        self.state = WaitState.AWAITING_TRACE
        logger.info(f"Waiting for eval score via session {session_id}")

        while True:
            elapsed = self._clock() - start
            if elapsed >= timeout_s:
                self.state = WaitState.TIMED_OUT
                raise ScoreTimeout(session_id, elapsed, timeout_s, trace_id)

            if trace_id is None:
                trace = await self._source.find_latest_trace(session_id)
                if trace is not None:
                    trace_id = trace.id
                    self.state = WaitState.AWAITING_SCORE
                    logger.info(f"Trace found after {elapsed:.0f}s: {trace_id}")
                else:
                    logger.debug(f"({elapsed:.0f}s) Trace not ready yet")

            if trace_id is not None:
                value = await self._source.get_score(trace_id)
                elapsed = self._clock() - start
                if value is not None:
                    if elapsed >= timeout_s:
                        # Arrived, but past the deadline.
                        self.state = WaitState.TIMED_OUT
                        raise ScoreTimeout(session_id, elapsed, timeout_s, trace_id)
                    self.state = WaitState.RESOLVED
                    logger.info(f"Eval score ready after {elapsed:.0f}s: {value:g}")
                    return ResolvedScore(value=value, trace_id=trace_id, elapsed_s=elapsed)
                logger.debug(f"({elapsed:.0f}s) Score not ready yet")

            remaining = timeout_s - (self._clock() - start)
            if remaining > 0:
                await self._sleep(min(interval_s, remaining))
