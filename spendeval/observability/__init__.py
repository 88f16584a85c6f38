"""Trace correlation, score lookup, and score polling against the tracing backend."""

from spendeval.observability.base import ObservabilitySource, select_latest_trace
from spendeval.observability.langfuse import LangfuseClient
from spendeval.observability.offline_stub import OfflineStubObservability
from spendeval.observability.waiter import ScoreTimeout, ScoreWaiter, WaitState

__all__ = [
    "LangfuseClient",
    "ObservabilitySource",
    "OfflineStubObservability",
    "ScoreTimeout",
    "ScoreWaiter",
    "WaitState",
    "select_latest_trace",
]
