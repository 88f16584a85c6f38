"""Evaluation runner: loads suites, runs each prompt through invoke -> trace -> score, gates the batch."""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx

from spendeval.adapters.base import BaseAdapter
from spendeval.config import settings
from spendeval.logging import get_logger
from spendeval.observability.base import ObservabilitySource
from spendeval.observability.waiter import Clock, ScoreTimeout, ScoreWaiter, Sleep
from spendeval.reporting.aggregate import summarize_batch
from spendeval.reporting.gates import load_gate_policy, thresholds_from_settings
from spendeval.types import (
    AgentFailure,
    BatchResult,
    CaseReport,
    FailureClass,
    GateThresholds,
    PromptCase,
    Verdict,
)

logger = get_logger(__name__)

ZERO_ROWS_WARNING = "No rows returned for the given query"


def load_suite(path: str | Path) -> list[PromptCase]:
    """Load a JSONL suite file into PromptCase objects."""
    cases: list[PromptCase] = []
    suite_name = Path(path).stem
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            raw = json.loads(line)
            if not isinstance(raw, dict):
                raise ValueError(f"{path}: line {lineno} is not a JSON object")
            cases.append(
                PromptCase(
                    id=raw.get("id", f"{suite_name}_{len(cases):03d}"),
                    prompt=raw.get("prompt", raw.get("query", "")),
                    suite=suite_name,
                    title=raw.get("title", ""),
                    category=raw.get("category", "general"),
                    previous_query=raw.get("previous_query", ""),
                )
            )
    return cases


def _generate_run_id() -> str:
    now = datetime.now(timezone.utc)
    ts = now.strftime("%Y%m%d_%H%M%S")
    h = hashlib.sha256(now.isoformat().encode()).hexdigest()[:8]
    return f"{ts}_{h}"


def _invoke_run_id() -> str:
    return f"Auto-{int(time.time() * 1000)}"


class ReportAccumulator:
    """Append-only list of finished reports for one batch.

    Exactly one writer (the sequential batch loop). Reports are copied on
    append so later mutation of the caller's object cannot change the batch.
    """

    def __init__(self) -> None:
        self._reports: list[CaseReport] = []

    def append(self, report: CaseReport) -> None:
        self._reports.append(report.model_copy(deep=True))

    @property
    def reports(self) -> tuple[CaseReport, ...]:
        return tuple(self._reports)

    def __len__(self) -> int:
        return len(self._reports)


class EvalRunner:
    """Runs one prompt end to end and classifies the outcome.

    run() never raises for per-case failures: every failure path is written
    into the returned CaseReport. First failing condition wins:
    REQUEST_ERROR, INVALID_RESPONSE, NO_TRACE / NO_EVAL_SCORE, LOW_SCORE.
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        observability: ObservabilitySource,
        *,
        pass_threshold: float | None = None,
        score_timeout_s: float | None = None,
        poll_interval_s: float | None = None,
        zero_row_policy: str | None = None,
        accumulator: Optional[ReportAccumulator] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        run_id_factory: Callable[[], str] = _invoke_run_id,
    ) -> None:
        self.adapter = adapter
        self.observability = observability
        self.pass_threshold = settings.pass_threshold if pass_threshold is None else pass_threshold
        self.score_timeout_s = settings.score_timeout_s if score_timeout_s is None else score_timeout_s
        self.poll_interval_s = settings.poll_interval_s if poll_interval_s is None else poll_interval_s
        self.zero_row_policy = zero_row_policy or settings.zero_row_policy
        self.accumulator = accumulator
        self._sleep = sleep
        self._clock = clock
        self._run_id_factory = run_id_factory

    async def run(self, prompt: str, test_case_id: str, previous_query: str = "") -> CaseReport:
        report = CaseReport(test_case_id=test_case_id, prompt=prompt)
        started = self._clock()
        logger.info(f"--- Executing {test_case_id} ---")

        try:
            await self._execute(report, previous_query)
        finally:
            report.elapsed_ms = (self._clock() - started) * 1000.0

        if self.accumulator is not None:
            self.accumulator.append(report)

        suffix = f" ({report.failure.value})" if report.failure else ""
        logger.info(f"{test_case_id} Result: {report.verdict.value}{suffix}")
        return report

    def _new_waiter(self) -> ScoreWaiter:
        """One waiter per case; polling state never carries over between cases."""
        return ScoreWaiter(self.observability, clock=self._clock, sleep=self._sleep)

    def _fail(self, report: CaseReport, failure: FailureClass, error: str) -> None:
        report.verdict = Verdict.FAIL
        report.failure = failure
        report.error = error
        logger.warning(f"{report.test_case_id} {failure.value}: {error}")

    def _record_trace(self, report: CaseReport, trace_id: str) -> None:
        report.trace_id = trace_id
        report.trace_url = self.observability.trace_url(trace_id)

    async def _execute(self, report: CaseReport, previous_query: str) -> None:
        report.run_id = self._run_id_factory()

        # 1. Invoke
        try:
            response, session_id = await self.adapter.invoke(report.prompt, report.run_id, previous_query)
        except (httpx.HTTPError, OSError) as exc:
            self._fail(report, FailureClass.REQUEST_ERROR, f"{type(exc).__name__}: {exc}")
            return
        report.session_id = session_id

        if isinstance(response, AgentFailure):
            self._fail(report, FailureClass.REQUEST_ERROR, response.error)
            return

        # 2. Shape
        if response.result is None:
            self._fail(report, FailureClass.INVALID_RESPONSE, "Result object missing in response")
            return

        # 3. Extract
        report.row_count = response.result.row_count
        report.query_text = response.result.query_text
        if report.row_count == 0 and self.zero_row_policy == "warn":
            report.warnings.append(ZERO_ROWS_WARNING)
            logger.warning(f"{report.test_case_id}: {ZERO_ROWS_WARNING}")
        logger.info(f"Rows Returned: {report.row_count}")

        # 4. Wait for trace and score
        try:
            resolved = await self._new_waiter().wait_for_score(
                session_id,
                timeout_s=self.score_timeout_s,
                interval_s=self.poll_interval_s,
            )
        except ScoreTimeout as exc:
            if exc.trace_id is None:
                self._fail(report, FailureClass.NO_TRACE, str(exc))
            else:
                self._record_trace(report, exc.trace_id)
                self._fail(report, FailureClass.NO_EVAL_SCORE, str(exc))
            return

        self._record_trace(report, resolved.trace_id)
        report.score = resolved.value

        # 5/6. Threshold
        if resolved.value >= self.pass_threshold:
            report.verdict = Verdict.PASS
            report.failure = None
        else:
            self._fail(
                report,
                FailureClass.LOW_SCORE,
                f"Eval score {resolved.value:g} below pass threshold {self.pass_threshold:g}",
            )


async def execute_batch(
    cases: list[PromptCase],
    adapter: BaseAdapter,
    observability: ObservabilitySource,
    thresholds: GateThresholds | None = None,
    suite: str = "",
    **runner_options,
) -> BatchResult:
    """Run cases strictly in order and gate the batch.

    The accumulator lives for exactly this call: created here, appended to
    by the runner, read once for the summary.
    """
    run_id = _generate_run_id()
    accumulator = ReportAccumulator()
    runner = EvalRunner(adapter, observability, accumulator=accumulator, **runner_options)

    logger.info(f"Run {run_id}: adapter={adapter.name}, observability={observability.name}, cases={len(cases)}")

    for case in cases:
        await runner.run(case.prompt, case.id, case.previous_query)

    return summarize_batch(run_id, list(accumulator.reports), thresholds or thresholds_from_settings(), suite)


def resolve_adapter(adapter_name: str) -> BaseAdapter:
    """Resolve the invoker by name: http (default) or offline_stub."""
    if adapter_name in ("http", ""):
        from spendeval.adapters.spend_agent import SpendAgentAdapter
        return SpendAgentAdapter()

    if adapter_name == "offline_stub":
        from spendeval.adapters.offline_stub import OfflineStubAdapter
        return OfflineStubAdapter()

    raise ValueError(f"Unknown adapter '{adapter_name}' (expected http or offline_stub)")


def resolve_observability(adapter_name: str) -> ObservabilitySource:
    """The offline adapter pairs with the offline observability stub; everything else reads Langfuse."""
    if adapter_name == "offline_stub":
        from spendeval.observability.offline_stub import OfflineStubObservability
        return OfflineStubObservability()

    from spendeval.observability.langfuse import LangfuseClient
    return LangfuseClient()


async def execute_run(
    suite_path: str,
    adapter_name: str = "http",
    max_cases: int = 0,
    policy_path: str = "",
) -> BatchResult:
    """Load a suite, run it against the resolved backends, and return the gated result."""
    cases = load_suite(suite_path)
    if max_cases > 0:
        cases = cases[:max_cases]

    thresholds = load_gate_policy(policy_path) if policy_path else thresholds_from_settings()
    adapter = resolve_adapter(adapter_name)

    async with resolve_observability(adapter_name) as observability:
        return await execute_batch(
            cases,
            adapter,
            observability,
            thresholds=thresholds,
            suite=Path(suite_path).stem,
        )
