"""Core data models for prompt cases, agent calls, traces, reports, and gate verdicts."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

NOT_RETURNED = "NOT RETURNED"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

class FailureClass(str, Enum):
    REQUEST_ERROR = "REQUEST_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    NO_TRACE = "NO_TRACE"
    NO_EVAL_SCORE = "NO_EVAL_SCORE"
    LOW_SCORE = "LOW_SCORE"


RELIABILITY_FAILURES = frozenset({
    FailureClass.REQUEST_ERROR,
    FailureClass.INVALID_RESPONSE,
    FailureClass.NO_TRACE,
    FailureClass.NO_EVAL_SCORE,
})
QUALITY_FAILURES = frozenset({FailureClass.LOW_SCORE})


class Verdict(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class GateCategory(str, Enum):
    NONE = "NONE"
    RELIABILITY_FAILURE = "RELIABILITY_FAILURE"
    QUALITY_FAILURE = "QUALITY_FAILURE"
    EMPTY_BATCH = "EMPTY_BATCH"


# ---------------------------------------------------------------------------
# Prompt case (suite input)
# ---------------------------------------------------------------------------

class PromptCase(BaseModel):
    id: str
    prompt: str
    suite: str = ""
    title: str = ""
    category: str = "general"  # tricky | complex | edge | fuzzy | general
    previous_query: str = ""


# ---------------------------------------------------------------------------
# Invocation request (POST /react/invoke)
# ---------------------------------------------------------------------------

class UserConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    llm_model: str = "gpt"
    user_id: str = ""
    group_ids: list[str] = Field(default_factory=list)
    agent_label: str = "dataviz"
    include_recommendations: bool = True
    force_regenerate: bool = True
    include_insights: bool = True
    refresh_data: bool = True


class AdditionalInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_id: int = 0
    system_prompt: str = ""
    source_screen: str = "dashboard"
    run_id: str = ""


class InvokeInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    workspace_id: int
    user_config: UserConfig
    additional_info: AdditionalInfo = Field(default_factory=AdditionalInfo)
    previous_query: Optional[str] = None


class InvokeRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: InvokeInput
    kwargs: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_id(self) -> str:
        return self.input.user_config.session_id

    def to_payload(self) -> dict[str, Any]:
        """Wire body; an empty previous_query is left out entirely."""
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Invocation response (tagged success / failure)
# ---------------------------------------------------------------------------

class AgentResult(BaseModel):
    rows: Any = None
    sql: Any = None
    query_object: Any = None

    @property
    def row_count(self) -> int:
        return len(self.rows) if isinstance(self.rows, list) else 0

    @property
    def query_text(self) -> str:
        """SQL when present, else the abstract query object, else NOT_RETURNED."""
        if self.sql:
            return str(self.sql)
        if self.query_object:
            if isinstance(self.query_object, str):
                return self.query_object
            return json.dumps(self.query_object, ensure_ascii=False, default=str)
        return NOT_RETURNED


class AgentSuccess(BaseModel):
    status: Literal["success"] = "success"
    result: Optional[AgentResult] = None


class AgentFailure(BaseModel):
    status: Literal["failure"] = "failure"
    error: str
    status_code: Optional[int] = None


AgentResponse = Union[AgentSuccess, AgentFailure]


def parse_agent_response(payload: Any) -> AgentResponse:
    """Validate a raw /react/invoke body once, at the boundary.

    success=false always wins over any partial result the body carries.
    """
    if not isinstance(payload, dict):
        return AgentFailure(error="Response body is not a JSON object")
    if not payload.get("success"):
        return AgentFailure(error=str(payload.get("error") or "API returned success=false"))
    data = payload.get("data")
    result = data.get("result") if isinstance(data, dict) else None
    if not isinstance(result, dict):
        return AgentSuccess(result=None)
    return AgentSuccess(result=AgentResult.model_validate(result))


# ---------------------------------------------------------------------------
# Observability records
# ---------------------------------------------------------------------------

class ObservedTrace(BaseModel):
    id: str
    timestamp: Optional[datetime] = None


class ResolvedScore(BaseModel):
    value: float
    trace_id: str
    elapsed_s: float = 0.0


# ---------------------------------------------------------------------------
# Per-case report
# ---------------------------------------------------------------------------

class CaseReport(BaseModel):
    test_case_id: str
    prompt: str
    verdict: Verdict = Verdict.FAIL
    failure: Optional[FailureClass] = None
    row_count: int = 0
    query_text: str = NOT_RETURNED
    score: Optional[float] = None  # None = unavailable
    trace_id: Optional[str] = None
    trace_url: Optional[str] = None
    session_id: Optional[str] = None
    run_id: str = ""
    elapsed_ms: float = 0.0
    error: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Gate and batch summary
# ---------------------------------------------------------------------------

class GateThresholds(BaseModel):
    max_reliability_failures: int = 0
    max_quality_failures: int = 3
    min_avg_score: float = 8.0


class GateVerdict(BaseModel):
    passed: bool
    category: GateCategory
    reliability_failures: int = 0
    quality_failures: int = 0
    average_score: Optional[float] = None
    scored_cases: int = 0
    total_cases: int = 0
    reasons: list[str] = Field(default_factory=list)


class BatchResult(BaseModel):
    run_id: str
    suite: str = ""
    reports: list[CaseReport] = Field(default_factory=list)
    failure_counts: dict[str, int] = Field(default_factory=dict)
    reliability_failures: int = 0
    quality_failures: int = 0
    average_score: Optional[float] = None
    scored_cases: int = 0
    gate: GateVerdict
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @property
    def total_cases(self) -> int:
        return len(self.reports)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.reports if r.verdict == Verdict.PASS)
