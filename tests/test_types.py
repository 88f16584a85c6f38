"""Tests for response validation, query text fallback, and the request envelope."""

from spendeval.types import (
    NOT_RETURNED,
    AgentFailure,
    AgentResult,
    AgentSuccess,
    InvokeInput,
    InvokeRequest,
    UserConfig,
    parse_agent_response,
)


def test_success_false_is_failure_even_with_result():
    body = {
        "success": False,
        "error": "LLM quota exceeded",
        "data": {"result": {"rows": [{"a": 1}], "sql": "SELECT 1"}},
    }
    resp = parse_agent_response(body)
    assert isinstance(resp, AgentFailure)
    assert resp.error == "LLM quota exceeded"


def test_success_false_without_message_gets_default_error():
    resp = parse_agent_response({"success": False})
    assert isinstance(resp, AgentFailure)
    assert resp.error == "API returned success=false"


def test_missing_result_is_success_without_result():
    for body in (
        {"success": True},
        {"success": True, "data": {}},
        {"success": True, "data": {"result": None}},
        {"success": True, "data": {"result": "oops"}},
    ):
        resp = parse_agent_response(body)
        assert isinstance(resp, AgentSuccess)
        assert resp.result is None


def test_non_object_body_is_failure():
    assert isinstance(parse_agent_response(["not", "a", "dict"]), AgentFailure)


def test_query_text_prefers_sql():
    result = AgentResult(sql="SELECT * FROM invoices", query_object={"table": "invoices"})
    assert result.query_text == "SELECT * FROM invoices"


def test_query_text_falls_back_to_query_object():
    result = AgentResult(sql="", query_object={"table": "invoices", "agg": "sum"})
    assert "invoices" in result.query_text
    assert result.query_text.startswith("{")

    assert AgentResult(query_object="invoices by supplier").query_text == "invoices by supplier"


def test_query_text_sentinel_when_nothing_returned():
    assert AgentResult().query_text == NOT_RETURNED
    assert AgentResult(sql=None, query_object={}).query_text == NOT_RETURNED


def test_row_count_only_counts_lists():
    assert AgentResult(rows=[{"a": 1}, {"a": 2}]).row_count == 2
    assert AgentResult(rows={"a": 1}).row_count == 0
    assert AgentResult().row_count == 0


def _request(previous_query=None) -> InvokeRequest:
    return InvokeRequest(
        input=InvokeInput(
            query="Show spend by supplier",
            workspace_id=1173,
            user_config=UserConfig(session_id="00001234"),
            previous_query=previous_query,
        )
    )


def test_payload_shape():
    payload = _request().to_payload()
    assert set(payload) == {"input", "kwargs", "config"}
    assert payload["kwargs"] == {} and payload["config"] == {}
    inp = payload["input"]
    assert inp["query"] == "Show spend by supplier"
    assert inp["workspace_id"] == 1173
    assert inp["user_config"]["session_id"] == "00001234"
    assert inp["user_config"]["group_ids"] == []
    assert inp["user_config"]["force_regenerate"] is True
    assert inp["additional_info"]["query_id"] == 0
    assert "previous_query" not in inp


def test_payload_keeps_previous_query_when_set():
    payload = _request(previous_query="Show total spend").to_payload()
    assert payload["input"]["previous_query"] == "Show total spend"
