"""Stub adapter for framework-only runs. Returns a canned agent response with no network call."""

from __future__ import annotations

from typing import Optional

from spendeval.adapters.base import BaseAdapter, SessionIdFactory
from spendeval.types import AgentResponse, AgentResult, AgentSuccess


class OfflineStubAdapter(BaseAdapter):
    """Returns a fixed successful response. Use only for framework sanity runs."""

    name = "offline_stub"

    def __init__(
        self,
        result: Optional[AgentResult] = None,
        session_ids: Optional[SessionIdFactory] = None,
    ) -> None:
        super().__init__(session_ids)
        self.result = result or AgentResult(
            rows=[{"total_spend": 0}],
            sql="SELECT 0 AS total_spend -- offline stub",
        )

    async def invoke(
        self,
        prompt: str,
        run_id: str,
        previous_query: str = "",
    ) -> tuple[AgentResponse, str]:
        return AgentSuccess(result=self.result), self.session_ids()
