"""Adapter that calls the spend agent's /react/invoke endpoint."""

from __future__ import annotations

import json
import time
from typing import Optional

import httpx

from spendeval.adapters.base import BaseAdapter, SessionIdFactory
from spendeval.config import settings
from spendeval.logging import get_logger
from spendeval.types import (
    AdditionalInfo,
    AgentFailure,
    AgentResponse,
    InvokeInput,
    InvokeRequest,
    UserConfig,
    parse_agent_response,
)

logger = get_logger(__name__)

INVOKE_PATH = "/react/invoke"


class SpendAgentAdapter(BaseAdapter):
    name = "http"

    def __init__(
        self,
        base_url: str | None = None,
        timeout_s: float | None = None,
        session_ids: Optional[SessionIdFactory] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(session_ids)
        base_url = base_url if base_url is not None else settings.agent_base_url
        if not base_url:
            raise ValueError("AGENT_BASE_URL is missing in environment variables")
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s or settings.invoke_timeout_s
        self.workspace_id = settings.workspace_id
        self.llm_model = settings.llm_model
        self.agent_label = settings.agent_label
        self.source_screen = settings.source_screen
        self._transport = transport

    def build_request(
        self,
        prompt: str,
        run_id: str,
        session_id: str,
        previous_query: str = "",
    ) -> InvokeRequest:
        return InvokeRequest(
            input=InvokeInput(
                query=prompt,
                workspace_id=self.workspace_id,
                user_config=UserConfig(
                    session_id=session_id,
                    llm_model=self.llm_model,
                    agent_label=self.agent_label,
                ),
                additional_info=AdditionalInfo(
                    source_screen=self.source_screen,
                    run_id=run_id,
                ),
                previous_query=previous_query or None,
            )
        )

    async def invoke(
        self,
        prompt: str,
        run_id: str,
        previous_query: str = "",
    ) -> tuple[AgentResponse, str]:
        session_id = self.session_ids()
        payload = self.build_request(prompt, run_id, session_id, previous_query).to_payload()

        logger.info(f"Invoking agent: session={session_id} run={run_id}")
        logger.debug(f"POST {self.base_url}{INVOKE_PATH} body={json.dumps(payload, ensure_ascii=False)}")

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                resp = await client.post(INVOKE_PATH, json=payload)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            status = exc.response.status_code
            logger.warning(f"Agent returned HTTP {status} after {elapsed_ms:.0f}ms (session={session_id})")
            return AgentFailure(error=f"HTTP {status}: {exc.response.text[:500]}", status_code=status), session_id
        except (httpx.HTTPError, ValueError) as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            logger.warning(f"Agent call failed after {elapsed_ms:.0f}ms (session={session_id}): {exc!r}")
            return AgentFailure(error=f"{type(exc).__name__}: {exc}"), session_id

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(f"Agent responded in {elapsed_ms:.0f}ms (session={session_id})")
        logger.debug(f"Response body: {json.dumps(body, ensure_ascii=False, default=str)}")
        return parse_agent_response(body), session_id
