"""Langfuse public API client for session traces and eval scores."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from spendeval.config import settings
from spendeval.logging import get_logger
from spendeval.observability.base import ObservabilitySource, select_latest_trace
from spendeval.types import ObservedTrace

logger = get_logger(__name__)


def _to_trace(raw: dict[str, Any]) -> ObservedTrace:
    try:
        return ObservedTrace.model_validate({"id": str(raw["id"]), "timestamp": raw.get("timestamp")})
    except ValueError:
        logger.debug(f"Unparseable timestamp on trace {raw['id']}: {raw.get('timestamp')!r}")
        return ObservedTrace(id=str(raw["id"]))


class LangfuseClient(ObservabilitySource):
    name = "langfuse"

    def __init__(
        self,
        base_url: str | None = None,
        public_key: str | None = None,
        secret_key: str | None = None,
        project_id: str | None = None,
        metric_name: str | None = None,
        timeout_s: float | None = None,
        trace_selection: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.langfuse_base_url).rstrip("/")
        self.project_id = project_id if project_id is not None else settings.langfuse_project_id
        self.metric_name = metric_name or settings.eval_metric_name
        self.trace_selection = trace_selection or settings.trace_selection
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/api/public",
            auth=(
                public_key if public_key is not None else settings.langfuse_public_key,
                secret_key if secret_key is not None else settings.langfuse_secret_key,
            ),
            timeout=timeout_s or settings.langfuse_timeout_s,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.TimeoutException:
            logger.warning(f"Langfuse {path} timed out, will retry")
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                logger.debug(f"Langfuse {path} not found yet")
            else:
                logger.warning(f"Langfuse {path} returned HTTP {exc.response.status_code}")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Langfuse {path} failed: {exc!r}")
        return None

    async def find_latest_trace(self, session_id: str) -> Optional[ObservedTrace]:
        body = await self._get_json(f"/sessions/{session_id}")
        raw_traces = body.get("traces") if isinstance(body, dict) else None
        if not isinstance(raw_traces, list):
            raw_traces = []
        traces = [
            _to_trace(t) for t in raw_traces if isinstance(t, dict) and t.get("id")
        ]
        if not traces:
            logger.debug(f"No traces yet for session {session_id}")
            return None

        latest = select_latest_trace(traces, self.trace_selection)
        logger.debug(f"Selected trace {latest.id} of {len(traces)} for session {session_id}")
        return latest

    async def get_score(self, trace_id: str) -> Optional[float]:
        body = await self._get_json("/scores", params={"traceId": trace_id})
        scores = body.get("data") if isinstance(body, dict) else None

        if not isinstance(scores, list):
            return None

        for s in scores:
            if not isinstance(s, dict):
                continue
            if s.get("name") != self.metric_name or s.get("traceId") != trace_id:
                continue
            value = s.get("value")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning(f"Score '{self.metric_name}' on trace {trace_id} is not numeric: {value!r}")
                return None
            return float(value)
        return None

    def trace_url(self, trace_id: str) -> Optional[str]:
        if not self.project_id:
            return None
        return f"{self.base_url}/project/{self.project_id}/traces/{trace_id}"
