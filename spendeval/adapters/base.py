"""Base adapter interface and session id minting."""

from __future__ import annotations

import abc
import random
from typing import Optional

from spendeval.types import AgentResponse


class SessionIdFactory:
    """Mints fixed-width numeric session ids and never hands out the same one twice."""

    def __init__(self, width: int = 8, rng: Optional[random.Random] = None) -> None:
        self._width = width
        self._rng = rng or random.Random()
        self._issued: set[str] = set()

    def __call__(self) -> str:
        while True:
            candidate = str(self._rng.randrange(10**self._width)).zfill(self._width)
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    @property
    def issued(self) -> frozenset[str]:
        return frozenset(self._issued)


class BaseAdapter(abc.ABC):
    """All adapters implement invoke: one prompt in, tagged response and session id out."""

    name: str = "base"

    def __init__(self, session_ids: Optional[SessionIdFactory] = None) -> None:
        self.session_ids = session_ids or SessionIdFactory()

    @abc.abstractmethod
    async def invoke(
        self,
        prompt: str,
        run_id: str,
        previous_query: str = "",
    ) -> tuple[AgentResponse, str]:
        """Send a single prompt. Never raises for transport problems."""
        ...
