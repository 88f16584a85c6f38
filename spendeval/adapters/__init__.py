"""Adapters that send evaluation prompts to the spend agent."""

from spendeval.adapters.base import BaseAdapter, SessionIdFactory
from spendeval.adapters.offline_stub import OfflineStubAdapter
from spendeval.adapters.spend_agent import SpendAgentAdapter

__all__ = ["BaseAdapter", "OfflineStubAdapter", "SessionIdFactory", "SpendAgentAdapter"]
