"""Spend Analyzer eval harness: agent invocation, trace/score correlation, and the CI quality gate."""

__version__ = "0.1.0"
