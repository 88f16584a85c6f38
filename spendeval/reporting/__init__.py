"""Batch aggregation and the quality gate."""
