"""Centralized configuration loaded from environment."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Spend agent
    agent_base_url: str = Field(default="http://localhost:8000", alias="AGENT_BASE_URL")
    workspace_id: int = Field(default=1173, alias="WORKSPACE_ID")
    llm_model: str = Field(default="gpt", alias="LLM_MODEL")
    agent_label: str = Field(default="dataviz", alias="AGENT_LABEL")
    source_screen: str = Field(default="dashboard", alias="SOURCE_SCREEN")
    invoke_timeout_s: float = Field(default=230.0, alias="INVOKE_TIMEOUT_S")

    # Langfuse
    langfuse_base_url: str = Field(default="https://langfuse.awsp.oraczen.xyz", alias="LANGFUSE_BASE_URL")
    langfuse_public_key: str = Field(default="", alias="LANGFUSE_PUBLIC_KEY")
    langfuse_secret_key: str = Field(default="", alias="LANGFUSE_SECRET_KEY")
    langfuse_project_id: str = Field(default="", alias="LANGFUSE_PROJECT_ID")
    langfuse_timeout_s: float = Field(default=30.0, alias="LANGFUSE_TIMEOUT_S")
    eval_metric_name: str = Field(default="nlp2sql_EVAL", alias="EVAL_METRIC_NAME")
    trace_selection: Literal["backend_order", "timestamp"] = Field(
        default="backend_order", alias="TRACE_SELECTION"
    )

    # Polling
    score_timeout_s: float = Field(default=90.0, alias="SCORE_TIMEOUT_S")
    poll_interval_s: float = Field(default=2.0, alias="POLL_INTERVAL_S")

    # Per-case and batch thresholds
    pass_threshold: float = Field(default=8.0, alias="PASS_THRESHOLD")
    max_reliability_failures: int = Field(default=0, alias="MAX_RELIABILITY_FAILURES")
    max_quality_failures: int = Field(default=3, alias="MAX_QUALITY_FAILURES")
    min_avg_score: float = Field(default=8.0, alias="MIN_AVG_SCORE")
    zero_row_policy: Literal["warn", "ignore"] = Field(default="warn", alias="ZERO_ROW_POLICY")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


settings = Settings()
