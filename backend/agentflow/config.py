"""
Engine configuration

Values come from environment variables with defaults matching the engine's
built-in behavior. Durations are in seconds.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


class EngineConfig(BaseModel):
    """Runtime configuration for the workflow engine and its services."""

    openai_base_url: str = Field("https://api.openai.com/v1", description="OpenAI API base URL")

    # Transport client defaults
    http_timeout: float = Field(30.0, gt=0, description="Default request timeout (seconds)")
    http_retries: int = Field(3, ge=0, description="Retries after the first attempt")
    http_retry_delay: float = Field(1.0, ge=0, description="Backoff base delay (seconds)")

    # Provider router
    rate_limit_max_requests: int = Field(60, ge=1)
    rate_limit_window_seconds: float = Field(60.0, gt=0)

    # Executor
    max_workflow_steps: int = Field(100, ge=1, description="Step budget per run")

    # Collaborators
    ledger_db_path: Optional[str] = Field(None, description="SQLite path for the run ledger")
    usage_db_path: Optional[str] = Field(None, description="SQLite path for LLM usage")
    redis_url: Optional[str] = Field(None, description="Redis URL for shared locks and rate limits")
    tools_file: Optional[str] = Field(None, description="JSON file of tool definitions to register")

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            http_timeout=_float("HTTP_TIMEOUT", 30.0),
            http_retries=_int("HTTP_RETRIES", 3),
            http_retry_delay=_float("HTTP_RETRY_DELAY", 1.0),
            rate_limit_max_requests=_int("RATE_LIMIT_MAX_REQUESTS", 60),
            rate_limit_window_seconds=_float("RATE_LIMIT_WINDOW_SECONDS", 60.0),
            max_workflow_steps=_int("MAX_WORKFLOW_STEPS", 100),
            ledger_db_path=os.getenv("LEDGER_DB_PATH") or None,
            usage_db_path=os.getenv("USAGE_DB_PATH") or None,
            redis_url=os.getenv("REDIS_URL") or None,
            tools_file=os.getenv("TOOLS_FILE") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
