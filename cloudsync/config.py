"""Configuration for the sync daemon.

Values come from ``CLOUDSYNC_*`` environment variables or a ``.env`` file; CLI
flags override them.
"""

import os
from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INTERVAL_SECONDS = 30.0


class FailurePolicy(str, Enum):
    """What the executor does when an action fails."""

    ABORT = "abort"  # stop the batch at the first failure
    CONTINUE = "continue"  # attempt every action and collect all errors


class Settings(BaseSettings):
    """Sync daemon settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDSYNC_",
        env_file=".env",
        extra="ignore",
    )

    local_path: str = "."
    remote_url: str = ""
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    failure_policy: FailurePolicy = FailurePolicy.ABORT
    log_level: str = "INFO"

    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str = "us-east-1"
    s3_endpoint_url: str | None = None

    @field_validator("local_path")
    @classmethod
    def normalize_local_path(cls, value: str) -> str:
        path = os.path.abspath(os.path.expanduser(value))
        if os.path.dirname(path) == path:
            raise ValueError(f"local_path cannot be the filesystem root: {path}")
        return path.rstrip(os.sep)

    @field_validator("interval_seconds")
    @classmethod
    def positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("interval_seconds must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.upper()
