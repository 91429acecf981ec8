"""Transport and top-level client configuration.

``ClientConfig`` is the root model loaded from YAML:

    transport:
      base_url: https://payroll.example.com/api
      timeout_seconds: 15
    retry:
      max_retries: 3
      base_delay_seconds: 1
      max_delay_seconds: 10
    polling:
      interval_seconds: 30
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from paylink.core.config.resilience import PollingConfig, RetryConfig
from paylink.core.constants import DEFAULT_BASE_URL, DEFAULT_REQUEST_TIMEOUT_SECONDS


class TransportConfig(BaseModel):
    """HTTP transport settings for the payroll backend."""

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Base URL of the backend API")
    timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        description="Transport timeout; expiry surfaces as a TIMEOUT failure",
    )
    headers: dict[str, str] = Field(
        default_factory=lambda: {"Content-Type": "application/json"},
        description="Headers sent with every request",
    )

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")


class ClientConfig(BaseModel):
    """Root configuration for a paylink client."""

    transport: TransportConfig = Field(default_factory=TransportConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum log level"
    )

    @classmethod
    def from_yaml(cls, path: Path) -> ClientConfig:
        """Load client configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> ClientConfig:
        """Load client configuration from a YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data or {})
