"""Configuration models for paylink clients.

This package provides Pydantic models for loading and validating the YAML
client configuration. All models are re-exported from this ``__init__``.
"""

# Retry and polling configuration
from paylink.core.config.resilience import (
    PollingConfig,
    RetryConfig,
)

# Transport and top-level client configuration
from paylink.core.config.client import (
    ClientConfig,
    TransportConfig,
)

__all__ = [
    "ClientConfig",
    "PollingConfig",
    "RetryConfig",
    "TransportConfig",
]
