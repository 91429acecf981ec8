"""Request execution: backoff, retries, single-flight requests and polling."""

from paylink.execution.backoff import BackoffPolicy, compute_backoff_delay
from paylink.execution.lifecycle import (
    RequestLifecycleManager,
    RequestOptions,
    RequestState,
)
from paylink.execution.polling import ConnectionStatus, PollingController, PollingStatus
from paylink.execution.retry import RetryExecutor, with_retry
from paylink.execution.retry_state import (
    RetryAttempt,
    RetryState,
    RetryStateMachine,
    RetryStatus,
)

__all__ = [
    "BackoffPolicy",
    "compute_backoff_delay",
    "RequestLifecycleManager",
    "RequestOptions",
    "RequestState",
    "ConnectionStatus",
    "PollingController",
    "PollingStatus",
    "RetryExecutor",
    "with_retry",
    "RetryAttempt",
    "RetryState",
    "RetryStateMachine",
    "RetryStatus",
]
