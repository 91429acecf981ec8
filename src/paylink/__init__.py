"""paylink - network resilience layer for the payroll admin client.

Error classification, retry with jittered backoff, single-flight request
lifecycle with cancellation, and visibility-aware polling.
"""

__version__ = "0.3.0"
