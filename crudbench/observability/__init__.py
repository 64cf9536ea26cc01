"""
Observability Module.

Structured logging for benchmark runs.
"""

from crudbench.observability.logging import censor_sensitive_data, configure_logging

__all__ = [
    "censor_sensitive_data",
    "configure_logging",
]
