"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
"""

from core.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    PipelineError,
    PermanentError,
    TransientError,
    # Permanent errors
    ConfigError,
    UnknownTypeError,
    DeserializationError,
    # Transient errors
    BrokerError,
    SinkError,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    "PermanentError",
    "TransientError",
    # Permanent errors
    "ConfigError",
    "UnknownTypeError",
    "DeserializationError",
    # Transient errors
    "BrokerError",
    "SinkError",
]
