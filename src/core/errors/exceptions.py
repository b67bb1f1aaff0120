"""
Exception types and error classification for kafka_batcher.

Provides:
- ErrorCategory enum for handling decisions
- Typed exception hierarchy for batcher errors
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Failures tied to an external system (broker, filesystem)
                   that may not recur for the next message or batch
        PERMANENT: Failures that will not succeed on retry
                   (e.g., malformed payloads, configuration issues)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """
    Base exception for all batcher errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for handling decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Permanent Errors
# =============================================================================


class PermanentError(PipelineError):
    """Base class for errors that will not succeed on retry."""

    category = ErrorCategory.PERMANENT


class ConfigError(PermanentError):
    """Missing or invalid startup configuration. Prevents startup."""

    pass


class UnknownTypeError(PermanentError):
    """Configured record type name is not registered."""

    def __init__(
        self,
        type_name: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(
            f"Unknown record type '{type_name}'",
            cause,
            {"type_name": type_name, **(context or {})},
        )
        self.type_name = type_name


class DeserializationError(PermanentError):
    """Raw payload could not be decoded into a record."""

    pass


# =============================================================================
# Transient Errors
# =============================================================================


class TransientError(PipelineError):
    """Base class for failures of an external collaborator."""

    category = ErrorCategory.TRANSIENT


class BrokerError(TransientError):
    """Broker client failure. Fatal to the owning worker only."""

    pass


class SinkError(TransientError):
    """I/O failure while writing a batch. The batch is dropped."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message, cause, context)
        self.path = path
