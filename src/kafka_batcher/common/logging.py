"""
Logging utilities for kafka_batcher.

Components receive their logger handle at construction; these helpers
attach structured context fields to every record.
"""

import logging
from typing import Any, Dict, Optional


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (topic, offset, batch_size, etc.)

    Example:
        log_with_context(
            logger, logging.INFO, "Batch written",
            batch_size=len(batch),
            output_path=str(path),
        )
    """
    logger.log(level, msg, extra=kwargs)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_category from PipelineError subclasses.

    Args:
        logger: Logger instance
        exc: Exception to log
        msg: Context message
        level: Log level (default: ERROR)
        include_traceback: Include full traceback (default: True)
        **kwargs: Additional context fields

    Example:
        try:
            sink.write(batch, descriptor)
        except SinkError as e:
            log_exception(logger, e, "Batch lost", batch_size=len(batch))
    """
    error_category = kwargs.get("error_category")
    if error_category is None and hasattr(exc, "category"):
        cat = exc.category
        error_category = cat.value if hasattr(cat, "value") else str(cat)
        kwargs["error_category"] = error_category

    # Sanitize error message
    error_msg = str(exc)
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."
    kwargs["error_message"] = error_msg

    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=kwargs)
    else:
        logger.log(level, msg, extra=kwargs)


def message_context(message: Any) -> Dict[str, Any]:
    """
    Extract the Kafka position of a consumer record for logging.

    Args:
        message: aiokafka ConsumerRecord (or anything with the same attributes)

    Returns:
        Dict with topic/partition/offset fields that are present
    """
    ctx: Dict[str, Any] = {}
    for attr in ("topic", "partition", "offset"):
        value = getattr(message, attr, None)
        if value is not None:
            ctx[attr] = value
    return ctx


class LoggedClass:
    """
    Mixin providing an injected logger handle.

    Provides:
    - self._logger: Logger passed at construction, or a module logger
    - self._log(): Log with context
    - self._log_exception(): Exception logging with context

    Example:
        class Writer(LoggedClass):
            def __init__(self, path, logger=None):
                super().__init__(logger=logger)
                self.path = path
    """

    def __init__(self, *args, logger: Optional[logging.Logger] = None, **kwargs):
        self._logger = logger or get_logger(self.__class__.__module__)
        super().__init__(*args, **kwargs)

    def _log(self, level: int, msg: str, **extra: Any) -> None:
        log_with_context(self._logger, level, msg, **extra)

    def _log_exception(
        self,
        exc: Exception,
        msg: str,
        level: int = logging.ERROR,
        **extra: Any,
    ) -> None:
        log_exception(self._logger, exc, msg, level=level, **extra)
