"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter.

    Produces one JSON object per line for easy parsing with jq/grep.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Kafka position
        "topic",
        "partition",
        "offset",
        "group_id",
        # Worker
        "worker_id",
        "worker_state",
        # Buffer / batch
        "batch_size",
        "buffer_size",
        "flush_threshold",
        "output_path",
        "duration_ms",
        # Records
        "record_type",
        "fields",
        # Errors
        "error_category",
        "error_message",
    ]

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Mirrors the layout "date [thread] LEVEL logger - message".
    """

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{datetime.now().strftime('%Y-%m-%d %H:%M:%S')} "
            f"[{record.threadName}] {record.levelname:<5} {record.name} - "
            f"{record.getMessage()}"
        )

        worker_id = getattr(record, "worker_id", None)
        if worker_id is not None:
            line = f"{line} (worker={worker_id})"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"

        return line
