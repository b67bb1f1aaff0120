"""
Batch writers.

Writers:
    base.py    - BatchSink interface
    tabular.py - TabularBatchSink (comma-separated files with header row)

Use get_batch_sink() to build the writer selected by configuration.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from core.errors import ConfigError
from kafka_batcher.writers.base import BatchSink
from kafka_batcher.writers.tabular import TabularBatchSink, generate_output_path

# Output format selectors; "text" is accepted as an alias of "csv"
OUTPUT_FORMATS = ("csv", "text")


def get_batch_sink(
    output_format: str,
    base_path: Union[str, Path],
    extension: str,
    logger: Optional[logging.Logger] = None,
) -> BatchSink:
    """
    Return the sink for a configured output format.

    Raises:
        ConfigError: If the format is not supported
    """
    if output_format.strip().lower() in OUTPUT_FORMATS:
        return TabularBatchSink(base_path=base_path, extension=extension, logger=logger)
    raise ConfigError(
        f"Unsupported output format: {output_format!r} "
        f"(supported: {', '.join(OUTPUT_FORMATS)})"
    )


__all__ = [
    "BatchSink",
    "OUTPUT_FORMATS",
    "TabularBatchSink",
    "generate_output_path",
    "get_batch_sink",
]
