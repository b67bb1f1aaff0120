"""
Comma-separated batch writer.

Writes each drained Batch to its own new file:
- Unique file name per batch (base path + "_" + uuid4 + "." + extension)
- Header row with the record type's field names
- One row per record, values rendered with str(), columns in header order
"""

import logging
import time
import uuid
from pathlib import Path
from typing import List, Optional, Union

import polars as pl

from core.errors import SinkError
from kafka_batcher.buffer import Batch
from kafka_batcher.common.logging import LoggedClass
from kafka_batcher.schemas.registry import TypeDescriptor
from kafka_batcher.writers.base import BatchSink


def generate_output_path(base_path: Union[str, Path], extension: str) -> Path:
    """
    Build a fresh output file path.

    Args:
        base_path: Path prefix (directory and file stem), e.g. "out/users"
        extension: File extension without the dot, e.g. "csv"

    Returns:
        Path like "out/users_1b4e28ba-2fa1-11d2-883f-0016d3cca427.csv"
    """
    return Path(f"{base_path}_{uuid.uuid4()}.{extension.lstrip('.')}")


class TabularBatchSink(LoggedClass, BatchSink):
    """
    Writer for comma-separated output files.

    Every batch goes to a new file created exclusively, so a header row is
    always written and no file is ever appended to across batches.

    Usage:
        >>> sink = TabularBatchSink(base_path="out/users", extension="csv")
        >>> path = sink.write(batch, registry.resolve("UserData"))
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        extension: str = "csv",
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize tabular sink.

        Args:
            base_path: Output path prefix
            extension: Output file extension
            logger: Logger handle (default: module logger)
        """
        super().__init__(logger=logger)
        self.base_path = str(base_path)
        self.extension = extension

        self._log(
            logging.INFO,
            "Initialized TabularBatchSink",
            output_path=f"{self.base_path}_<uuid>.{self.extension}",
        )

    def write(self, batch: Batch, descriptor: TypeDescriptor) -> Optional[Path]:
        """
        Write one batch to a new file.

        Returns:
            Path of the written file, or None if the batch is empty

        Raises:
            SinkError: If the file could not be created or written. A file
                that was created before the failure is left in place.
        """
        if not len(batch):
            return None

        path = generate_output_path(self.base_path, self.extension)
        start = time.perf_counter()

        try:
            df = self._batch_to_dataframe(batch, descriptor)
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x": the file must be new; the context manager closes it on
            # every exit path
            with open(path, "xb") as fh:
                df.write_csv(fh)
                fh.flush()
        except (OSError, pl.exceptions.PolarsError) as e:
            raise SinkError(
                f"Failed to write batch to {path}",
                path=str(path),
                cause=e,
                context={"batch_size": len(batch)},
            ) from e

        self._log(
            logging.INFO,
            "Batch written",
            output_path=str(path),
            batch_size=len(batch),
            record_type=descriptor.type_name,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return path

    def _batch_to_dataframe(
        self, batch: Batch, descriptor: TypeDescriptor
    ) -> pl.DataFrame:
        """
        Convert a batch to a string-typed Polars DataFrame.

        Columns follow the descriptor's field order; every value is rendered
        with str() so the file shows each field's natural representation.
        Empty strings become nulls, which write_csv emits as an empty field.
        """
        rows: List[List[Optional[str]]] = [
            [str(value) or None for value in descriptor.values(record)]
            for record in batch
        ]

        return pl.DataFrame(
            rows,
            schema=[(name, pl.Utf8) for name in descriptor.field_names],
            orient="row",
        )


__all__ = ["TabularBatchSink", "generate_output_path"]
