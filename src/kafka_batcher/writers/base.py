"""Batch sink interface."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from kafka_batcher.buffer import Batch
from kafka_batcher.schemas.registry import TypeDescriptor


class BatchSink(ABC):
    """
    Durably encodes one drained Batch to storage.

    Implementations own the batch for the duration of write() only and
    must release every resource they open before returning or raising.
    """

    @abstractmethod
    def write(self, batch: Batch, descriptor: TypeDescriptor) -> Optional[Path]:
        """
        Write a batch.

        Args:
            batch: Records to write
            descriptor: Field schema of the records

        Returns:
            Location the batch was written to, or None for an empty batch

        Raises:
            SinkError: If the batch could not be written; the batch is lost
        """
        ...
