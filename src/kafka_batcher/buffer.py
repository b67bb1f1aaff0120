"""
Thread-safe record buffer shared by all consumer workers.

Records accumulate in arrival order until a drain takes them out as an
immutable Batch. Every drain observes the size, snapshots the contents and
removes exactly the snapshotted records inside one critical section, so
two workers can never flush the same record and no record is lost
between the check and the removal.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Batch:
    """Immutable snapshot of buffered records taken at drain time."""

    records: Tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.records)


class SharedBuffer:
    """
    Mutex-guarded accumulation of records with an atomic drain protocol.

    Only append() and the drain_* operations change the contents; the
    underlying list is never exposed.

    Thread Safety:
    - One threading.Lock guards the list and the idle timestamp
    - append() holds the lock only for the O(1) append, so it proceeds
      while a drained Batch is being written by a sink
    - size_at_least() and __len__() are advisory; never drain on their
      result, use drain_if_threshold() instead

    Usage:
        >>> buffer = SharedBuffer()
        >>> buffer.append(record)
        >>> batch = buffer.drain_if_threshold(100)
        >>> if batch is not None:
        ...     sink.write(batch, descriptor)
    """

    def __init__(self, clock=time.monotonic):
        """
        Initialize buffer.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._records: List[Any] = []
        self._lock = threading.Lock()
        self._clock = clock
        # When the oldest undrained record arrived; None while empty
        self._oldest_at: Optional[float] = None

    def append(self, record: Any) -> None:
        """Add one record. Safe to call from any thread."""
        with self._lock:
            if not self._records:
                self._oldest_at = self._clock()
            self._records.append(record)

    def size_at_least(self, threshold: int) -> bool:
        """Whether a drain may proceed. Not an authorization to drain."""
        with self._lock:
            return len(self._records) >= threshold

    def drain_if_threshold(self, threshold: int) -> Optional[Batch]:
        """
        Atomically drain the buffer if it holds at least threshold records.

        A threshold of 0 or 1 drains whenever the buffer is non-empty.

        Args:
            threshold: Minimum buffered records required to drain

        Returns:
            Batch with every buffered record in insertion order, or None if
            the threshold was not met (or the buffer is empty)
        """
        with self._lock:
            if not self._records or len(self._records) < threshold:
                return None
            return self._take_locked()

    def drain_if_idle(self, max_idle_seconds: float) -> Optional[Batch]:
        """
        Atomically drain the buffer if its oldest record has waited too long.

        Args:
            max_idle_seconds: Age of the oldest buffered record that
                triggers a drain; values <= 0 disable idle draining

        Returns:
            Batch, or None if the buffer is empty, idle draining is
            disabled, or the oldest record is younger than max_idle_seconds
        """
        if max_idle_seconds <= 0:
            return None

        with self._lock:
            if not self._records or self._oldest_at is None:
                return None
            if self._clock() - self._oldest_at < max_idle_seconds:
                return None
            return self._take_locked()

    def drain_all(self) -> Optional[Batch]:
        """Atomically drain whatever is buffered. None if empty."""
        with self._lock:
            if not self._records:
                return None
            return self._take_locked()

    def _take_locked(self) -> Batch:
        """Snapshot and remove the contents (caller holds self._lock)."""
        batch = Batch(records=tuple(self._records))
        # Same critical section as the snapshot: exactly these records go
        self._records = []
        self._oldest_at = None
        return batch

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["Batch", "SharedBuffer"]
