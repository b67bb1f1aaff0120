"""
Fixed-size pool of consumer workers.

All workers share one SharedBuffer, one deserializer and one sink, and
join the same consumer group so the broker spreads partitions across them.

Restart policy: none. A worker that stops (broker failure or unexpected
error) is logged and left stopped; the remaining workers keep running and
the pool never spawns a replacement.
"""

import asyncio
import logging
import threading
from typing import List, Optional

from kafka_batcher.buffer import SharedBuffer
from kafka_batcher.common.logging import LoggedClass, log_exception
from kafka_batcher.config import BatcherConfig
from kafka_batcher.deserializer import RecordDeserializer
from kafka_batcher.metrics import workers_alive
from kafka_batcher.workers.consumer_worker import ConsumerFactory, ConsumerWorker
from kafka_batcher.writers.base import BatchSink


class WorkerPool(LoggedClass):
    """
    Runs config.thread_count ConsumerWorkers on daemon threads.

    Usage:
        >>> pool = WorkerPool(config, deserializer, sink)
        >>> pool.start()
        >>> pool.join()
    """

    THREAD_NAME_PREFIX = "kafka-batcher-worker"

    def __init__(
        self,
        config: BatcherConfig,
        deserializer: RecordDeserializer,
        sink: BatchSink,
        buffer: Optional[SharedBuffer] = None,
        consumer_factory: Optional[ConsumerFactory] = None,
        max_polls: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize worker pool.

        Args:
            config: Batcher configuration (thread_count, group_id, ...)
            deserializer: Deserializer shared by all workers
            sink: Sink shared by all workers
            buffer: Shared buffer (default: a new SharedBuffer)
            consumer_factory: Broker consumer factory passed to every worker
            max_polls: Per-worker poll limit (testing)
            logger: Logger handle passed to the pool and its workers
        """
        super().__init__(logger=logger)
        self.config = config
        self.deserializer = deserializer
        self.sink = sink
        self.buffer = buffer if buffer is not None else SharedBuffer()

        self.workers: List[ConsumerWorker] = [
            ConsumerWorker(
                worker_id=i,
                config=config,
                buffer=self.buffer,
                deserializer=deserializer,
                sink=sink,
                consumer_factory=consumer_factory,
                max_polls=max_polls,
                logger=self._logger,
            )
            for i in range(config.thread_count)
        ]
        self._threads: List[threading.Thread] = []
        self._alive_lock = threading.Lock()
        self._alive = 0

    @property
    def alive_count(self) -> int:
        with self._alive_lock:
            return self._alive

    def start(self) -> None:
        """Start one thread per worker. Calling start() twice is ignored."""
        if self._threads:
            self._log(logging.WARNING, "Worker pool already started, ignoring")
            return

        self._log(
            logging.INFO,
            "Starting worker pool",
            topic=self.config.topic,
            group_id=self.config.group_id,
            flush_threshold=self.config.flush_threshold,
        )

        for worker in self.workers:
            thread = threading.Thread(
                target=self._run_worker,
                args=(worker,),
                name=f"{self.THREAD_NAME_PREFIX}-{worker.worker_id}",
                daemon=True,
            )
            with self._alive_lock:
                self._alive += 1
                workers_alive.set(self._alive)
            self._threads.append(thread)
            thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for every worker thread (each with the given timeout)."""
        for thread in self._threads:
            thread.join(timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop all workers and flush what is left in the buffer.

        Workers finish their current poll, then the remaining records are
        drained in one batch and written from the calling thread.
        """
        self._log(logging.INFO, "Stopping worker pool")
        for worker in self.workers:
            worker.stop()
        self.join(timeout)
        self.flush_remaining()

    def flush_remaining(self) -> bool:
        """Drain and write everything still buffered. False if it was lost."""
        batch = self.buffer.drain_all()
        if batch is None:
            return True
        self._log(
            logging.INFO,
            "Flushing remaining records",
            batch_size=len(batch),
        )
        return asyncio.run(self.workers[0].flush(batch))

    def _run_worker(self, worker: ConsumerWorker) -> None:
        try:
            worker.run()
        except Exception as e:
            log_exception(
                self._logger,
                e,
                "Worker thread exited with error",
                include_traceback=False,
                worker_id=worker.worker_id,
            )
        finally:
            with self._alive_lock:
                self._alive -= 1
                workers_alive.set(self._alive)
            self._log(
                logging.WARNING if worker.error is not None else logging.INFO,
                "Worker exited and will not be restarted",
                worker_id=worker.worker_id,
                worker_state=worker.state.value,
            )


__all__ = ["WorkerPool"]
