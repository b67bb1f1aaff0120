"""
Consumer worker: one poll loop feeding the shared buffer.

Each worker owns one aiokafka consumer and runs its own event loop on the
thread that calls run(). Per poll it:
1. Fetches up to max_poll_records messages (bounded wait)
2. Deserializes each message, skipping the ones that fail
3. Appends records to the shared buffer
4. Drains the buffer when the flush threshold (or idle timeout) is met
   and hands the batch to the sink

State machine:
    NEW -> POLLING -> PROCESSING -> DRAINING -> POLLING ...
    Any broker failure -> STOPPED (terminal, no restart)
"""

import asyncio
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

from aiokafka import AIOKafkaConsumer
from aiokafka.errors import CommitFailedError, KafkaError

from core.errors import BrokerError, DeserializationError, SinkError, UnknownTypeError
from kafka_batcher.buffer import Batch, SharedBuffer
from kafka_batcher.common.logging import LoggedClass, message_context
from kafka_batcher.config import BatcherConfig
from kafka_batcher.deserializer import RecordDeserializer
from kafka_batcher.metrics import (
    broker_errors_total,
    record_batch_flush,
    record_deserialization_error,
    record_message_consumed,
    update_buffered_records,
)
from kafka_batcher.writers.base import BatchSink

ConsumerFactory = Callable[[BatcherConfig], Any]


class WorkerState(str, Enum):
    """Lifecycle state of a ConsumerWorker."""

    NEW = "new"
    POLLING = "polling"
    PROCESSING = "processing"
    DRAINING = "draining"
    STOPPED = "stopped"


def create_kafka_consumer(config: BatcherConfig) -> AIOKafkaConsumer:
    """Create an aiokafka consumer subscribed to the configured topic.

    Must be called from inside the event loop that will drive the consumer.
    """
    return AIOKafkaConsumer(config.topic, **config.to_consumer_kwargs())


class ConsumerWorker(LoggedClass):
    """
    Polls Kafka, buffers records and flushes batches.

    Error policy:
    - DeserializationError / UnknownTypeError: logged, message skipped
    - SinkError: logged as data loss, batch dropped (never re-buffered)
    - Broker failure (KafkaError): logged, consumer released, worker
      enters STOPPED and returns; it is not restarted

    Usage:
        >>> worker = ConsumerWorker(
        ...     worker_id=0,
        ...     config=config,
        ...     buffer=buffer,
        ...     deserializer=RecordDeserializer(config.record_type),
        ...     sink=sink,
        ... )
        >>> worker.run()  # blocks the calling thread until stopped
    """

    def __init__(
        self,
        worker_id: int,
        config: BatcherConfig,
        buffer: SharedBuffer,
        deserializer: RecordDeserializer,
        sink: BatchSink,
        consumer_factory: Optional[ConsumerFactory] = None,
        max_polls: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize consumer worker.

        Args:
            worker_id: Worker number within the pool
            config: Batcher configuration
            buffer: Buffer shared with the other workers
            deserializer: Deserializer for the configured record type
            sink: Batch sink shared with the other workers
            consumer_factory: Builds the broker consumer (default: aiokafka)
            max_polls: Optional limit on the number of polls (None = unlimited).
                Useful for testing.
            logger: Logger handle (default: module logger)
        """
        super().__init__(logger=logger)
        self.worker_id = worker_id
        self.config = config
        self.buffer = buffer
        self.deserializer = deserializer
        self.sink = sink
        self.max_polls = max_polls

        self._consumer_factory = consumer_factory or create_kafka_consumer
        self._state = WorkerState.NEW
        self._running = False
        self._stop_requested = threading.Event()
        self._poll_count = 0
        self.error: Optional[BaseException] = None

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def poll_count(self) -> int:
        return self._poll_count

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self) -> None:
        """Run the poll loop on the calling thread until the worker stops."""
        asyncio.run(self.run_async())

    def stop(self) -> None:
        """Ask the loop to finish after the current poll. Safe from any thread."""
        self._stop_requested.set()

    async def run_async(self) -> None:
        """
        Poll loop.

        Returns after a broker failure, stop(), or max_polls polls.

        Raises:
            Exception: Unexpected (non-broker) errors are logged and re-raised
        """
        if self._state != WorkerState.NEW:
            self._log(logging.WARNING, "Worker already started, ignoring run call")
            return

        self._running = True
        self._state = WorkerState.POLLING
        consumer = None

        try:
            consumer = self._consumer_factory(self.config)
            await self._start_consumer(consumer)

            while not self._stop_requested.is_set():
                if self.max_polls is not None and self._poll_count >= self.max_polls:
                    self._log(
                        logging.INFO,
                        "Reached max_polls limit, stopping",
                        worker_id=self.worker_id,
                    )
                    break

                self._state = WorkerState.POLLING
                data = await self._poll(consumer)

                processed = False
                if data:
                    self._state = WorkerState.PROCESSING
                    for messages in data.values():
                        for message in messages:
                            self._process_message(message)
                    processed = True
                    await self._commit(consumer)

                self._state = WorkerState.DRAINING
                await self._maybe_drain(processed)

        except BrokerError as e:
            broker_errors_total.inc()
            self.error = e
            self._log_exception(
                e,
                "Broker failure, worker stopping without restart",
                worker_id=self.worker_id,
                group_id=self.config.group_id,
            )
        except Exception as e:
            self.error = e
            self._log_exception(
                e,
                "Worker terminated with unexpected error",
                worker_id=self.worker_id,
            )
            raise
        finally:
            self._running = False
            self._state = WorkerState.STOPPED
            if consumer is not None:
                await self._release_consumer(consumer)
            self._log(
                logging.INFO,
                "Consumer worker stopped",
                worker_id=self.worker_id,
                worker_state=self._state.value,
            )

    async def _start_consumer(self, consumer: Any) -> None:
        try:
            await consumer.start()
        except KafkaError as e:
            raise BrokerError(
                "Failed to start Kafka consumer",
                cause=e,
                context={"topic": self.config.topic},
            ) from e

        self._log(
            logging.INFO,
            "Consumer worker started",
            worker_id=self.worker_id,
            topic=self.config.topic,
            group_id=self.config.group_id,
        )

    async def _poll(self, consumer: Any) -> dict:
        try:
            return await consumer.getmany(timeout_ms=self.config.poll_timeout_ms)
        except KafkaError as e:
            raise BrokerError(
                "Kafka poll failed", cause=e, context={"topic": self.config.topic}
            ) from e
        finally:
            self._poll_count += 1

    async def _commit(self, consumer: Any) -> None:
        if self.config.enable_auto_commit:
            return
        try:
            await consumer.commit()
        except CommitFailedError as e:
            # Group rebalanced; uncommitted messages are redelivered
            self._log_exception(
                e,
                "Offset commit failed",
                level=logging.WARNING,
                worker_id=self.worker_id,
            )
        except KafkaError as e:
            raise BrokerError("Kafka offset commit failed", cause=e) from e

    def _process_message(self, message: Any) -> None:
        """Deserialize one message and buffer the record; skip it on failure."""
        try:
            record = self.deserializer.deserialize(message.value)
        except (DeserializationError, UnknownTypeError) as e:
            record_deserialization_error(self.config.topic, type(e).__name__)
            record_message_consumed(self.config.topic, buffered=False)
            self._log_exception(
                e,
                "Skipping message that could not be deserialized",
                level=logging.WARNING,
                worker_id=self.worker_id,
                record_type=self.deserializer.type_name,
                **message_context(message),
            )
            return

        self.buffer.append(record)
        record_message_consumed(self.config.topic, buffered=True)

    async def _maybe_drain(self, processed: bool) -> None:
        """Drain on threshold after processing, otherwise on idle timeout."""
        batch: Optional[Batch] = None
        if processed:
            batch = self.buffer.drain_if_threshold(self.config.flush_threshold)
        if batch is None:
            batch = self.buffer.drain_if_idle(self.config.max_idle_seconds)

        update_buffered_records(len(self.buffer))

        if batch is not None:
            await self.flush(batch)

    async def flush(self, batch: Batch) -> bool:
        """
        Hand a drained batch to the sink.

        Returns:
            True if written, False if the batch was lost
        """
        start = time.perf_counter()
        try:
            # Sink I/O runs off the event loop so consumer heartbeats continue
            await asyncio.to_thread(self.sink.write, batch, self.deserializer.descriptor)
        except SinkError as e:
            record_batch_flush(len(batch), time.perf_counter() - start, written=False)
            self._log_exception(
                e,
                "Batch lost: sink write failed",
                worker_id=self.worker_id,
                batch_size=len(batch),
                buffer_size=len(self.buffer),
                output_path=e.path,
            )
            return False

        record_batch_flush(len(batch), time.perf_counter() - start, written=True)
        return True

    async def _release_consumer(self, consumer: Any) -> None:
        try:
            await consumer.stop()
        except KafkaError as e:
            self._log_exception(
                e,
                "Error releasing Kafka consumer",
                level=logging.WARNING,
                worker_id=self.worker_id,
            )


__all__ = [
    "ConsumerWorker",
    "WorkerState",
    "create_kafka_consumer",
]
