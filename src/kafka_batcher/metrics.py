"""
Prometheus metrics for batcher monitoring.

Provides instrumentation for:
- Message consumption and deserialization failures
- Buffer occupancy
- Batch flushes, flush latency and lost batches
- Worker liveness
"""

from prometheus_client import Counter, Gauge, Histogram

# Consumption metrics
records_consumed_total = Counter(
    "batcher_records_consumed_total",
    "Total number of messages consumed from Kafka",
    ["topic", "status"],  # status: buffered, skipped
)

deserialization_errors_total = Counter(
    "batcher_deserialization_errors_total",
    "Messages skipped because they could not be deserialized",
    ["topic", "error_type"],
)

# Buffer metrics
buffered_records = Gauge(
    "batcher_buffered_records",
    "Records currently held in the shared buffer",
)

# Flush metrics
batches_flushed_total = Counter(
    "batcher_batches_flushed_total",
    "Total number of batches handed to the sink",
    ["status"],  # status: written, lost
)

records_flushed_total = Counter(
    "batcher_records_flushed_total",
    "Total number of records in flushed batches",
    ["status"],  # status: written, lost
)

batch_flush_duration_seconds = Histogram(
    "batcher_batch_flush_duration_seconds",
    "Time spent writing one batch to the sink",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Worker metrics
workers_alive = Gauge(
    "batcher_workers_alive",
    "Consumer workers currently running",
)

broker_errors_total = Counter(
    "batcher_broker_errors_total",
    "Unrecoverable broker failures that stopped a worker",
)


def record_message_consumed(topic: str, buffered: bool) -> None:
    records_consumed_total.labels(
        topic=topic, status="buffered" if buffered else "skipped"
    ).inc()


def record_deserialization_error(topic: str, error_type: str) -> None:
    deserialization_errors_total.labels(topic=topic, error_type=error_type).inc()


def record_batch_flush(batch_size: int, duration_seconds: float, written: bool) -> None:
    """Record the outcome of one batch write."""
    status = "written" if written else "lost"
    batches_flushed_total.labels(status=status).inc()
    records_flushed_total.labels(status=status).inc(batch_size)
    batch_flush_duration_seconds.observe(duration_seconds)


def update_buffered_records(count: int) -> None:
    buffered_records.set(count)


__all__ = [
    "batch_flush_duration_seconds",
    "batches_flushed_total",
    "broker_errors_total",
    "buffered_records",
    "deserialization_errors_total",
    "record_batch_flush",
    "record_deserialization_error",
    "record_message_consumed",
    "records_consumed_total",
    "records_flushed_total",
    "update_buffered_records",
    "workers_alive",
]
