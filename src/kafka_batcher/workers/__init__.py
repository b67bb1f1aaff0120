"""
Kafka consumer workers.

Workers:
    consumer_worker.py - ConsumerWorker: poll, deserialize, buffer, flush
    pool.py            - WorkerPool: N workers on threads, one shared buffer

Scaling:
    - All workers join one consumer group
    - Parallelism is bounded by the topic's partition count
"""

from kafka_batcher.workers.consumer_worker import (
    ConsumerWorker,
    WorkerState,
    create_kafka_consumer,
)
from kafka_batcher.workers.pool import WorkerPool

__all__ = [
    "ConsumerWorker",
    "WorkerPool",
    "WorkerState",
    "create_kafka_consumer",
]
