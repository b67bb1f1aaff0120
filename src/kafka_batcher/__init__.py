"""
Kafka topic to batched file writer.

Consumes JSON records from a Kafka topic with a pool of worker threads,
accumulates them in one shared buffer, and writes every drained batch to
a new comma-separated file.

Modules:
    config.py       - BatcherConfig
    deserializer.py - RecordDeserializer
    buffer.py       - SharedBuffer, Batch
    schemas/        - record types and their registry
    writers/        - BatchSink, TabularBatchSink
    workers/        - ConsumerWorker, WorkerPool
"""

__version__ = "1.0.0"
