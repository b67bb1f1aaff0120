"""
Entry point for running the batcher.

Usage:
    # Run with a configuration file
    python -m kafka_batcher --config config.yaml

    # Override the console log level
    python -m kafka_batcher --config config.yaml --log-level DEBUG

Shutdown:
    SIGINT/SIGTERM stop every worker after its current poll and flush the
    records still buffered. The process also exits once every worker has
    stopped on its own (broker failure); workers are never restarted.
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from prometheus_client import start_http_server

from core.errors import ConfigError, UnknownTypeError
from core.logging.setup import setup_logging
from kafka_batcher.config import BatcherConfig
from kafka_batcher.deserializer import RecordDeserializer
from kafka_batcher.schemas import default_registry
from kafka_batcher.workers.pool import WorkerPool
from kafka_batcher.writers import get_batch_sink

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)

# Seconds between liveness checks of the pool in the main thread
SUPERVISE_INTERVAL_SECONDS = 1.0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Consume records from Kafka and write them in batches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m kafka_batcher --config config.yaml
    BATCHER_THREAD_COUNT=4 python -m kafka_batcher --config config.yaml
        """,
    )

    parser.add_argument(
        "--config",
        required=True,
        help="Path to the key-value configuration file",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Console logging level (default: log_level from config)",
    )

    return parser.parse_args(argv)


def build_pool(
    config: BatcherConfig,
    pool_logger: Optional[logging.Logger] = None,
) -> WorkerPool:
    """
    Wire deserializer, sink and workers from configuration.

    Raises:
        ConfigError: If the record type is not registered or the output
            format is unsupported
    """
    deserializer = RecordDeserializer(config.record_type, registry=default_registry)
    try:
        descriptor = deserializer.descriptor
    except UnknownTypeError as e:
        raise ConfigError(
            f"record_type '{config.record_type}' is not registered "
            f"(known: {', '.join(default_registry.registered_names())})",
            cause=e,
        ) from e

    sink = get_batch_sink(
        config.output_format,
        base_path=config.output_base_path,
        extension=config.output_extension,
        logger=pool_logger,
    )

    logger.info(
        "Batcher configured",
        extra={
            "topic": config.topic,
            "group_id": config.group_id,
            "record_type": descriptor.type_name,
            "fields": descriptor.field_names,
            "flush_threshold": config.flush_threshold,
        },
    )

    return WorkerPool(config, deserializer, sink, logger=pool_logger)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = BatcherConfig.load(args.config)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    log_level = args.log_level or config.log_level.upper()
    main_logger = setup_logging(
        name="kafka_batcher",
        log_file=config.log_file,
        console_level=getattr(logging, log_level),
        max_bytes=config.log_max_bytes,
        backup_count=config.log_backup_count,
    )

    try:
        pool = build_pool(config, pool_logger=main_logger)
    except ConfigError as e:
        main_logger.error(f"Invalid configuration: {e}")
        return 1

    if config.metrics_port > 0:
        start_http_server(config.metrics_port)
        main_logger.info(f"Metrics server started on port {config.metrics_port}")

    shutdown_event = threading.Event()

    def handle_signal(signum, frame):
        main_logger.info(
            f"Received signal {signal.Signals(signum).name}, initiating shutdown..."
        )
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, handle_signal)

    pool.start()

    while pool.alive_count > 0 and not shutdown_event.is_set():
        shutdown_event.wait(SUPERVISE_INTERVAL_SECONDS)

    if not shutdown_event.is_set():
        main_logger.warning("All workers have stopped, exiting")

    pool.stop(timeout=config.poll_timeout_ms / 1000 + 30)
    main_logger.info("Batcher shut down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
