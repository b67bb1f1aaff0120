"""Tests for the command line entry point."""

import json
import logging
import signal
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from aiokafka.errors import KafkaConnectionError

import kafka_batcher.workers.consumer_worker as consumer_worker_module
from core.errors import ConfigError
from kafka_batcher.__main__ import build_pool, main, parse_args
from kafka_batcher.workers.pool import WorkerPool
from kafka_batcher.writers.tabular import TabularBatchSink


@pytest.fixture
def restore_root_logging():
    """main() reconfigures the root logger; put the original handlers back."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "batcher.yaml"
    path.write_text(
        "bootstrap_servers: localhost:9092\n"
        "group_id: test-group\n"
        "topic: test.users\n"
        "thread_count: 2\n"
        "poll_timeout_ms: 10\n"
        f"output_base_path: {tmp_path / 'out' / 'users'}\n"
        "record_type: Data.UserData\n"
        f"log_file: {tmp_path / 'logs' / 'batcher.log'}\n",
        encoding="utf-8",
    )
    return path


class TestParseArgs:
    def test_config_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_log_level_override(self):
        args = parse_args(["--config", "c.yaml", "--log-level", "DEBUG"])

        assert args.config == "c.yaml"
        assert args.log_level == "DEBUG"


class TestBuildPool:
    def test_builds_pool_from_config(self, batcher_config):
        pool = build_pool(replace(batcher_config, thread_count=3))

        assert isinstance(pool, WorkerPool)
        assert isinstance(pool.sink, TabularBatchSink)
        assert len(pool.workers) == 3
        assert pool.deserializer.descriptor.field_names == ["name", "age", "gender"]

    def test_unknown_record_type_is_config_error(self, batcher_config):
        with pytest.raises(ConfigError, match="Data.Unknown"):
            build_pool(replace(batcher_config, record_type="Data.Unknown"))

    def test_unsupported_output_format_is_config_error(self, batcher_config):
        with pytest.raises(ConfigError, match="parquet"):
            build_pool(replace(batcher_config, output_format="parquet"))


class TestMain:
    def test_missing_config_file_exits_nonzero(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1

    def test_invalid_config_exits_nonzero(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("topic: only-a-topic\n", encoding="utf-8")

        assert main(["--config", str(path)]) == 1

    def test_unknown_record_type_exits_nonzero(
        self, config_path, monkeypatch, restore_root_logging
    ):
        monkeypatch.setenv("BATCHER_RECORD_TYPE", "Data.Unknown")

        assert main(["--config", str(config_path)]) == 1

    def test_exits_when_all_workers_stopped(
        self, config_path, tmp_path, monkeypatch, restore_root_logging, fake_consumer
    ):
        created = []

        def failing_consumer(config):
            consumer = fake_consumer(start_error=KafkaConnectionError("no brokers"))
            created.append(consumer)
            return consumer

        monkeypatch.setattr(signal, "signal", MagicMock())
        monkeypatch.setattr(
            consumer_worker_module, "create_kafka_consumer", failing_consumer
        )

        assert main(["--config", str(config_path)]) == 0

        assert len(created) == 2
        assert all(c.stopped for c in created)
        assert signal.signal.call_count == 2

        log_file = tmp_path / "logs" / "batcher.log"
        entries = [
            json.loads(line)
            for line in log_file.read_text(encoding="utf-8").splitlines()
        ]
        messages = [e["msg"] for e in entries]
        assert "Batcher configured" in messages
        assert "Batcher shut down" in messages
        configured = entries[messages.index("Batcher configured")]
        assert configured["record_type"] == "Data.UserData"
        assert configured["fields"] == ["name", "age", "gender"]
