"""
Pytest fixtures for kafka_batcher unit tests.

Provides fixtures for:
- Test batcher configuration writing into tmp_path
- Isolated record type registry
- Fake broker consumers built from aiokafka ConsumerRecord objects
"""

import asyncio
import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest
from aiokafka.structs import ConsumerRecord, TopicPartition

from kafka_batcher.config import BatcherConfig
from kafka_batcher.deserializer import RecordDeserializer
from kafka_batcher.schemas.records import UserData
from kafka_batcher.schemas.registry import RecordTypeRegistry

TEST_TOPIC = "test.users"


def create_consumer_record(
    value: Any, offset: int = 0, partition: int = 0, topic: str = TEST_TOPIC
) -> ConsumerRecord:
    """Create ConsumerRecord from a dict (JSON-encoded) or raw bytes/str."""
    if isinstance(value, dict):
        value = json.dumps(value)
    if isinstance(value, str):
        value = value.encode("utf-8")
    return ConsumerRecord(
        topic=topic,
        partition=partition,
        offset=offset,
        timestamp=int(datetime.now(timezone.utc).timestamp() * 1000),
        timestamp_type=0,
        key=None,
        value=value,
        headers=[],
        checksum=None,
        serialized_key_size=0,
        serialized_value_size=len(value) if value is not None else 0,
    )


def user_payload(i: int) -> Dict[str, Any]:
    return {"name": f"user-{i}", "age": 20 + i, "gender": "F" if i % 2 else "M"}


class FakeConsumer:
    """
    Stand-in for AIOKafkaConsumer.

    Each getmany() call returns the next scripted poll: a list of
    ConsumerRecord (empty list = empty poll) or an exception to raise.
    Once the script is exhausted every poll is empty. Empty polls wait
    out the timeout like a real broker poll.
    """

    def __init__(
        self,
        polls: Optional[Sequence[Any]] = None,
        start_error: Optional[Exception] = None,
        commit_error: Optional[Exception] = None,
    ):
        self.polls: List[Any] = list(polls or [])
        self.start_error = start_error
        self.commit_error = commit_error
        self.started = False
        self.stopped = False
        self.commits = 0
        self.poll_timeouts: List[int] = []

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def getmany(self, timeout_ms: int = 0) -> Dict[TopicPartition, List[Any]]:
        self.poll_timeouts.append(timeout_ms)
        item = self.polls.pop(0) if self.polls else []
        if isinstance(item, Exception):
            raise item
        if not item:
            await asyncio.sleep(timeout_ms / 1000)
            return {}
        return {TopicPartition(item[0].topic, item[0].partition): list(item)}

    async def commit(self) -> None:
        self.commits += 1
        if self.commit_error is not None:
            raise self.commit_error

    async def stop(self) -> None:
        self.stopped = True


class FakeConsumerFactory:
    """Hands out prepared FakeConsumers, one per worker."""

    def __init__(self, consumers: Sequence[FakeConsumer]):
        self._consumers = list(consumers)
        self._lock = threading.Lock()
        self.created: List[FakeConsumer] = []

    def __call__(self, config: BatcherConfig) -> FakeConsumer:
        with self._lock:
            consumer = self._consumers.pop(0)
            self.created.append(consumer)
            return consumer


@pytest.fixture
def output_base(tmp_path):
    return tmp_path / "out" / "users"


@pytest.fixture
def batcher_config(output_base) -> BatcherConfig:
    """Create test batcher configuration."""
    return BatcherConfig(
        bootstrap_servers="localhost:9092",
        group_id="test-group",
        topic=TEST_TOPIC,
        poll_timeout_ms=10,
        flush_threshold=2,
        output_base_path=str(output_base),
        output_extension="csv",
        record_type="UserData",
    )


@pytest.fixture
def registry() -> RecordTypeRegistry:
    """Registry isolated from the process-wide default one."""
    reg = RecordTypeRegistry()
    reg.register("UserData", UserData)
    return reg


@pytest.fixture
def deserializer(registry) -> RecordDeserializer:
    return RecordDeserializer("UserData", registry=registry)


@pytest.fixture
def descriptor(registry):
    return registry.resolve("UserData")


def read_output_files(output_base) -> Dict[str, List[str]]:
    """Map output file name -> lines, for every file written under output_base."""
    return {
        path.name: path.read_text(encoding="utf-8").splitlines()
        for path in sorted(output_base.parent.glob(f"{output_base.name}_*"))
    }


@pytest.fixture
def make_message():
    """Factory fixture: create_consumer_record."""
    return create_consumer_record


@pytest.fixture
def make_payload():
    """Factory fixture: user_payload."""
    return user_payload


@pytest.fixture
def fake_consumer():
    """The FakeConsumer class, for building scripted consumers."""
    return FakeConsumer


@pytest.fixture
def consumer_factory():
    """Build a FakeConsumerFactory from a list of FakeConsumers."""
    return FakeConsumerFactory


@pytest.fixture
def output_files(output_base):
    """Callable returning {file name: lines} of everything written so far."""
    return lambda: read_output_files(output_base)
