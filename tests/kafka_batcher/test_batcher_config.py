"""Tests for BatcherConfig loading, environment overrides and validation."""

import pytest

from core.errors import ConfigError
from kafka_batcher.config import BatcherConfig

REQUIRED = {
    "bootstrap_servers": "localhost:9092",
    "group_id": "batcher",
    "topic": "users",
    "output_base_path": "/tmp/out/users",
    "record_type": "UserData",
}


@pytest.fixture
def config_file(tmp_path):
    def write(text: str):
        path = tmp_path / "batcher.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    return write


class TestLoad:
    def test_load_flat_file(self, config_file):
        path = config_file(
            "bootstrap_servers: broker:9092\n"
            "group_id: g1\n"
            "topic: users\n"
            "thread_count: 3\n"
            "flush_threshold: 50\n"
            "output_base_path: /data/users\n"
            "output_extension: txt\n"
            "record_type: Data.UserData\n"
            "enable_auto_commit: false\n"
        )

        config = BatcherConfig.load(path, environ={})

        assert config.bootstrap_servers == "broker:9092"
        assert config.group_id == "g1"
        assert config.thread_count == 3
        assert config.flush_threshold == 50
        assert config.output_extension == "txt"
        assert config.record_type == "Data.UserData"
        assert config.enable_auto_commit is False

    def test_defaults(self):
        config = BatcherConfig.from_dict(REQUIRED, environ={})

        assert config.auto_offset_reset == "earliest"
        assert config.thread_count == 1
        assert config.flush_threshold == 100
        assert config.max_idle_seconds == 0.0
        assert config.output_extension == "csv"
        assert config.output_format == "csv"
        assert config.metrics_port == 0

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            BatcherConfig.load(tmp_path / "missing.yaml", environ={})

    def test_invalid_yaml_raises(self, config_file):
        path = config_file("topic: [unclosed\n")

        with pytest.raises(ConfigError, match="not valid YAML"):
            BatcherConfig.load(path, environ={})

    def test_non_mapping_raises(self, config_file):
        path = config_file("- a\n- b\n")

        with pytest.raises(ConfigError, match="key-value mapping"):
            BatcherConfig.load(path, environ={})

    def test_empty_file_reports_missing_keys(self, config_file):
        path = config_file("")

        with pytest.raises(ConfigError, match="Missing required configuration"):
            BatcherConfig.load(path, environ={})


class TestEnvironmentOverrides:
    def test_env_overrides_file_values(self):
        config = BatcherConfig.from_dict(
            {**REQUIRED, "thread_count": 2},
            environ={"BATCHER_THREAD_COUNT": "8", "BATCHER_TOPIC": "other"},
        )

        assert config.thread_count == 8
        assert config.topic == "other"

    def test_env_supplies_required_key(self):
        values = {k: v for k, v in REQUIRED.items() if k != "group_id"}

        config = BatcherConfig.from_dict(values, environ={"BATCHER_GROUP_ID": "env-group"})

        assert config.group_id == "env-group"

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("YES", True), ("1", True), ("off", False), ("0", False)],
    )
    def test_boolean_values(self, raw, expected):
        config = BatcherConfig.from_dict(
            REQUIRED, environ={"BATCHER_ENABLE_AUTO_COMMIT": raw}
        )

        assert config.enable_auto_commit is expected

    def test_unrelated_env_ignored(self):
        config = BatcherConfig.from_dict(REQUIRED, environ={"BATCHER_NOT_A_KEY": "x"})

        assert config.topic == "users"


class TestValidation:
    @pytest.mark.parametrize("key", sorted(REQUIRED))
    def test_missing_required_key(self, key):
        values = {k: v for k, v in REQUIRED.items() if k != key}

        with pytest.raises(ConfigError, match=key):
            BatcherConfig.from_dict(values, environ={})

    def test_empty_required_key(self):
        with pytest.raises(ConfigError, match="topic"):
            BatcherConfig.from_dict({**REQUIRED, "topic": ""}, environ={})

    def test_unknown_key_raises(self):
        with pytest.raises(ConfigError, match="flushThreshold"):
            BatcherConfig.from_dict({**REQUIRED, "flushThreshold": 5}, environ={})

    @pytest.mark.parametrize(
        "key,value",
        [
            ("thread_count", "many"),
            ("flush_threshold", "1.5"),
            ("enable_auto_commit", "maybe"),
            ("max_idle_seconds", "soon"),
            ("thread_count", True),
        ],
    )
    def test_unparseable_value_raises(self, key, value):
        with pytest.raises(ConfigError, match=f"Invalid value for {key}"):
            BatcherConfig.from_dict({**REQUIRED, key: value}, environ={})

    @pytest.mark.parametrize(
        "key,value",
        [
            ("thread_count", 0),
            ("max_poll_records", 0),
            ("poll_timeout_ms", -1),
            ("flush_threshold", -1),
            ("auto_offset_reset", "sometimes"),
            ("log_backup_count", -2),
        ],
    )
    def test_out_of_range_raises(self, key, value):
        with pytest.raises(ConfigError):
            BatcherConfig.from_dict({**REQUIRED, key: value}, environ={})

    @pytest.mark.parametrize("level", ["basicConfig", "VERBOSE", ""])
    def test_unknown_log_level_raises(self, level):
        with pytest.raises(ConfigError, match="log_level"):
            BatcherConfig.from_dict({**REQUIRED, "log_level": level}, environ={})

    def test_log_level_is_case_insensitive(self):
        config = BatcherConfig.from_dict({**REQUIRED, "log_level": "debug"}, environ={})

        assert config.log_level == "debug"

    def test_flush_threshold_zero_allowed(self):
        config = BatcherConfig.from_dict({**REQUIRED, "flush_threshold": 0}, environ={})

        assert config.flush_threshold == 0


class TestConsumerKwargs:
    def test_to_consumer_kwargs(self):
        config = BatcherConfig.from_dict(
            {**REQUIRED, "max_poll_records": 10, "auto_offset_reset": "latest"},
            environ={},
        )

        assert config.to_consumer_kwargs() == {
            "bootstrap_servers": "localhost:9092",
            "group_id": "batcher",
            "auto_offset_reset": "latest",
            "max_poll_records": 10,
            "enable_auto_commit": True,
        }
