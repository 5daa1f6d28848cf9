"""Tests for parameter stream persistence."""

from collections import namedtuple

import pytest

from ddp_linreg.utils.checkpoint import load_param_stream, param_key, save_param_stream


Message = namedtuple("Message", ["key", "value"])


class FakeFuture:
    def get(self, timeout=None):
        return None


class FakeProducer:
    """Records what would have been sent to Kafka."""

    def __init__(self):
        self.sent = []
        self.flushed = False

    def send(self, topic, key=None, value=None):
        self.sent.append((topic, key, value))
        return FakeFuture()

    def flush(self):
        self.flushed = True


class FakeConsumer:
    def __init__(self, batches):
        self.batches = list(batches)

    def poll(self, timeout_ms):
        return {"tp": self.batches.pop(0)} if self.batches else {}

    def close(self):
        pass


def test_param_key():
    assert param_key("housing", 3) == "housing_rank3"


class TestFilesystem:
    """Tests for filesystem persistence."""

    def test_save_then_load(self, tmp_path):
        path = save_param_stream(b"\x01\x02", "housing_rank0", str(tmp_path))

        assert path.endswith("housing_rank0.params")
        assert load_param_stream("housing_rank0", str(tmp_path)) == b"\x01\x02"

    def test_missing_key(self, tmp_path):
        assert load_param_stream("missing", str(tmp_path)) is None


class TestKafka:
    """Tests for Kafka persistence with injected clients."""

    kafka_config = {"bootstrap_servers": ["localhost:9092"], "param_topic": "params"}

    def test_save_sends_keyed_record(self):
        producer = FakeProducer()
        location = save_param_stream(b"\x00", "housing_rank1", kafka_config=self.kafka_config, producer=producer)

        assert location == "params:housing_rank1"
        assert producer.sent == [("params", "housing_rank1", b"\x00")]
        assert producer.flushed

    def test_load_finds_matching_key(self):
        consumer = FakeConsumer([[Message("other", b"\x09"), Message("housing_rank1", b"\x07")]])
        payload = load_param_stream("housing_rank1", kafka_config=self.kafka_config, consumer=consumer)
        assert payload == b"\x07"

    def test_load_times_out(self):
        consumer = FakeConsumer([[Message("other", b"\x09")]])
        assert load_param_stream("housing_rank1", kafka_config=self.kafka_config, consumer=consumer) is None
