"""Tests for the request boundary and the load operations."""

import pytest

from ddp_linreg.errors import ModelLookupError
from ddp_linreg.pipeline import (
    PipelineResult,
    get_params,
    load_from_stream,
    load_from_url,
    run_request,
    train,
)
from ddp_linreg.data.stream_reader import TokenListChannel
from tests.conftest import make_stream


class TestRunRequest:
    """Tests for run_request status mapping."""

    def test_ok_result_carries_value(self):
        result = run_request(lambda: 42)
        assert result.ok
        assert result.value == 42
        assert result.message is None

    def test_protocol_error(self, context):
        result = run_request(load_from_stream, context, "demo", TokenListChannel(["nope"]))
        assert result.status == "protocol_error"
        assert not result.ok

    def test_undecodable_token_is_protocol_error(self, context):
        result = run_request(load_from_stream, context, "demo", TokenListChannel([b"\xff"]))
        assert result.status == "protocol_error"

    def test_nan_feature_is_protocol_error(self, context):
        result = run_request(load_from_stream, context, "demo", TokenListChannel(["1", "1", "nan", "1_0"]))
        assert result.status == "protocol_error"
        assert "demo" not in context.registry

    def test_empty_dataset_is_precondition_violation(self, context):
        result = run_request(load_from_stream, context, "demo", TokenListChannel(["0"]))
        assert result.status == "precondition_violation"
        assert "demo" not in context.registry

    def test_lookup_failure(self, context):
        result = run_request(train, context, "missing", 0.1, 10)
        assert result.status == "lookup_failure"
        assert result.message == "No model named 'missing' on this worker"

    def test_untrained_export_is_precondition_violation(self, context, token_channel, linear_samples):
        run_request(load_from_stream, context, "demo", token_channel(linear_samples))
        assert run_request(get_params, context, "demo").status == "precondition_violation"

    def test_other_exceptions_propagate(self):
        def broken():
            raise TypeError("not a pipeline failure")

        with pytest.raises(TypeError):
            run_request(broken)

    def test_to_dict_renders_bytes_as_hex(self):
        assert PipelineResult("ok", value=b"\x01\xff").to_dict() == {
            'status': 'ok', 'value': '01ff', 'message': None
        }

    def test_from_error(self):
        result = PipelineResult.from_error(ModelLookupError("no such model"))
        assert (result.status, result.message) == ("lookup_failure", "no such model")


class TestLoadFromStream:
    """Tests for load_from_stream on a single worker."""

    def test_creates_model_with_reconciled_width(self, context, ragged_samples):
        width = load_from_stream(context, "demo", make_stream(ragged_samples))

        assert width == 3
        assert context.registry.get("demo").feature_count() == 3
        assert all(s.width == 3 for s in context.store.get_named_collection("demo"))

    def test_reload_replaces_dataset_and_model(self, context, token_channel, ragged_samples, linear_samples):
        load_from_stream(context, "demo", token_channel(ragged_samples))
        first_model = context.registry.get("demo")

        assert load_from_stream(context, "demo", token_channel(linear_samples)) == 2
        assert context.registry.get("demo") is not first_model
        assert len(context.store.get_named_collection("demo")) == len(linear_samples)

    def test_end_to_end_export(self, context, token_channel, linear_samples):
        load_from_stream(context, "demo", token_channel(linear_samples))
        run_request(train, context, "demo", 0.5, 10)
        result = run_request(get_params, context, "demo")

        assert result.ok
        assert len(result.value) == 4 + 3 * 8


class TestLoadFromUrl:
    """Tests for load_from_url on a single worker."""

    def test_libsvm_file(self, context, tmp_path):
        path = tmp_path / "train.libsvm"
        path.write_text("1.0 1:0.5 3:2.0\n2.0 2:1.0\n")

        assert load_from_url(context, "demo", str(path)) == 3
        assert len(context.store.get_named_collection("demo")) == 2
        assert context.registry.get("demo").feature_count() == 3

    def test_missing_file_propagates(self, context, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_from_url(context, "demo", str(tmp_path / "missing.tsv"), data_format="tsv")
