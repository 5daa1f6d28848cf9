"""Tests for scaling, the optimizer and the train request on a single worker."""

import numpy as np
import pytest

from ddp_linreg.data.samples import DenseVector, LabeledSample, SparseVector
from ddp_linreg.data.store import ObjectStore
from ddp_linreg.errors import ModelLookupError, PreconditionError
from ddp_linreg.models.linear_regression import LinearRegression
from ddp_linreg.pipeline import load_from_stream
from ddp_linreg.training.optimizer import SGD, build_design_matrix
from ddp_linreg.training.scaler import LinearScaler
from ddp_linreg.training.trainer import check_dataset_matches_model, train_model


def _dense_collection(rows, labels=None):
    collection = ObjectStore().create_named_collection("demo")
    labels = labels or [0.0] * len(rows)
    for row, label in zip(rows, labels):
        collection.add_object(LabeledSample(DenseVector(values=row), label))
    return collection


class TestLinearScaler:
    """Tests for LinearScaler."""

    def test_dense_min_max(self):
        collection = _dense_collection([[2.0, 5.0], [4.0, 5.0], [3.0, 5.0]])
        LinearScaler(2).fit_transform(collection)

        values = np.stack([s.x.values for s in collection])
        np.testing.assert_allclose(values[:, 0], [0.0, 1.0, 0.5])
        np.testing.assert_allclose(values[:, 1], [0.0, 0.0, 0.0])

    def test_sparse_max_abs_keeps_zeros(self):
        collection = ObjectStore().create_named_collection("demo", is_sparse=True)
        collection.add_object(LabeledSample(SparseVector(3, {0: -4.0}), 1.0))
        collection.add_object(LabeledSample(SparseVector(3, {0: 2.0, 2: 8.0}), 1.0))

        scaler = LinearScaler(3, is_sparse=True)
        scaler.fit_transform(collection)

        first, second = list(collection)
        assert first.x.entries == {0: -1.0}
        assert second.x.entries == {0: 0.5, 2: 1.0}
        np.testing.assert_array_equal(scaler.scale, [4.0, 1.0, 8.0])

    def test_empty_partition(self):
        collection = ObjectStore().create_named_collection("demo")
        scaler = LinearScaler(2)
        scaler.fit_transform(collection)
        np.testing.assert_array_equal(scaler.offset, [0.0, 0.0])
        np.testing.assert_array_equal(scaler.scale, [1.0, 1.0])

    def test_transform_before_fit(self):
        with pytest.raises(RuntimeError):
            LinearScaler(2).transform(_dense_collection([[1.0, 2.0]]))


class TestSGD:
    """Tests for the gradient descent optimizer."""

    def test_recovers_exact_linear_relation(self, linear_samples):
        rows = [features for features, _ in linear_samples]
        labels = [label for _, label in linear_samples]
        model = LinearRegression(2)

        losses = SGD().train(model, _dense_collection(rows, labels), num_rounds=2000, learning_rate=1.0)

        assert len(losses) == 2000
        np.testing.assert_allclose(model.params, [2.0, -1.0, 1.0], atol=1e-4)

    def test_first_loss_is_half_mean_squared_label(self):
        model = LinearRegression(1)
        losses = SGD().train(model, _dense_collection([[0.0], [1.0]], [2.0, 4.0]), 1, 0.1)
        assert losses[0] == pytest.approx(0.5 * (4.0 + 16.0) / 2)

    def test_no_samples_anywhere(self):
        with pytest.raises(PreconditionError):
            SGD().train(LinearRegression(2), ObjectStore().create_named_collection("demo"), 5, 0.1)

    def test_sparse_design_matrix(self):
        collection = ObjectStore().create_named_collection("demo", is_sparse=True)
        collection.add_object(LabeledSample(SparseVector(3, {1: 2.0}), 1.0))
        X, y = build_design_matrix(collection, 3, is_sparse=True)

        assert X.is_sparse
        np.testing.assert_array_equal(X.to_dense().numpy(), [[0.0, 2.0, 0.0]])
        np.testing.assert_array_equal(y.numpy(), [1.0])

    def test_empty_dense_design_matrix(self):
        X, y = build_design_matrix(ObjectStore().create_named_collection("demo"), 4, is_sparse=False)
        assert tuple(X.shape) == (0, 4)
        assert tuple(y.shape) == (0,)


class TestTrainModel:
    """Tests for the train request."""

    def test_loss_decreases_and_is_tracked(self, context, token_channel, linear_samples):
        load_from_stream(context, "housing", token_channel(linear_samples))
        losses = train_model(context, "housing", alpha=0.5, num_iter=50)

        assert len(losses) == 50
        assert losses[-1] < losses[0]
        assert context.metrics_tracker.get_loss_history("housing") == losses
        assert context.registry.get("housing").num_param() == 3
        assert "training" in context.profiler.timings

    def test_sparse_dataset_trains(self, context, token_channel, linear_samples):
        load_from_stream(context, "housing", token_channel(linear_samples), is_sparse=True)
        losses = train_model(context, "housing", alpha=0.5, num_iter=20)
        assert losses[-1] < losses[0]

    def test_unknown_model(self, context):
        with pytest.raises(ModelLookupError):
            train_model(context, "missing", 0.1, 10)

    def test_model_without_dataset(self, context):
        context.registry.create("orphan", 2)
        with pytest.raises(ModelLookupError):
            train_model(context, "orphan", 0.1, 10)

    def test_width_mismatch(self, context, token_channel, linear_samples):
        load_from_stream(context, "housing", token_channel(linear_samples))
        context.registry.create("housing", 3)
        with pytest.raises(PreconditionError):
            train_model(context, "housing", 0.1, 10)

    @pytest.mark.parametrize("alpha, num_iter", [(0.0, 10), (-0.1, 10), (0.1, 0)])
    def test_invalid_hyperparameters(self, context, token_channel, linear_samples, alpha, num_iter):
        load_from_stream(context, "housing", token_channel(linear_samples))
        with pytest.raises(PreconditionError):
            train_model(context, "housing", alpha, num_iter)


def test_check_dataset_matches_model_representation():
    collection = ObjectStore().create_named_collection("demo", is_sparse=True)
    with pytest.raises(PreconditionError):
        check_dataset_matches_model(collection, LinearRegression(2, is_sparse=False))
