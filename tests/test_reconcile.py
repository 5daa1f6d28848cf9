"""Tests for feature width reconciliation."""

import numpy as np

from ddp_linreg.data.store import ObjectStore
from ddp_linreg.data.stream_reader import read_samples
from ddp_linreg.training.distributed import max_aggregator
from ddp_linreg.training.reconcile import local_max_width, pad_to_width, reconcile_feature_width


def _load(token_channel, samples, is_sparse=False):
    collection = ObjectStore().create_named_collection("demo", is_sparse)
    read_samples(token_channel(samples), collection)
    return collection


class TestReconcileFeatureWidth:
    """Tests for reconcile_feature_width on a single worker."""

    def test_pads_narrow_samples(self, token_channel, ragged_samples):
        collection = _load(token_channel, ragged_samples)

        assert reconcile_feature_width(collection) == 3
        first, second = list(collection)
        np.testing.assert_array_equal(first.x.values, [1.0, 2.0, 0.0])
        np.testing.assert_array_equal(second.x.values, [1.0, 2.0, 3.0])

    def test_sparse_padding_adds_no_entries(self, token_channel, ragged_samples):
        collection = _load(token_channel, ragged_samples, is_sparse=True)

        assert reconcile_feature_width(collection) == 3
        first = list(collection)[0]
        assert first.width == 3
        assert first.x.entries == {0: 1.0, 1: 2.0}

    def test_empty_partition_has_width_zero(self):
        collection = ObjectStore().create_named_collection("empty")
        assert reconcile_feature_width(collection) == 0

    def test_aggregator_folds_in_prior_values(self, token_channel, ragged_samples):
        collection = _load(token_channel, ragged_samples)
        aggregator = max_aggregator()
        aggregator.update(5)

        assert reconcile_feature_width(collection, aggregator) == 5
        assert all(sample.width == 5 for sample in collection)


def test_local_max_width(token_channel, ragged_samples):
    assert local_max_width(_load(token_channel, ragged_samples)) == 3


def test_pad_to_width_counts_extended_samples(token_channel, ragged_samples):
    collection = _load(token_channel, ragged_samples)
    assert pad_to_width(collection, 3) == 1
    assert pad_to_width(collection, 3) == 0
