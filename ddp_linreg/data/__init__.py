"""
Data Module for ddp_linreg

This module contains the sample representations, the per-worker object
store of named collections, and the loaders that fill those collections
from token streams (files or Kafka) and bulk libsvm/tsv files.
"""

from ddp_linreg.data.store import Collection, ObjectStore
from ddp_linreg.data.samples import DenseVector, SparseVector, LabeledSample, make_vector
from ddp_linreg.data.stream_reader import (
    StreamChannel,
    TokenListChannel,
    KafkaTokenChannel,
    read_samples
)
from ddp_linreg.data.loaders import SUPPORTED_DATA_FORMATS, load_data, resolve_local_path

__all__ = [
    # Store
    'Collection',
    'ObjectStore',

    # Samples
    'DenseVector',
    'SparseVector',
    'LabeledSample',
    'make_vector',

    # Stream loading
    'StreamChannel',
    'TokenListChannel',
    'KafkaTokenChannel',
    'read_samples',

    # File loading
    'SUPPORTED_DATA_FORMATS',
    'load_data',
    'resolve_local_path',
]
