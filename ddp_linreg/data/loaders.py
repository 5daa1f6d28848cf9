"""
Bulk loading of labeled samples from files.

This module contains the file-based alternative to the streamed load:
- libsvm: ``label index:value ...`` lines, read with scikit-learn
- tsv: tab separated values with the label in the last column, read with pandas

Rows are dealt out round-robin: row ``i`` belongs to worker ``i % world_size``.
The returned width is local; reconciling it across workers is the caller's job.
"""

import logging
import os
import numpy as np
import pandas as pd
from urllib.parse import urlparse
from sklearn.datasets import load_svmlight_file

from ddp_linreg.data.samples import DenseVector, LabeledSample, SparseVector
from ddp_linreg.data.store import Collection
from ddp_linreg.errors import PreconditionError, ProtocolError


logger = logging.getLogger(__name__)

SUPPORTED_DATA_FORMATS = ("libsvm", "tsv")


def resolve_local_path(url: str) -> str:
    """
    Turn a plain path or ``file://`` URL into a filesystem path.

    Raises:
        PreconditionError: For any other URL scheme.
    """
    parsed = urlparse(url)
    if parsed.scheme in ("", "file"):
        return parsed.path if parsed.scheme == "file" else url
    raise PreconditionError(f"Unsupported URL scheme '{parsed.scheme}' in {url}")


def _load_libsvm_rows(path: str, rank: int, world_size: int, collection: Collection) -> int:
    try:
        X, y = load_svmlight_file(path, dtype=np.float64)
    except ValueError as e:
        raise ProtocolError(f"Malformed libsvm file {path}: {e}") from e

    width = X.shape[1]
    added = 0
    for i in range(rank, X.shape[0], world_size):
        start, end = X.indptr[i], X.indptr[i + 1]
        indices, values = X.indices[start:end], X.data[start:end]
        if collection.is_sparse:
            x = SparseVector(width, dict(zip(indices.tolist(), values.tolist())))
        else:
            dense = np.zeros(width, dtype=np.float64)
            dense[indices] = values
            x = DenseVector(values=dense)
        collection.add_object(LabeledSample(x, y[i]))
        added += 1
    return added


def _load_tsv_rows(path: str, rank: int, world_size: int, collection: Collection) -> int:
    try:
        frame = pd.read_csv(path, sep="\t", header=None, dtype=np.float64)
    except pd.errors.EmptyDataError:
        return 0
    except ValueError as e:
        raise ProtocolError(f"Malformed tsv file {path}: {e}") from e

    if frame.shape[1] < 1:
        return 0

    rows = frame.to_numpy()
    width = rows.shape[1] - 1
    added = 0
    for i in range(rank, rows.shape[0], world_size):
        features, label = rows[i, :-1], rows[i, -1]
        if collection.is_sparse:
            nonzero = np.flatnonzero(features)
            x = SparseVector(width, dict(zip(nonzero.tolist(), features[nonzero].tolist())))
        else:
            x = DenseVector(values=features)
        collection.add_object(LabeledSample(x, label))
        added += 1
    return added


def load_data(url: str, collection: Collection, data_format: str = "libsvm", rank: int = 0, world_size: int = 1) -> int:
    """
    Append this worker's rows of ``url`` to ``collection``.

    Args:
        url (str): Local path or ``file://`` URL
        collection (Collection): Destination collection
        data_format (str): 'libsvm' or 'tsv'
        rank (int): This worker's rank
        world_size (int): Number of workers

    Returns:
        int: Widest feature vector held locally after the load

    Raises:
        PreconditionError: For an unsupported format or URL scheme.
        ProtocolError: If the file cannot be parsed.
        FileNotFoundError: If the file does not exist.
    """
    if data_format not in SUPPORTED_DATA_FORMATS:
        raise PreconditionError(f"Unsupported data format '{data_format}', expected one of {SUPPORTED_DATA_FORMATS}")

    path = resolve_local_path(url)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Data file not found: {path}")

    if data_format == "libsvm":
        added = _load_libsvm_rows(path, rank, world_size, collection)
    else:
        added = _load_tsv_rows(path, rank, world_size, collection)

    local_width = max((sample.width for sample in collection), default=0)
    logger.info(f"Rank {rank}: loaded {added} rows from {path} ({data_format})")
    return local_width

