"""
Feature width reconciliation across workers.

Workers stream disjoint partitions of one logical dataset and only learn its
true dimensionality once every partition has reported. The reconciler folds
each worker's widest sample into a max reduction and then pads every local
sample to the agreed width.
"""

import logging
from typing import Optional

from ddp_linreg.data.store import Collection, ObjectStore
from ddp_linreg.training.distributed import Aggregator, get_rank, max_aggregator


logger = logging.getLogger(__name__)


def local_max_width(collection: Collection) -> int:
    """Widest feature vector held by this worker (0 for an empty partition)."""
    widest = 0

    def visit(sample):
        nonlocal widest
        widest = max(widest, sample.width)

    ObjectStore.for_each(collection, visit)
    return widest


def pad_to_width(collection: Collection, width: int) -> int:
    """
    Zero-fill every sample narrower than ``width``.

    Returns:
        int: Number of samples that were extended
    """
    padded = 0

    def visit(sample):
        nonlocal padded
        if sample.width < width:
            sample.x.resize(width)
            padded += 1

    ObjectStore.for_each(collection, visit)
    return padded


def reconcile_feature_width(collection: Collection, aggregator: Optional[Aggregator] = None) -> int:
    """
    Agree on the global feature width and pad the local partition to it.

    Every worker of the process group must call this; the reduction blocks
    until all of them have contributed their local maximum.

    Args:
        collection (Collection): This worker's partition of the dataset
        aggregator (Optional[Aggregator]): Max reduction to fold into.
            Defaults to a fresh integer max aggregator.

    Returns:
        int: The global width (0 when every partition is empty)
    """
    aggregator = aggregator or max_aggregator()
    aggregator.update(local_max_width(collection))
    global_width = int(aggregator.reduce())

    padded = pad_to_width(collection, global_width)
    logger.info(
        f"Rank {get_rank()}: '{collection.name}' reconciled to {global_width} features "
        f"({padded} of {len(collection)} local samples padded)"
    )
    return global_width
