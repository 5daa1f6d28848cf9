"""
Feature scaling applied to a dataset in place before training.

Statistics are computed from the data of every worker and immediately
applied to the same data (fit-and-transform). Raw values are not kept.
- Dense datasets are min-max scaled to [0, 1] per feature.
- Sparse datasets are divided by the per-feature maximum absolute value,
  which keeps implicit zeros at zero.
"""

import logging
import numpy as np

from ddp_linreg.data.store import Collection, ObjectStore
from ddp_linreg.training.distributed import elementwise_max_aggregator, min_aggregator


logger = logging.getLogger(__name__)


class LinearScaler:
    """
    Per-feature linear scaler fitted across all workers.

    Attributes:
        num_feature (int): Expected width of every sample
        is_sparse (bool): Representation of the dataset's vectors
        offset (np.ndarray): Value subtracted from each feature
        scale (np.ndarray): Divisor applied after the offset
    """

    def __init__(self, num_feature: int, is_sparse: bool = False):
        self.num_feature = num_feature
        self.is_sparse = is_sparse
        self.offset = None
        self.scale = None

    def fit(self, collection: Collection) -> "LinearScaler":
        """Collect global per-feature statistics. Collective: every worker must call it."""
        if self.is_sparse:
            max_abs = elementwise_max_aggregator(np.zeros(self.num_feature))

            def visit(sample):
                local = np.zeros(self.num_feature)
                for index, value in sample.x.items():
                    local[index] = abs(value)
                max_abs.update(local)

            ObjectStore.for_each(collection, visit)
            global_max_abs = np.asarray(max_abs.reduce(), dtype=np.float64)
            self.offset = np.zeros(self.num_feature)
            self.scale = np.where(global_max_abs > 0, global_max_abs, 1.0)
        else:
            low = min_aggregator(np.full(self.num_feature, np.inf))
            high = elementwise_max_aggregator(np.full(self.num_feature, -np.inf))

            def visit(sample):
                low.update(sample.x.values)
                high.update(sample.x.values)

            ObjectStore.for_each(collection, visit)
            global_low = np.asarray(low.reduce(), dtype=np.float64)
            global_high = np.asarray(high.reduce(), dtype=np.float64)
            spread = global_high - global_low
            self.offset = np.where(np.isfinite(global_low), global_low, 0.0)
            self.scale = np.where(np.isfinite(spread) & (spread > 0), spread, 1.0)

        return self

    def transform(self, collection: Collection) -> None:
        """Apply the fitted statistics to every local sample in place."""
        if self.offset is None:
            raise RuntimeError("LinearScaler.transform called before fit")

        def visit(sample):
            if self.is_sparse:
                for index, value in list(sample.x.items()):
                    sample.x.set(index, value / self.scale[index])
            else:
                sample.x.values = (sample.x.values - self.offset) / self.scale

        ObjectStore.for_each(collection, visit)

    def fit_transform(self, collection: Collection) -> None:
        self.fit(collection)
        self.transform(collection)
        logger.debug(f"Scaled '{collection.name}' ({len(collection)} local samples)")
