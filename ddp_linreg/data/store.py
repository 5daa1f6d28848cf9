"""
Named sample collections for a single worker.

The object store keeps each worker's partition of a named dataset. The
pipeline only ever appends samples to a collection and iterates over it, so
the store exposes exactly that surface:
- create_named_collection / get_named_collection
- append
- for_each
"""

import logging
import threading
from typing import Callable, Dict, Iterator, List

from ddp_linreg.data.samples import LabeledSample
from ddp_linreg.errors import ModelLookupError


logger = logging.getLogger(__name__)


class Collection:
    """
    Ordered, append-only list of labeled samples.

    Attributes:
        name (str): Dataset name
        is_sparse (bool): Feature representation used by every sample
        samples (List[LabeledSample]): Samples in the order they were appended
    """

    def __init__(self, name: str, is_sparse: bool = False):
        self.name = name
        self.is_sparse = is_sparse
        self.samples: List[LabeledSample] = []
        self._lock = threading.Lock()

    def add_object(self, sample: LabeledSample) -> None:
        with self._lock:
            self.samples.append(sample)

    def __len__(self):
        return len(self.samples)

    def __iter__(self) -> Iterator[LabeledSample]:
        return iter(list(self.samples))


class ObjectStore:
    """Per-worker mapping from dataset name to its local collection."""

    def __init__(self):
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.Lock()

    def create_named_collection(self, name: str, is_sparse: bool = False) -> Collection:
        """
        Create an empty collection, replacing any existing one with the same name.

        Args:
            name (str): Dataset name
            is_sparse (bool): Whether samples use the sparse representation

        Returns:
            Collection: The new, empty collection
        """
        collection = Collection(name, is_sparse)
        with self._lock:
            if name in self._collections:
                logger.debug(f"Replacing existing collection '{name}'")
            self._collections[name] = collection
        return collection

    def get_named_collection(self, name: str) -> Collection:
        """
        Return the collection registered under ``name``.

        Raises:
            ModelLookupError: If no collection with that name exists.
        """
        with self._lock:
            try:
                return self._collections[name]
            except KeyError:
                raise ModelLookupError(f"No dataset named '{name}' on this worker") from None

    def has_collection(self, name: str) -> bool:
        with self._lock:
            return name in self._collections

    @staticmethod
    def append(handle: Collection, sample: LabeledSample) -> None:
        handle.add_object(sample)

    @staticmethod
    def for_each(handle: Collection, fn: Callable[[LabeledSample], None]) -> None:
        for sample in handle:
            fn(sample)
