"""
Labeled sample types for distributed linear regression.

This module contains the feature vector representations used by every
pipeline stage:
- DenseVector: contiguous float64 storage backed by a NumPy array
- SparseVector: index -> value mapping of the non-zero entries
- LabeledSample: a feature vector together with its scalar label

The representation is picked once per dataset with an ``is_sparse`` flag and
never mixed inside one dataset.
"""

import numpy as np
from typing import Dict, Iterator, List, Optional, Tuple

from ddp_linreg.errors import PreconditionError


class DenseVector:
    """
    Dense feature vector with float64 storage.

    Attributes:
        values (np.ndarray): Feature values in index order
    """

    is_sparse = False

    def __init__(self, width: int = 0, values: Optional[List[float]] = None):
        if values is not None:
            self.values = np.asarray(values, dtype=np.float64).copy()
        else:
            self.values = np.zeros(width, dtype=np.float64)

    @property
    def width(self) -> int:
        return int(self.values.shape[0])

    def get(self, index: int) -> float:
        return float(self.values[index])

    def set(self, index: int, value: float) -> None:
        self.values[index] = value

    def resize(self, new_width: int) -> None:
        """
        Extend the vector to ``new_width`` features with zero fill.

        Raises:
            PreconditionError: If ``new_width`` is smaller than the current width.
        """
        if new_width < self.width:
            raise PreconditionError(
                f"Cannot shrink feature vector from {self.width} to {new_width}"
            )
        if new_width > self.width:
            self.values = np.concatenate(
                [self.values, np.zeros(new_width - self.width, dtype=np.float64)]
            )

    def to_dense(self) -> np.ndarray:
        return self.values.copy()

    def items(self) -> Iterator[Tuple[int, float]]:
        for index, value in enumerate(self.values):
            yield index, float(value)

    def __eq__(self, other):
        if not isinstance(other, DenseVector):
            return NotImplemented
        return np.array_equal(self.values, other.values)

    def __repr__(self):
        return f"DenseVector({self.values.tolist()})"


class SparseVector:
    """
    Sparse feature vector storing only non-zero entries.

    Attributes:
        entries (Dict[int, float]): Non-zero values keyed by feature index
    """

    is_sparse = True

    def __init__(self, width: int = 0, entries: Optional[Dict[int, float]] = None):
        self._width = width
        self.entries = {}
        for index, value in (entries or {}).items():
            self.set(index, value)

    @property
    def width(self) -> int:
        return self._width

    def get(self, index: int) -> float:
        if index < 0 or index >= self._width:
            raise IndexError(f"Feature index {index} out of range for width {self._width}")
        return self.entries.get(index, 0.0)

    def set(self, index: int, value: float) -> None:
        if index < 0 or index >= self._width:
            raise IndexError(f"Feature index {index} out of range for width {self._width}")
        if value == 0.0:
            self.entries.pop(index, None)
        else:
            self.entries[index] = float(value)

    def resize(self, new_width: int) -> None:
        """
        Extend the vector to ``new_width`` features. New indices read as zero.

        Raises:
            PreconditionError: If ``new_width`` is smaller than the current width.
        """
        if new_width < self._width:
            raise PreconditionError(
                f"Cannot shrink feature vector from {self._width} to {new_width}"
            )
        self._width = new_width

    def to_dense(self) -> np.ndarray:
        dense = np.zeros(self._width, dtype=np.float64)
        for index, value in self.entries.items():
            dense[index] = value
        return dense

    def items(self) -> Iterator[Tuple[int, float]]:
        for index in sorted(self.entries):
            yield index, self.entries[index]

    def __eq__(self, other):
        if not isinstance(other, SparseVector):
            return NotImplemented
        return self._width == other._width and self.entries == other.entries

    def __repr__(self):
        return f"SparseVector(width={self._width}, entries={self.entries})"


def make_vector(width: int, is_sparse: bool):
    """Create an all-zero feature vector of the requested representation."""
    return SparseVector(width) if is_sparse else DenseVector(width)


class LabeledSample:
    """A feature vector ``x`` with its regression target ``y``."""

    def __init__(self, x, y: float = 0.0):
        self.x = x
        self.y = float(y)

    @property
    def width(self) -> int:
        return self.x.width

    def __repr__(self):
        return f"LabeledSample(x={self.x!r}, y={self.y})"
