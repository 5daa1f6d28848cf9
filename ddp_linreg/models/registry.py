"""
Per-worker registry of named models.

A registry is owned by one worker context and never shared between workers
or persisted. Entries are replaced by re-creation under the same name and
are never removed.
"""

import logging
from typing import Dict, List

from ddp_linreg.errors import ModelLookupError, PreconditionError
from ddp_linreg.models.linear_regression import LinearRegression


logger = logging.getLogger(__name__)


class ModelRegistry:
    """Mapping from model name to its LinearRegression state."""

    def __init__(self):
        self._models: Dict[str, LinearRegression] = {}

    def create(self, name: str, width: int, is_sparse: bool = False) -> LinearRegression:
        """
        Create a model sized to ``width`` features and store it under ``name``.

        Any model previously stored under ``name`` is discarded. The new model
        reports its loss after every round.

        Args:
            name (str): Model name
            width (int): Reconciled feature width
            is_sparse (bool): Feature representation of the training data

        Returns:
            LinearRegression: The newly created model

        Raises:
            PreconditionError: If ``width`` is not positive.
        """
        if width <= 0:
            raise PreconditionError(f"Cannot create model '{name}' with {width} features")

        model = LinearRegression(width, is_sparse)
        model.report_per_round = True
        if name in self._models:
            logger.info(f"Replacing model '{name}'")
        self._models[name] = model
        logger.info(f"Created model '{name}' with {width} features ({'sparse' if is_sparse else 'dense'})")
        return model

    def get(self, name: str) -> LinearRegression:
        """
        Return the model stored under ``name``.

        Raises:
            ModelLookupError: If no model with that name exists.
        """
        try:
            return self._models[name]
        except KeyError:
            raise ModelLookupError(f"No model named '{name}' on this worker") from None

    def names(self) -> List[str]:
        return list(self._models)

    def __contains__(self, name):
        return name in self._models

    def __len__(self):
        return len(self._models)
