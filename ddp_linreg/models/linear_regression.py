"""
Linear regression model trained with synchronous gradient descent.

The parameter vector holds one weight per feature followed by the
intercept, so a trained model over ``d`` features has ``d + 1`` parameters.
Before the first training round the model has no parameters at all.
"""

import numpy as np
from typing import List, Optional

from ddp_linreg.training.optimizer import SGD


class LinearRegression:
    """
    Named model state for one regression task on one worker.

    Attributes:
        num_feature (int): Feature width fixed at construction
        is_sparse (bool): Feature representation of the datasets it trains on
        report_per_round (bool): Log the global loss after each round
        params (Optional[np.ndarray]): Trained parameters, None before training
    """

    def __init__(self, num_feature: int, is_sparse: bool = False):
        self.num_feature = num_feature
        self.is_sparse = is_sparse
        self.report_per_round = False
        self.params: Optional[np.ndarray] = None

    def feature_count(self) -> int:
        return self.num_feature

    def num_param(self) -> int:
        return 0 if self.params is None else int(self.params.shape[0])

    def param_at(self, index: int) -> float:
        if self.params is None:
            raise IndexError("Model has not been trained yet")
        return float(self.params[index])

    def get_param(self) -> np.ndarray:
        """Copy of the parameter vector (empty before training)."""
        if self.params is None:
            return np.zeros(0, dtype=np.float64)
        return self.params.copy()

    def train(self, collection, num_iter: int, alpha: float, optimizer_class=SGD) -> List[float]:
        """
        Train for ``num_iter`` rounds with step size ``alpha``.

        Returns:
            List[float]: Global loss observed in each round
        """
        optimizer = optimizer_class(report_per_round=self.report_per_round)
        return optimizer.train(self, collection, num_iter, alpha)

    def predict(self, features) -> float:
        """Predict the label of one dense feature array."""
        if self.params is None:
            raise RuntimeError("Model has not been trained yet")
        return float(np.dot(self.params[:-1], np.asarray(features, dtype=np.float64)) + self.params[-1])

    def __repr__(self):
        return f"LinearRegression(num_feature={self.num_feature}, is_sparse={self.is_sparse}, num_param={self.num_param()})"
