"""
Training Configuration Module

This module contains the training-related defaults:
- Model name and feature representation
- Learning rate and number of rounds
- Process group settings
"""

from typing import Any, Dict


# Training Configuration
TRAINING_CONFIG = {
    "model_name": "linear_regression",
    "alpha": 0.1,          # learning rate
    "num_iter": 100,       # number of synchronous rounds
    "is_sparse": False,    # sparse feature vectors when True
}

# Process group configuration
DISTRIBUTED_CONFIG = {
    "use_gpu": False,
    "backend": "gloo",
    "timeout_seconds": 5400,
}


class TrainingConfig:
    """
    Configuration class for training parameters with validation.

    Attributes:
        model_name (str): Name of the model and its dataset
        alpha (float): Learning rate
        num_iter (int): Number of training rounds
        is_sparse (bool): Whether samples use the sparse representation
    """

    def __init__(
        self,
        model_name: str = TRAINING_CONFIG["model_name"],
        alpha: float = TRAINING_CONFIG["alpha"],
        num_iter: int = TRAINING_CONFIG["num_iter"],
        is_sparse: bool = TRAINING_CONFIG["is_sparse"],
        **kwargs
    ):
        self.model_name = model_name
        self.alpha = float(alpha)
        self.num_iter = int(num_iter)
        self.is_sparse = bool(is_sparse)

        for key, value in kwargs.items():
            setattr(self, key, value)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "TrainingConfig":
        return cls(**config)

    def validate(self) -> None:
        """Validates the training configuration."""
        if not self.model_name:
            raise ValueError("model_name must be a non-empty string")

        if self.alpha <= 0:
            raise ValueError("alpha must be positive")

        if self.num_iter <= 0:
            raise ValueError("num_iter must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Converts configuration to dictionary."""
        return self.__dict__.copy()
