"""
Models Module for ddp_linreg

This module contains the linear regression model, the per-worker registry
of named models, and the little-endian parameter export format.
"""

from ddp_linreg.models.linear_regression import LinearRegression
from ddp_linreg.models.registry import ModelRegistry
from ddp_linreg.models.export import encode_params, decode_params, get_params

__all__ = [
    'LinearRegression',
    'ModelRegistry',
    'encode_params',
    'decode_params',
    'get_params',
]
