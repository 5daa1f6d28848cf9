"""Pytest configuration and shared fixtures."""

import io
from pathlib import Path
from typing import List

import pytest

from ddp_linreg.context import WorkerContext
from ddp_linreg.data.stream_reader import StreamChannel, TokenListChannel


def encode_samples(samples) -> List[str]:
    """Encode ``[(features, label), ...]`` as the token sequence of one streamed load."""
    tokens = [str(len(samples))]
    for features, label in samples:
        tokens.append(str(len(features)))
        tokens.extend(repr(float(v)) for v in features)
        tokens.append(repr(float(label)))
    return tokens


def make_stream(samples, delimiter: str = "\n") -> StreamChannel:
    """Byte stream channel carrying ``samples``."""
    payload = "".join(token + delimiter for token in encode_samples(samples))
    return StreamChannel(io.BytesIO(payload.encode("ascii")), delimiter=delimiter.encode("ascii"))


@pytest.fixture
def context() -> WorkerContext:
    """Single worker context without a process group."""
    return WorkerContext(rank=0, world_size=1)


@pytest.fixture
def linear_samples():
    """Noise-free samples of y = 2 * x0 - x1 + 1 with features in [0, 1]."""
    points = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.5, 0.25), (0.25, 0.75)]
    return [([a, b], 2.0 * a - b + 1.0) for a, b in points]


@pytest.fixture
def ragged_samples():
    """Samples of differing feature counts."""
    return [([1.0, 2.0], 3.0), ([1.0, 2.0, 3.0], 6.0)]


@pytest.fixture
def token_channel():
    """Factory for in-memory token channels."""
    def _make(samples):
        return TokenListChannel(encode_samples(samples))
    return _make


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
