"""
Pipeline operations served to the external process.

Each worker handles four kinds of request for a named model:
- load_from_stream: read samples from a token channel, reconcile, create the model
- load_from_url: bulk-load samples from a file, reconcile, create the model
- train: scale the dataset and run the optimizer
- get_params: export the trained parameters

Inside the pipeline failures are raised as ``PipelineError`` subclasses.
``run_request`` is the boundary that turns them into an explicit
``PipelineResult`` for the caller.

Example:
    >>> context = WorkerContext.from_process_group()
    >>> result = run_request(load_from_stream, context, 'housing', channel)
    >>> if result.ok:
    ...     run_request(train, context, 'housing', 0.1, 100)
    ...     payload = run_request(get_params, context, 'housing').value
"""

import logging
from typing import Any, Callable, Dict, Optional

from ddp_linreg.context import WorkerContext
from ddp_linreg.data.loaders import load_data
from ddp_linreg.data.stream_reader import read_samples
from ddp_linreg.errors import PipelineError
from ddp_linreg.models.export import get_params
from ddp_linreg.training.reconcile import reconcile_feature_width
from ddp_linreg.training.trainer import train_model


logger = logging.getLogger(__name__)

train = train_model

__all__ = [
    'PipelineResult',
    'run_request',
    'load_from_stream',
    'load_from_url',
    'train',
    'get_params',
]


class PipelineResult:
    """
    Outcome of one request as seen across the process boundary.

    Attributes:
        status (str): 'ok', 'protocol_error', 'precondition_violation' or 'lookup_failure'
        value: Return value of the operation when ``status`` is 'ok'
        message (Optional[str]): Error description otherwise
    """

    OK = "ok"

    def __init__(self, status: str, value: Any = None, message: Optional[str] = None):
        self.status = status
        self.value = value
        self.message = message

    @property
    def ok(self) -> bool:
        return self.status == self.OK

    @classmethod
    def from_error(cls, error: PipelineError) -> "PipelineResult":
        return cls(error.status, message=str(error))

    def to_dict(self) -> Dict[str, Any]:
        value = self.value
        if isinstance(value, (bytes, bytearray)):
            value = value.hex()
        return {'status': self.status, 'value': value, 'message': self.message}

    def __repr__(self):
        return f"PipelineResult(status={self.status!r}, message={self.message!r})"


def run_request(operation: Callable[..., Any], *args, **kwargs) -> PipelineResult:
    """
    Run one pipeline operation and report its outcome.

    Only pipeline errors are converted; anything else propagates unchanged.
    Nothing is retried.
    """
    try:
        return PipelineResult(PipelineResult.OK, value=operation(*args, **kwargs))
    except PipelineError as e:
        logger.error(f"{getattr(operation, '__name__', operation)} failed ({e.status}): {e}")
        return PipelineResult.from_error(e)


def _create_model(context: WorkerContext, name: str, width: int, is_sparse: bool) -> int:
    context.registry.create(name, width, is_sparse)
    return width


def load_from_stream(
    context: WorkerContext,
    name: str,
    channel,
    is_sparse: bool = False,
    show_progress: bool = False
) -> int:
    """
    Stream a dataset from ``channel`` and create the model ``name`` for it.

    Collective: every worker must call it for the same ``name``.

    Args:
        context (WorkerContext): This worker's state
        name (str): Dataset and model name
        channel: Token channel to read from
        is_sparse (bool): Use the sparse feature representation
        show_progress (bool): Display a progress bar while reading

    Returns:
        int: Global feature width the model was created with

    Raises:
        ProtocolError: If the stream is malformed.
        PreconditionError: If the global width is zero.
    """
    logger.info(f"Rank {context.rank}: create model name: {name}")
    collection = context.store.create_named_collection(name, is_sparse)

    with context.profiler.timer('stream_loading'):
        read_samples(channel, collection, show_progress=show_progress)

    with context.profiler.timer('reconciliation'):
        width = reconcile_feature_width(collection)

    return _create_model(context, name, width, is_sparse)


def load_from_url(
    context: WorkerContext,
    name: str,
    url: str,
    data_format: str = "libsvm",
    is_sparse: bool = False
) -> int:
    """
    Bulk-load a dataset from ``url`` and create the model ``name`` for it.

    Collective: every worker must call it for the same ``name`` and ``url``.

    Returns:
        int: Global feature width the model was created with
    """
    logger.info(f"Rank {context.rank}: create model name: {name}")
    collection = context.store.create_named_collection(name, is_sparse)

    with context.profiler.timer('file_loading'):
        load_data(url, collection, data_format, rank=context.rank, world_size=context.world_size)

    with context.profiler.timer('reconciliation'):
        width = reconcile_feature_width(collection)

    return _create_model(context, name, width, is_sparse)
