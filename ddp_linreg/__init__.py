"""
ddp_linreg: Distributed Linear Regression over PyTorch process groups

Every worker holds a partition of a named dataset, read from a token stream
(file or Kafka partition) or from a bulk libsvm/tsv file. The workers agree on
the global feature width, scale the features with global statistics, and fit
a linear model by full-batch gradient descent with gradients all-reduced
across the group, so every worker ends up with identical parameters.

Modules:
- config: Configuration management (training, data loading, process group)
- data: Labeled samples, named collections, stream and file loaders
- models: Linear regression model, model registry, parameter export
- training: Process group, reconciliation, scaling, optimizer, worker job
- utils: Parameter persistence and Spark integration
"""

__version__ = "0.1.0"
__author__ = "DDP_LINREG Team"

from .errors import PipelineError, ProtocolError, PreconditionError, ModelLookupError
from .context import WorkerContext
from .pipeline import PipelineResult, run_request, load_from_stream, load_from_url, train, get_params
from .main import main

__all__ = [
    # Main entry point
    'main',

    # Worker state
    'WorkerContext',

    # Pipeline operations
    'PipelineResult',
    'run_request',
    'load_from_stream',
    'load_from_url',
    'train',
    'get_params',

    # Errors
    'PipelineError',
    'ProtocolError',
    'PreconditionError',
    'ModelLookupError',
]
