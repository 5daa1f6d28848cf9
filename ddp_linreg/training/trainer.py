"""
Training orchestration for named linear regression models.

This module drives one training request on a worker:
1. Resolve the model and its dataset partition
2. Check, across all workers, that the dataset matches the model's width
3. Fit-and-transform the feature scaler over the dataset in place
4. Run the synchronous optimizer for the requested number of rounds

Every worker holding a partition of the dataset must issue the same request,
because steps 2-4 contain collectives.

Example:
    >>> from ddp_linreg.context import WorkerContext
    >>> context = WorkerContext.from_process_group()
    >>> # ... load_from_stream(context, 'housing', channel) ...
    >>> losses = train_model(context, 'housing', alpha=0.1, num_iter=50)
"""

import logging
from typing import List

from ddp_linreg.errors import PreconditionError
from ddp_linreg.training.distributed import sum_aggregator
from ddp_linreg.training.scaler import LinearScaler


logger = logging.getLogger(__name__)


def _count_mismatched_samples(collection, model) -> int:
    if collection.is_sparse != model.is_sparse:
        return len(collection) or 1
    return sum(1 for sample in collection if sample.width != model.feature_count())


def check_dataset_matches_model(collection, model) -> None:
    """
    Collective precondition: every sample on every worker has the model's width.

    All workers raise together when any worker finds a mismatch, so no worker
    is left waiting in a later collective.

    Raises:
        PreconditionError: If any worker holds a sample of a different width
            or a dataset of a different representation.
    """
    mismatched = sum_aggregator()
    mismatched.update(_count_mismatched_samples(collection, model))
    global_mismatched = int(mismatched.reduce())
    if global_mismatched:
        raise PreconditionError(
            f"Dataset '{collection.name}' does not match the model's {model.feature_count()} "
            f"{'sparse' if model.is_sparse else 'dense'} features ({global_mismatched} samples differ)"
        )


def train_model(context, name: str, alpha: float, num_iter: int) -> List[float]:
    """
    Scale the dataset named ``name`` and train the model of the same name.

    Args:
        context (WorkerContext): This worker's state
        name (str): Model and dataset name
        alpha (float): Learning rate, must be positive
        num_iter (int): Number of rounds, must be at least 1

    Returns:
        List[float]: Global loss of each round

    Raises:
        ModelLookupError: If the model or its dataset is unknown on this worker.
        PreconditionError: On invalid hyperparameters or a width mismatch.
    """
    model = context.registry.get(name)
    if not alpha > 0:
        raise PreconditionError(f"Learning rate must be positive, got {alpha}")
    if num_iter < 1:
        raise PreconditionError(f"num_iter must be at least 1, got {num_iter}")
    collection = context.store.get_named_collection(name)

    logger.info(f"Rank {context.rank}: start training '{name}' (alpha={alpha}, num_iter={num_iter})")

    check_dataset_matches_model(collection, model)

    with context.profiler.timer('scaling'):
        LinearScaler(model.feature_count(), model.is_sparse).fit_transform(collection)

    with context.profiler.timer('training'):
        losses = model.train(collection, num_iter, alpha)

    context.metrics_tracker.save_round_losses(name, losses)
    logger.info(f"Rank {context.rank}: finished training '{name}', final loss {losses[-1]:.6f}")
    return losses
