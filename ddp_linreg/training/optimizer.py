"""
Synchronous gradient descent for distributed linear regression.

Every round each worker computes the squared-error gradient over its local
partition, the gradients (and the round's loss) are summed with one
``all_reduce``, and every worker applies the same ``torch.optim.SGD`` step.
Because all workers start from the same parameters and apply identical
updates, the parameter state stays consistent across the cluster.
"""

import logging
import numpy as np
import torch
import torch.distributed as dist
from typing import List, Tuple

from ddp_linreg.data.store import Collection
from ddp_linreg.errors import PreconditionError
from ddp_linreg.training.distributed import get_rank, is_distributed, sum_aggregator


logger = logging.getLogger(__name__)


def build_design_matrix(collection: Collection, num_feature: int, is_sparse: bool) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Stack a collection into ``(X, y)`` float64 tensors.

    Sparse collections produce a coalesced COO matrix; dense ones a strided
    matrix. An empty partition yields a ``(0, num_feature)`` matrix.
    """
    samples = list(collection)
    n = len(samples)
    y = torch.tensor([sample.y for sample in samples], dtype=torch.float64)

    if is_sparse:
        rows, cols, vals = [], [], []
        for i, sample in enumerate(samples):
            for j, value in sample.x.items():
                rows.append(i)
                cols.append(j)
                vals.append(value)
        indices = torch.tensor([rows, cols], dtype=torch.int64).reshape(2, -1)
        values = torch.tensor(vals, dtype=torch.float64)
        X = torch.sparse_coo_tensor(indices, values, (n, num_feature)).coalesce()
    elif n:
        X = torch.from_numpy(np.stack([sample.x.to_dense() for sample in samples]))
    else:
        X = torch.zeros((0, num_feature), dtype=torch.float64)

    return X, y


class SGD:
    """
    Full-batch gradient descent over all workers' partitions.

    Attributes:
        report_per_round (bool): Log the global loss after every round
    """

    def __init__(self, report_per_round: bool = False):
        self.report_per_round = report_per_round

    def train(self, model, collection: Collection, num_rounds: int, learning_rate: float) -> List[float]:
        """
        Run exactly ``num_rounds`` synchronous rounds and store the result in ``model``.

        Every worker of the process group must call this with the same
        ``num_rounds``; each round issues one all-reduce.

        Args:
            model (LinearRegression): Model whose parameters are updated
            collection (Collection): Local, reconciled and scaled partition
            num_rounds (int): Number of rounds
            learning_rate (float): Step size

        Returns:
            List[float]: Global mean half squared error before each step

        Raises:
            PreconditionError: If no worker holds any sample.
        """
        num_feature = model.feature_count()
        X, y = build_design_matrix(collection, num_feature, model.is_sparse)

        total = sum_aggregator()
        total.update(len(collection))
        n_global = int(total.reduce())
        if n_global == 0:
            raise PreconditionError(f"Cannot train '{collection.name}': no samples on any worker")

        if model.params is None:
            param = torch.zeros(num_feature + 1, dtype=torch.float64, requires_grad=True)
        else:
            param = torch.tensor(model.params, dtype=torch.float64, requires_grad=True)
        optimizer = torch.optim.SGD([param], lr=learning_rate)

        rank = get_rank()
        losses = []
        for round_idx in range(num_rounds):
            optimizer.zero_grad()
            weights, bias = param[:-1], param[-1]
            if model.is_sparse:
                prediction = torch.sparse.mm(X, weights.unsqueeze(1)).squeeze(1) + bias
            else:
                prediction = X @ weights + bias
            loss = 0.5 * ((prediction - y) ** 2).sum() / n_global
            loss.backward()

            grad = param.grad if param.grad is not None else torch.zeros_like(param)
            packed = torch.cat([grad.detach(), loss.detach().reshape(1)])
            if is_distributed():
                dist.all_reduce(packed, op=dist.ReduceOp.SUM)
            param.grad = packed[:-1].clone()
            round_loss = packed[-1].item()

            optimizer.step()
            losses.append(round_loss)

            if self.report_per_round and rank == 0:
                logger.info(f"Rank {rank}: round {round_idx + 1}/{num_rounds} loss = {round_loss:.6f}")

        model.params = param.detach().numpy().copy()
        return losses
