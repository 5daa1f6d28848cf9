"""
Distributed coordination utilities for the linear regression workers.

This module provides functionality for initializing and tearing down the
PyTorch process group that connects the workers, plus the reduction
primitive every cross-worker statistic goes through.

Features:
- Backend selection (GLOO for CPU, NCCL when requested and available)
- Environment variable validation and parsing
- Aggregator: blocking, all-participants reduction over the worker set
- Local multi-process launcher for running N workers on one host

Example:
    >>> from distributed import initialize_distributed_training, max_aggregator
    >>>
    >>> config = initialize_distributed_training()
    >>> width = max_aggregator()
    >>> width.update(local_width)
    >>> global_width = width.reduce()
"""

import os
import socket
import datetime
import logging
import numpy as np
import torch
import torch.distributed as dist
import torch.multiprocessing as mp
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = ["MASTER_ADDR", "MASTER_PORT", "RANK", "WORLD_SIZE", "LOCAL_RANK"]


class DistributedTrainingConfig:
    """
    Configuration class for the worker process group.

    Attributes:
        use_gpu (bool): Whether collectives may run on GPU
        backend (str): Backend for the process group ('nccl' or 'gloo')
        timeout (datetime.timedelta): Timeout for process group collectives
    """

    def __init__(
        self,
        use_gpu: bool = False,
        backend: Optional[str] = None,
        timeout_seconds: int = 5400
    ):
        self.use_gpu = use_gpu
        self.backend = backend or ("nccl" if use_gpu and torch.cuda.is_available() else "gloo")
        self.timeout = datetime.timedelta(seconds=timeout_seconds)

    def validate(self) -> None:
        """Validates the configuration parameters."""
        if self.use_gpu and not torch.cuda.is_available():
            raise RuntimeError("GPU requested but CUDA is not available")

        if self.backend not in ['nccl', 'gloo']:
            raise ValueError(f"Unsupported backend: {self.backend}")

        if self.backend == 'nccl' and not torch.cuda.is_available():
            raise ValueError("NCCL backend requires CUDA")

    def to_dict(self) -> Dict[str, Any]:
        """Returns configuration as a dictionary."""
        return {
            'use_gpu': self.use_gpu,
            'backend': self.backend,
            'timeout_seconds': int(self.timeout.total_seconds()),
        }


def initialize_distributed_training(config: Optional[DistributedTrainingConfig] = None) -> Dict[str, Any]:
    """
    Initializes the worker process group from the standard environment variables.

    Args:
        config (Optional[DistributedTrainingConfig]): Backend and timeout settings.
            Defaults to a CPU/gloo configuration.

    Returns:
        dict: A dictionary containing the following keys:
            - 'backend': The backend used ('nccl' or 'gloo').
            - 'global_rank': The global rank of the current process.
            - 'local_rank': The local rank of the current process.
            - 'world_size': The total number of worker processes.
            - 'env_dict': The distributed environment variables.

    Raises:
        RuntimeError: If required environment variables are missing or the
            process group cannot be created.
        ValueError: If environment variables contain invalid values.
    """
    config = config or DistributedTrainingConfig()
    config.validate()

    env_dict = {key: os.getenv(key) for key in REQUIRED_ENV_VARS}
    missing_vars = [key for key, value in env_dict.items() if value is None]
    if missing_vars:
        raise RuntimeError(f"Missing required environment variables: {missing_vars}")

    try:
        global_rank = int(env_dict["RANK"])
        local_rank = int(env_dict["LOCAL_RANK"])
        world_size = int(env_dict["WORLD_SIZE"])
    except ValueError as e:
        raise ValueError(f"Invalid environment variable values: {e}")

    if global_rank < 0 or global_rank >= world_size:
        raise ValueError(f"Invalid global_rank {global_rank} for world_size {world_size}")
    if local_rank < 0:
        raise ValueError(f"Invalid local_rank {local_rank}")

    if not dist.is_initialized():
        try:
            dist.init_process_group(config.backend, timeout=config.timeout)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize process group with backend '{config.backend}': {e}")

    logger.info(f"Rank {global_rank}: process group ready (world_size={world_size}, backend={config.backend})")

    return {
        'backend': config.backend,
        'global_rank': global_rank,
        'local_rank': local_rank,
        'world_size': world_size,
        'env_dict': env_dict
    }


def cleanup_distributed_training() -> None:
    """Destroys the process group if one is active."""
    if dist.is_initialized():
        try:
            dist.destroy_process_group()
            logger.info("Distributed process group destroyed successfully")
        except Exception as e:
            logger.warning(f"Failed to destroy process group: {e}")


def is_distributed() -> bool:
    """True when a process group with more than one worker is active."""
    return dist.is_available() and dist.is_initialized() and dist.get_world_size() > 1


def get_rank() -> int:
    """
    Get the rank of the current process.

    Returns:
        int: Current process rank, or 0 if not in distributed mode.
    """
    if dist.is_available() and dist.is_initialized():
        return dist.get_rank()
    return 0


def get_world_size() -> int:
    """
    Get the total number of worker processes.

    Returns:
        int: Total number of processes, or 1 if not in distributed mode.
    """
    if dist.is_available() and dist.is_initialized():
        return dist.get_world_size()
    return 1


class Aggregator:
    """
    Commutative, associative reduction over all workers.

    Each worker folds local values in with ``update`` and then calls
    ``reduce``, which blocks until every worker of the process group has
    called it and returns the same combined value everywhere. Without an
    active multi-worker process group the local value is the global value.

    When ``reduce_op`` is given the reduction is a tensor ``all_reduce``
    (values may be scalars or NumPy arrays). Otherwise values are exchanged
    with ``all_gather_object`` and folded with ``combine_fn`` in rank order.

    Attributes:
        initial: Identity element of ``combine_fn``
        value: Locally folded value
    """

    def __init__(
        self,
        initial: Any,
        combine_fn: Callable[[Any, Any], Any],
        reduce_op: Optional[Any] = None,
        dtype: torch.dtype = torch.float64
    ):
        self.initial = initial
        self.combine_fn = combine_fn
        self.reduce_op = reduce_op
        self.dtype = dtype
        self.value = initial

    def update(self, value: Any) -> None:
        self.value = self.combine_fn(self.value, value)

    def reset(self) -> None:
        self.value = self.initial

    def reduce(self) -> Any:
        """
        Combine the local values of every worker.

        Returns:
            The globally combined value, identical on every worker.
        """
        if not is_distributed():
            return self.value

        if self.reduce_op is not None:
            tensor = torch.as_tensor(np.asarray(self.value), dtype=self.dtype).clone()
            dist.all_reduce(tensor, op=self.reduce_op)
            if tensor.dim() == 0:
                return tensor.item()
            return tensor.numpy()

        gathered = [None] * dist.get_world_size()
        dist.all_gather_object(gathered, self.value)
        result = self.initial
        for value in gathered:
            result = self.combine_fn(result, value)
        return result


def max_aggregator(initial: int = 0) -> Aggregator:
    """Integer maximum across workers."""
    return Aggregator(initial, max, reduce_op=dist.ReduceOp.MAX, dtype=torch.int64)


def min_aggregator(initial: Any, dtype: torch.dtype = torch.float64) -> Aggregator:
    """Element-wise minimum across workers."""
    return Aggregator(initial, np.minimum, reduce_op=dist.ReduceOp.MIN, dtype=dtype)


def elementwise_max_aggregator(initial: Any, dtype: torch.dtype = torch.float64) -> Aggregator:
    """Element-wise maximum across workers."""
    return Aggregator(initial, np.maximum, reduce_op=dist.ReduceOp.MAX, dtype=dtype)


def sum_aggregator(initial: Any = 0, dtype: torch.dtype = torch.int64) -> Aggregator:
    """Sum across workers."""
    return Aggregator(initial, lambda a, b: a + b, reduce_op=dist.ReduceOp.SUM, dtype=dtype)


def find_free_port() -> int:
    """Ask the OS for a free TCP port on the loopback interface."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _spawned_worker(
    local_rank: int,
    world_size: int,
    master_addr: str,
    master_port: int,
    fn: Callable[..., Any],
    args: tuple
) -> None:
    os.environ.update({
        "MASTER_ADDR": master_addr,
        "MASTER_PORT": str(master_port),
        "RANK": str(local_rank),
        "LOCAL_RANK": str(local_rank),
        "WORLD_SIZE": str(world_size),
    })
    fn(*args)


def launch_local_workers(
    fn: Callable[..., Any],
    num_workers: int,
    args: tuple = (),
    master_addr: str = "127.0.0.1",
    master_port: Optional[int] = None
) -> None:
    """
    Run ``fn(*args)`` in ``num_workers`` processes on this host.

    Each process gets the distributed environment variables for its rank, so
    ``fn`` is expected to call ``initialize_distributed_training``. Blocks
    until every worker exits; a failing worker raises in the parent.

    Args:
        fn (Callable): Picklable, module-level worker function
        num_workers (int): Number of worker processes
        args (tuple): Positional arguments passed to ``fn``
        master_addr (str): Rendezvous address. Defaults to loopback.
        master_port (Optional[int]): Rendezvous port. Defaults to a free port.
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be positive, got {num_workers}")

    port = master_port or find_free_port()
    logger.info(f"Launching {num_workers} local workers (rendezvous {master_addr}:{port})")
    mp.spawn(
        _spawned_worker,
        args=(num_workers, master_addr, port, fn, args),
        nprocs=num_workers,
        join=True
    )
