"""
Explicit per-worker state passed to every pipeline call.
"""

from typing import Any, Dict

from ddp_linreg.data.store import ObjectStore
from ddp_linreg.models.registry import ModelRegistry
from ddp_linreg.training.distributed import get_rank, get_world_size
from ddp_linreg.training.metrics import PerformanceProfiler, TrainingMetricsTracker


class WorkerContext:
    """
    Everything one worker owns: its dataset partitions, its models, and its
    timing and loss bookkeeping.

    Attributes:
        rank (int): Worker rank in the process group
        world_size (int): Number of workers
        store (ObjectStore): Local dataset partitions
        registry (ModelRegistry): Local named models
        metrics_tracker (TrainingMetricsTracker): Per-model loss history
        profiler (PerformanceProfiler): Stage timings
    """

    def __init__(self, rank: int = 0, world_size: int = 1):
        self.rank = rank
        self.world_size = world_size
        self.store = ObjectStore()
        self.registry = ModelRegistry()
        self.metrics_tracker = TrainingMetricsTracker()
        self.profiler = PerformanceProfiler()

    @classmethod
    def from_process_group(cls) -> "WorkerContext":
        """Build a context for the current process group (rank 0 of 1 without one)."""
        return cls(rank=get_rank(), world_size=get_world_size())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'world_size': self.world_size,
            'models': self.registry.names(),
        }
