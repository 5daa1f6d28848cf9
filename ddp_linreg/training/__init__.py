"""
Training Module for ddp_linreg

This module contains the process group setup and reductions, feature width
reconciliation, global feature scaling, the gradient descent optimizer, the
train request and metrics tracking. The end-to-end worker job lives in
``ddp_linreg.training.worker``.
"""

from ddp_linreg.training.distributed import (
    initialize_distributed_training,
    cleanup_distributed_training,
    DistributedTrainingConfig,
    Aggregator,
    max_aggregator,
    min_aggregator,
    elementwise_max_aggregator,
    sum_aggregator,
    is_distributed,
    get_rank,
    get_world_size,
    launch_local_workers
)
from ddp_linreg.training.reconcile import local_max_width, pad_to_width, reconcile_feature_width
from ddp_linreg.training.scaler import LinearScaler
from ddp_linreg.training.optimizer import SGD, build_design_matrix
from ddp_linreg.training.trainer import check_dataset_matches_model, train_model
from ddp_linreg.training.metrics import TrainingMetricsTracker, PerformanceProfiler

__all__ = [
    # Distributed training
    'initialize_distributed_training',
    'cleanup_distributed_training',
    'DistributedTrainingConfig',
    'Aggregator',
    'max_aggregator',
    'min_aggregator',
    'elementwise_max_aggregator',
    'sum_aggregator',
    'is_distributed',
    'get_rank',
    'get_world_size',
    'launch_local_workers',

    # Reconciliation and scaling
    'local_max_width',
    'pad_to_width',
    'reconcile_feature_width',
    'LinearScaler',

    # Optimization
    'SGD',
    'build_design_matrix',
    'check_dataset_matches_model',
    'train_model',

    # Metrics and profiling
    'TrainingMetricsTracker',
    'PerformanceProfiler',
]
