"""
End-to-end job for one worker: load, train, export.

This module runs a complete job described by a job configuration (see
``ddp_linreg.config``) on the current worker:
- Build the worker context
- Load the dataset (token stream file, Kafka partition, or bulk file)
- Train the model with the configured learning rate and rounds
- Export the parameters and persist them with a JSON summary

Every request goes through ``run_request``, so a failing stage ends the job
with an explicit status in the summary instead of an exception.

Example:
    >>> from ddp_linreg.config import build_job_config
    >>> job = build_job_config({"data_loader_config": {"stream_paths": ["part-0.txt"]}})
    >>> summary = run_worker(job)
    >>> summary['status']
    'ok'
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from ddp_linreg.config import DataLoaderConfig, TrainingConfig
from ddp_linreg.context import WorkerContext
from ddp_linreg.data.stream_reader import KafkaTokenChannel, StreamChannel
from ddp_linreg.pipeline import get_params, load_from_stream, load_from_url, run_request, train
from ddp_linreg.training.distributed import (
    DistributedTrainingConfig,
    cleanup_distributed_training,
    initialize_distributed_training,
)
from ddp_linreg.utils.checkpoint import param_key, save_param_stream


logger = logging.getLogger(__name__)


def open_channel(data_loader_config: DataLoaderConfig, rank: int):
    """
    Open the token channel this worker reads its partition from.

    Args:
        data_loader_config (DataLoaderConfig): Validated data loader settings
        rank (int): Worker rank (selects the stream file or Kafka partition)
    """
    if data_loader_config.data_loader_type == "stream":
        stream_config = data_loader_config.stream_config
        encoding = stream_config["encoding"]
        raw = open(data_loader_config.stream_paths[rank], 'rb')
        return StreamChannel(raw, delimiter=stream_config["delimiter"].encode(encoding), encoding=encoding)

    if data_loader_config.data_loader_type == "kafka":
        kafka_config = data_loader_config.kafka_config
        return KafkaTokenChannel(
            kafka_config["topic"],
            partition=rank,
            consumer_params={"bootstrap_servers": kafka_config["bootstrap_servers"]},
            start_offset=kafka_config.get("start_offset", 0),
            timeout_ms=kafka_config.get("timeout_ms", 3000)
        )

    raise ValueError(f"data_loader_type '{data_loader_config.data_loader_type}' does not use a token channel")


def _load(context: WorkerContext, name: str, training_config: TrainingConfig, data_loader_config: DataLoaderConfig):
    if data_loader_config.data_loader_type == "file":
        file_config = data_loader_config.file_config
        return run_request(
            load_from_url, context, name, file_config["url"],
            data_format=file_config["data_format"], is_sparse=training_config.is_sparse
        )

    channel = open_channel(data_loader_config, context.rank)
    try:
        return run_request(
            load_from_stream, context, name, channel,
            is_sparse=training_config.is_sparse,
            show_progress=data_loader_config.stream_config.get("show_progress", False)
        )
    finally:
        channel.close()


def run_worker(job_config: Dict[str, Any], context: Optional[WorkerContext] = None) -> Dict[str, Any]:
    """
    Run the load/train/export job on this worker.

    Args:
        job_config (Dict[str, Any]): Complete job configuration
        context (Optional[WorkerContext]): Worker state. Defaults to one built
            from the current process group.

    Returns:
        Dict[str, Any]: Summary with the keys 'rank', 'world_size',
            'model_name', 'status', 'message', 'global_width', 'num_samples',
            'num_param', 'final_loss' and 'param_file'.

    Raises:
        ValueError: If the job configuration is invalid.
    """
    context = context or WorkerContext.from_process_group()

    training_config = TrainingConfig.from_dict(job_config["training_config"])
    training_config.validate()
    data_loader_config = DataLoaderConfig.from_dict(job_config["data_loader_config"])
    data_loader_config.validate(context.world_size)
    output_dir = job_config.get("output_dir", "params")

    name = training_config.model_name
    summary = {
        'rank': context.rank,
        'world_size': context.world_size,
        'model_name': name,
        'status': None,
        'message': None,
        'global_width': None,
        'num_samples': None,
        'num_param': None,
        'final_loss': None,
        'param_file': None,
    }

    logger.info(f"RANK[{context.rank}] DataLoader Config: {data_loader_config.to_dict()}")

    result = _load(context, name, training_config, data_loader_config)
    if result.ok:
        summary['global_width'] = result.value
        summary['num_samples'] = len(context.store.get_named_collection(name))
        result = run_request(train, context, name, training_config.alpha, training_config.num_iter)

    if result.ok:
        summary['final_loss'] = result.value[-1]
        result = run_request(get_params, context, name)

    if result.ok:
        payload = result.value
        summary['num_param'] = context.registry.get(name).num_param()
        with context.profiler.timer('export'):
            summary['param_file'] = save_param_stream(
                payload, param_key(name, context.rank), output_dir
            )

    summary['status'] = result.status
    summary['message'] = result.message

    os.makedirs(output_dir, exist_ok=True)
    summary_path = os.path.join(output_dir, f"{param_key(name, context.rank)}.json")
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    context.metrics_tracker.print_summary(rank=context.rank)
    context.profiler.print_summary(rank=context.rank)
    logger.info(f"Rank {context.rank}: job finished with status {summary['status']}")
    return summary


def distributed_worker_main(job_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Join the process group described by the environment and run the job.

    This is the function handed to ``launch_local_workers``, torchrun and
    Spark's TorchDistributor.
    """
    distributed_config = DistributedTrainingConfig(**job_config.get("distributed_config", {}))
    init_config = initialize_distributed_training(distributed_config)
    try:
        context = WorkerContext(init_config['global_rank'], init_config['world_size'])
        return run_worker(job_config, context)
    finally:
        cleanup_distributed_training()
