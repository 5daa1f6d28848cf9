#!/usr/bin/env python3
"""
ddp_linreg Main Entry Point

Command-line interface for running the distributed linear regression job.

Modes:
    local   Spawn --num_workers processes on this host (gloo backend)
    spark   Run the workers on Spark executors with TorchDistributor
    worker  Join a process group already described by the environment
            (MASTER_ADDR, MASTER_PORT, RANK, WORLD_SIZE, LOCAL_RANK), e.g. under torchrun
    single  Run one worker without a process group

Usage:
    python -m ddp_linreg.main --mode local --num_workers 4 --config_path job.yaml
    torchrun --nproc_per_node 4 -m ddp_linreg.main --mode worker --config_path job.json
"""

import sys
import argparse
import logging
from typing import Any, Dict, Optional

from ddp_linreg.config import build_job_config, load_external_config
from ddp_linreg.context import WorkerContext
from ddp_linreg.training.distributed import launch_local_workers
from ddp_linreg.training.worker import distributed_worker_main, run_worker


def setup_logging(log_level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def run_local_mode(job_config: Dict[str, Any], num_workers: int) -> None:
    """Run ``num_workers`` workers as local processes."""
    logging.info(f"Starting local mode with {num_workers} workers...")
    launch_local_workers(distributed_worker_main, num_workers, args=(job_config,))


def run_spark_mode(job_config: Dict[str, Any], num_workers: Optional[int] = None) -> None:
    """Run the workers on the Spark cluster."""
    from ddp_linreg.utils.spark_utils import run_on_spark

    logging.info("Starting spark mode...")
    run_on_spark(job_config, num_processes=num_workers)


def run_single_mode(job_config: Dict[str, Any]) -> Dict[str, Any]:
    """Run one worker in this process without a process group."""
    logging.info("Starting single worker mode...")
    return run_worker(job_config, WorkerContext(rank=0, world_size=1))


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="ddp_linreg Distributed Linear Regression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --mode local --num_workers 4 --config_path job.yaml
    %(prog)s --mode spark --config_path job.json
    %(prog)s --mode single --config_path job.json
        """
    )

    parser.add_argument(
        "--mode",
        choices=["local", "spark", "worker", "single"],
        help="Execution mode"
    )

    parser.add_argument(
        "--config_path",
        type=str,
        default="config.json",
        help="Path to the job configuration file (JSON or YAML)"
    )

    parser.add_argument(
        "--num_workers",
        type=int,
        default=None,
        help="Number of workers (local mode defaults to 2, spark mode to spark.executor.instances)"
    )

    parser.add_argument(
        "--log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level"
    )

    args = parser.parse_args()

    if not args.mode:
        parser.error("--mode is required")

    setup_logging(args.log_level)

    logging.info("=" * 60)
    logging.info("ddp_linreg Distributed Linear Regression")
    logging.info("=" * 60)
    logging.info(f"Mode: {args.mode}")
    logging.info(f"Config path: {args.config_path}")
    logging.info(f"Log level: {args.log_level}")

    try:
        job_config = build_job_config(load_external_config(args.config_path))

        if args.mode == "local":
            run_local_mode(job_config, args.num_workers or 2)
        elif args.mode == "spark":
            run_spark_mode(job_config, args.num_workers)
        elif args.mode == "worker":
            summary = distributed_worker_main(job_config)
            if summary['status'] != "ok":
                sys.exit(1)
        elif args.mode == "single":
            summary = run_single_mode(job_config)
            if summary['status'] != "ok":
                sys.exit(1)

    except KeyboardInterrupt:
        logging.info("Execution interrupted by user")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Execution failed: {e}")
        sys.exit(1)

    logging.info("Execution completed successfully!")


if __name__ == "__main__":
    main()
