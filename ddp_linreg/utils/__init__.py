"""
Utils Module for ddp_linreg

This module contains parameter stream persistence (filesystem or Kafka) and
Spark session management for running the workers with TorchDistributor.
"""

from ddp_linreg.utils.checkpoint import (
    PARAM_FILE_SUFFIX,
    param_key,
    save_param_stream,
    load_param_stream
)
from ddp_linreg.utils.spark_utils import (
    create_spark_session,
    configure_spark_logging,
    check_kafka_partitions,
    run_on_spark
)

__all__ = [
    # Parameter persistence
    'PARAM_FILE_SUFFIX',
    'param_key',
    'save_param_stream',
    'load_param_stream',

    # Spark utilities
    'create_spark_session',
    'configure_spark_logging',
    'check_kafka_partitions',
    'run_on_spark',
]
