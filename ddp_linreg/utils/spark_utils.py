"""
Spark session utilities for running the workers on a Spark cluster.

Spark's TorchDistributor starts one process per worker on the executors and
sets up the torch.distributed environment (MASTER_ADDR, RANK, WORLD_SIZE, ...)
for them, so each process only has to call ``distributed_worker_main``.
"""

import logging
from typing import Any, Dict, List, Optional

from kafka import KafkaAdminClient
from kafka.errors import KafkaError
from pyspark.sql import SparkSession


logger = logging.getLogger(__name__)


def create_spark_session(
    app_name: str = "ddp_linreg",
    master_url: Optional[str] = None,
    custom_configs: Optional[Dict[str, Any]] = None
) -> SparkSession:
    """
    Create or reuse a Spark session.

    Args:
        app_name (str): Name of the Spark application. Defaults to "ddp_linreg".
        master_url (Optional[str]): Spark master URL. If None, the master of
            the surrounding spark-submit is used.
        custom_configs (Optional[Dict[str, Any]]): Additional Spark settings,
            e.g. {"spark.executor.instances": 4}.

    Returns:
        SparkSession: Configured Spark session.
    """
    builder = SparkSession.builder.appName(app_name)
    if master_url:
        builder = builder.master(master_url)

    if custom_configs:
        for key, value in custom_configs.items():
            builder = builder.config(key, value)

    spark = builder.getOrCreate()
    configure_spark_logging(spark)
    return spark


def configure_spark_logging(spark: SparkSession) -> None:
    """
    Configure Spark logging to reduce verbosity.

    Args:
        spark (SparkSession): Spark session to configure logging for.
    """
    logging.getLogger("py4j").setLevel(logging.ERROR)
    logging.getLogger('pyspark').setLevel(logging.ERROR)
    spark.sparkContext.setLogLevel("ERROR")

    for key, value in sorted(spark.sparkContext.getConf().getAll(), key=lambda x: x[0]):
        logger.debug(f"{key} = {value}")


def check_kafka_partitions(broker_address: List[str], topic: str, world_size: int) -> bool:
    """
    Check that a Kafka topic has exactly one partition per worker.

    Args:
        broker_address (List[str]): Kafka bootstrap servers.
        topic (str): Topic holding the sample streams.
        world_size (int): Number of workers that will read the topic.

    Returns:
        bool: True if the number of partitions matches ``world_size``.
    """
    admin_client = KafkaAdminClient(bootstrap_servers=broker_address)
    try:
        topic_info = admin_client.describe_topics([topic])[0]
        num_partitions = len(topic_info['partitions'])
    except KafkaError as e:
        logger.error(f"Failed to describe topic '{topic}': {e}")
        raise
    finally:
        admin_client.close()

    logger.info(f"Topic '{topic}' has {num_partitions} partitions. WORLD_SIZE is {world_size}.")
    if num_partitions != world_size:
        logger.warning(f"Topic '{topic}' partition count {num_partitions} does not match WORLD_SIZE {world_size}")
        return False
    return True


def run_on_spark(
    job_config: Dict[str, Any],
    num_processes: Optional[int] = None,
    spark: Optional[SparkSession] = None
) -> Dict[str, Any]:
    """
    Run the job on Spark executors with TorchDistributor.

    Args:
        job_config (Dict[str, Any]): Complete job configuration
        num_processes (Optional[int]): Number of workers. Defaults to the
            ``spark.executor.instances`` setting.
        spark (Optional[SparkSession]): Session to use. A new one is created
            (and stopped afterwards) if None.

    Returns:
        Dict[str, Any]: Summary reported by the rank 0 worker

    Raises:
        ValueError: If a Kafka topic does not have exactly one partition per worker.
    """
    from pyspark.ml.torch.distributor import TorchDistributor
    from ddp_linreg.training.worker import distributed_worker_main

    owns_session = spark is None
    if owns_session:
        spark = create_spark_session()

    try:
        if num_processes is None:
            num_processes = int(spark.sparkContext.getConf().get("spark.executor.instances", "1"))

        data_loader_config = job_config.get("data_loader_config", {})
        if data_loader_config.get("data_loader_type") == "kafka":
            kafka_config = data_loader_config.get("kafka_config", {})
            if not check_kafka_partitions(kafka_config["bootstrap_servers"], kafka_config["topic"], num_processes):
                raise ValueError(
                    f"Kafka topic '{kafka_config['topic']}' must have one partition per worker ({num_processes})"
                )

        use_gpu = job_config.get("distributed_config", {}).get("use_gpu", False)
        logger.info(f"Launching {num_processes} workers with TorchDistributor")
        result = TorchDistributor(
            num_processes=num_processes,
            local_mode=False,
            use_gpu=use_gpu
        ).run(distributed_worker_main, job_config)

        logger.info("Spark job completed")
        return result
    finally:
        if owns_session:
            spark.stop()
