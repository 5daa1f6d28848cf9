"""
Persistence of exported parameter streams.

Exported parameters can be written either to the local filesystem or to a
Kafka topic (keyed by a unique key), and read back the same way.
"""

import os
import logging
from typing import Any, Dict, Optional

from kafka import KafkaConsumer, KafkaProducer
from kafka.errors import KafkaError


logger = logging.getLogger(__name__)

PARAM_FILE_SUFFIX = ".params"


def param_key(model_name: str, rank: int) -> str:
    """Unique key of one worker's parameter stream for ``model_name``."""
    return f"{model_name}_rank{rank}"


def save_param_stream(
    payload: bytes,
    unique_key: str,
    save_directory: str = "params",
    kafka_config: Optional[Dict[str, Any]] = None,
    producer: Optional[Any] = None
) -> str:
    """
    Save an exported parameter stream to the filesystem or to Kafka.

    Args:
        payload (bytes): Output of the parameter exporter
        unique_key (str): File stem (filesystem) or record key (Kafka)
        save_directory (str): Directory for parameter files. Defaults to "params".
        kafka_config (Optional[Dict[str, Any]]): Kafka settings with
            'bootstrap_servers' and 'param_topic'. If None, saves to filesystem.
        producer (Optional[Any]): Existing KafkaProducer to reuse

    Returns:
        str: File path, or ``topic:key`` for Kafka
    """
    if kafka_config is None:
        return _save_to_filesystem(payload, unique_key, save_directory)
    return _save_to_kafka(payload, unique_key, kafka_config, producer)


def _save_to_filesystem(payload: bytes, unique_key: str, save_directory: str) -> str:
    os.makedirs(save_directory, exist_ok=True)
    save_path = os.path.join(save_directory, f"{unique_key}{PARAM_FILE_SUFFIX}")

    with open(save_path, 'wb') as f:
        f.write(payload)

    logger.info(f"Parameters saved to {save_path}")
    return save_path


def _save_to_kafka(payload: bytes, unique_key: str, kafka_config: Dict[str, Any], producer: Optional[Any]) -> str:
    topic = kafka_config.get('param_topic', 'linreg-params')
    owns_producer = producer is None
    if owns_producer:
        producer = KafkaProducer(
            bootstrap_servers=kafka_config['bootstrap_servers'],
            key_serializer=lambda x: x.encode('utf-8')
        )

    try:
        future = producer.send(topic, key=unique_key, value=payload)
        future.get(timeout=kafka_config.get('send_timeout_s', 30))
        producer.flush()
    except KafkaError as e:
        logger.error(f"Kafka error while saving parameters: {e}")
        raise
    finally:
        if owns_producer:
            producer.close()

    logger.info(f"Parameters for {unique_key} sent to Kafka topic '{topic}'")
    return f"{topic}:{unique_key}"


def load_param_stream(
    unique_key: str,
    load_directory: str = "params",
    kafka_config: Optional[Dict[str, Any]] = None,
    timeout_ms: int = 10000,
    consumer: Optional[Any] = None
) -> Optional[bytes]:
    """
    Load a saved parameter stream.

    Returns:
        Optional[bytes]: The stream, or None if nothing was saved under ``unique_key``
    """
    if kafka_config is None:
        load_path = os.path.join(load_directory, f"{unique_key}{PARAM_FILE_SUFFIX}")
        if not os.path.exists(load_path):
            logger.warning(f"No parameter file found at {load_path}")
            return None
        with open(load_path, 'rb') as f:
            return f.read()

    topic = kafka_config.get('param_topic', 'linreg-params')
    owns_consumer = consumer is None
    if owns_consumer:
        consumer = KafkaConsumer(
            topic,
            bootstrap_servers=kafka_config['bootstrap_servers'],
            key_deserializer=lambda x: x.decode('utf-8'),
            auto_offset_reset='earliest',
            enable_auto_commit=False
        )

    payload = None
    try:
        while payload is None:
            records = consumer.poll(timeout_ms)
            if not records:
                logger.info(f"No parameters found for unique key {unique_key} within the timeout period.")
                break
            for _, messages in records.items():
                for message in messages:
                    if message.key == unique_key:
                        payload = message.value
    finally:
        if owns_consumer:
            consumer.close()

    return payload
