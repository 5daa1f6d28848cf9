"""
Data Configuration Module

This module contains all data-related configurations including:
- Token stream settings
- Kafka settings
- Bulk file loading settings
- Data loader selection
"""

from typing import Any, Dict, List, Optional

from ddp_linreg.data.loaders import SUPPORTED_DATA_FORMATS


DATA_LOADER_TYPES = ("stream", "kafka", "file")

# Token stream configuration
STREAM_CONFIG = {
    "delimiter": "\n",
    "encoding": "ascii",
    "show_progress": False,
}

# Kafka Configuration (one partition per worker, partition id == rank)
KAFKA_CONFIG = {
    "bootstrap_servers": ["localhost:9092"],
    "topic": "linreg-samples",
    "start_offset": 0,
    "timeout_ms": 3000,
}

# Bulk file configuration
FILE_CONFIG = {
    "url": None,
    "data_format": "libsvm",
}

DATA_LOADER_CONFIG = {
    "data_loader_type": "stream",
    "stream_paths": [],            # one token stream per rank
    "stream_config": STREAM_CONFIG,
    "kafka_config": KAFKA_CONFIG,
    "file_config": FILE_CONFIG,
}


class DataLoaderConfig:
    """Configuration class for data loading parameters."""

    def __init__(
        self,
        data_loader_type: str = "stream",
        stream_paths: Optional[List[str]] = None,
        stream_config: Optional[Dict[str, Any]] = None,
        kafka_config: Optional[Dict[str, Any]] = None,
        file_config: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.data_loader_type = data_loader_type
        self.stream_paths = list(stream_paths or [])
        self.stream_config = {**STREAM_CONFIG, **(stream_config or {})}
        self.kafka_config = {**KAFKA_CONFIG, **(kafka_config or {})}
        self.file_config = {**FILE_CONFIG, **(file_config or {})}

        for key, value in kwargs.items():
            setattr(self, key, value)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "DataLoaderConfig":
        return cls(**config)

    def validate(self, world_size: int = 1) -> None:
        """Validates the data loader configuration for ``world_size`` workers."""
        if self.data_loader_type not in DATA_LOADER_TYPES:
            raise ValueError(f"data_loader_type must be one of {DATA_LOADER_TYPES}")

        if self.data_loader_type == "stream" and len(self.stream_paths) != world_size:
            raise ValueError(
                f"stream_paths must list one token stream per worker "
                f"({len(self.stream_paths)} given for world_size {world_size})"
            )

        if self.data_loader_type == "kafka":
            if not self.kafka_config.get("bootstrap_servers"):
                raise ValueError("kafka_config.bootstrap_servers is required for kafka loading")
            if not self.kafka_config.get("topic"):
                raise ValueError("kafka_config.topic is required for kafka loading")

        if self.data_loader_type == "file":
            if not self.file_config.get("url"):
                raise ValueError("file_config.url is required for file loading")
            if self.file_config.get("data_format") not in SUPPORTED_DATA_FORMATS:
                raise ValueError(f"file_config.data_format must be one of {SUPPORTED_DATA_FORMATS}")

        if not self.stream_config.get("delimiter"):
            raise ValueError("stream_config.delimiter must be non-empty")

    def to_dict(self) -> Dict[str, Any]:
        """Converts configuration to dictionary."""
        return self.__dict__.copy()
