"""Configuration module."""

from bucket_traverse.config.traverse_config import (
    ENV_FILE_NAME,
    ConsumerConfig,
    S3Config,
    TraversalConfig,
    TraverseConfig,
    load_env_vars,
)

__all__ = [
    "ENV_FILE_NAME",
    "TraverseConfig",
    "S3Config",
    "TraversalConfig",
    "ConsumerConfig",
    "load_env_vars",
]
