"""Traversal configuration module."""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from bucket_traverse.exceptions import ConfigError, ShardPlanningError
from bucket_traverse.sharding.planner import validate_shard_count

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".dev.vars"


@dataclass
class S3Config:
    """Connection settings for the S3-compatible endpoint."""

    endpoint_url: str | None = None
    region: str | None = "auto"
    access_key_id: str | None = None
    secret_access_key: str | None = None
    max_attempts: int = 3
    # None: size the pool to the shard count
    max_pool_connections: int | None = None
    force_path_style: bool = True


@dataclass
class TraversalConfig:
    """Which prefix to walk, and how."""

    bucket: str = "aem-content"
    prefix: str = ""
    shard_count: int = 63
    page_size: int = 1000
    progress_interval: float = 10.0


@dataclass
class ConsumerConfig:
    """Per-object work done by the consumers."""

    head_concurrency: int = 50
    get_concurrency: int = 10
    ignored_folders: list[str] = field(default_factory=lambda: [".da-versions", ".trash"])


@dataclass
class TraverseConfig:
    """Complete configuration."""

    s3: S3Config = field(default_factory=S3Config)
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    consumers: ConsumerConfig = field(default_factory=ConsumerConfig)

    def __post_init__(self):
        try:
            validate_shard_count(self.traversal.shard_count)
        except ShardPlanningError as e:
            raise ConfigError(str(e)) from e
        if self.traversal.page_size < 1 or self.traversal.page_size > 1000:
            raise ConfigError(f"page_size must be between 1 and 1000, got {self.traversal.page_size}")
        if self.consumers.head_concurrency < 1 or self.consumers.get_concurrency < 1:
            raise ConfigError("Consumer concurrency must be at least 1")

    def pool_size_for(self, shard_count: int, request_concurrency: int = 0) -> int:
        """Connection pool size: explicit setting, else one socket per shard
        listing plus one per concurrent HEAD/GET issued by a consumer.
        """
        if self.s3.max_pool_connections:
            return self.s3.max_pool_connections
        return max(shard_count + request_concurrency, 10)

    @classmethod
    def from_yaml(cls, path: str) -> "TraverseConfig":
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TraverseConfig":
        """Create configuration from dictionary."""
        data = dict(data)
        s3_data = data.pop("s3", {}) or {}
        traversal_data = data.pop("traversal", {}) or {}
        consumer_data = data.pop("consumers", {}) or {}

        if data:
            raise ConfigError(f"Unknown config sections: {sorted(data)}")

        try:
            return cls(
                s3=S3Config(**s3_data),
                traversal=TraversalConfig(**traversal_data),
                consumers=ConsumerConfig(**consumer_data),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_yaml(self, path: str) -> None:
        """Save configuration to YAML file."""
        data = self.to_dict()
        # Credentials stay in the env file
        data["s3"].pop("access_key_id", None)
        data["s3"].pop("secret_access_key", None)

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def apply_env_vars(self, env_vars: dict[str, str]) -> "TraverseConfig":
        """Fill S3 credentials and endpoint from ``.dev.vars`` style variables."""
        self.s3.access_key_id = env_vars.get("S3_ACCESS_KEY_ID") or self.s3.access_key_id
        self.s3.secret_access_key = env_vars.get("S3_SECRET_ACCESS_KEY") or self.s3.secret_access_key
        self.s3.endpoint_url = env_vars.get("S3_DEF_URL") or self.s3.endpoint_url
        return self


def default_env_paths() -> list[Path]:
    """Candidate locations for the credentials file, in search order."""
    cwd = Path.cwd()
    package_root = Path(__file__).resolve().parents[3]
    return [
        cwd / ENV_FILE_NAME,
        cwd.parent / ENV_FILE_NAME,
        package_root / ENV_FILE_NAME,
    ]


def load_env_vars(paths: list[str | Path] | None = None) -> dict[str, str]:
    """Load ``KEY=VALUE`` variables from the first existing credentials file.

    Raises:
        ConfigError: if none of the candidate files exists.
    """
    candidates = [Path(p) for p in paths] if paths else default_env_paths()

    for candidate in candidates:
        if candidate.is_file():
            logger.debug(f"Loading credentials from {candidate}")
            return {k: v for k, v in dotenv_values(candidate).items() if v is not None}

    tried = ", ".join(str(p) for p in candidates)
    raise ConfigError(f"{ENV_FILE_NAME} file not found. Tried: {tried}")
