"""Exception types raised by bucket_traverse."""


class BucketTraverseError(Exception):
    """Base class for all bucket_traverse errors."""


class ShardPlanningError(BucketTraverseError, ValueError):
    """Raised before any I/O when a shard plan cannot be produced."""


class ConfigError(BucketTraverseError):
    """Raised when configuration or credentials cannot be loaded."""


class TraversalCancelled(BucketTraverseError):
    """Raised inside a shard worker when the run's cancel event is set."""
