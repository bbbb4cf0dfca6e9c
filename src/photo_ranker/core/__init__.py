"""Core configuration and errors for the photo ranker."""

from photo_ranker.core.config import (
    DEFAULT_DB_PATH,
    MatchmakingConfig,
    RankerConfig,
    RatingConfig,
    StorageConfig,
    load_config,
)
from photo_ranker.core.errors import (
    CatalogError,
    ConfigurationError,
    InsufficientItemsError,
    MalformedEventError,
    MissingFieldError,
    PhotoRankerError,
    UnknownParticipantError,
    ValidationError,
)

__all__ = [
    "DEFAULT_DB_PATH",
    "MatchmakingConfig",
    "RankerConfig",
    "RatingConfig",
    "StorageConfig",
    "load_config",
    "CatalogError",
    "ConfigurationError",
    "InsufficientItemsError",
    "MalformedEventError",
    "MissingFieldError",
    "PhotoRankerError",
    "UnknownParticipantError",
    "ValidationError",
]
