"""Configuration schemas and loading for the photo ranker."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, Field, model_validator

from photo_ranker.core.errors import ConfigurationError, MissingFieldError, ValidationError

DEFAULT_DB_PATH = "./sessions/photo_ranker.duckdb"


class RatingConfig(BaseModel):
    """Rating model constants.

    Attributes:
        initial_rating: Prior rating of every item (the "average" photo).
        initial_uncertainty: Prior uncertainty, also the ceiling uncertainty can grow back to.
        min_uncertainty: Floor that uncertainty decays toward but never passes.
        k_scale: Step size at an uncertainty of 400; K scales linearly with uncertainty.
        upset_threshold: Winner expected score below which a result counts as an upset.
        upset_penalty: Uncertainty added to both sides after an upset.
        decay_rate: Geometric uncertainty decay applied after an expected result.
    """

    initial_rating: float = 1000.0
    initial_uncertainty: float = Field(default=300.0, gt=0)
    min_uncertainty: float = Field(default=30.0, gt=0)
    k_scale: float = Field(default=80.0, gt=0)
    upset_threshold: float = Field(default=0.25, gt=0, lt=0.5)
    upset_penalty: float = Field(default=40.0, ge=0)
    decay_rate: float = Field(default=0.9, gt=0, lt=1)

    @model_validator(mode="after")
    def validate_uncertainty_range(self) -> RatingConfig:
        if self.min_uncertainty > self.initial_uncertainty:
            msg = "min_uncertainty cannot exceed initial_uncertainty"
            raise ValueError(msg)
        return self


class MatchmakingConfig(BaseModel):
    """Matchmaking sampler tuning.

    Attributes:
        placement_skip_rate: Chance of skipping placement while unplaced items remain.
        exploration_rate: Chance of a purely random pair once placement is skipped.
        anchor_min_matches: Matches an item needs before it can anchor a new item.
        anchor_band: Maximum distance from the initial rating for an anchor.
        refinement_pool_size: How many of the most uncertain items side A is drawn from.
        volatile_threshold: Uncertainty above which a refinement pair is labeled volatile.
        equivalence_gap: Rating gap below which a refinement pair is labeled equivalent.
        max_repeat_attempts: Redraws allowed when a pair repeats the previous one.
    """

    placement_skip_rate: float = Field(default=0.1, ge=0, le=1)
    exploration_rate: float = Field(default=0.15, ge=0, le=1)
    anchor_min_matches: int = Field(default=5, ge=1)
    anchor_band: float = Field(default=100.0, ge=0)
    refinement_pool_size: int = Field(default=8, ge=1)
    volatile_threshold: float = Field(default=150.0, ge=0)
    equivalence_gap: float = Field(default=25.0, ge=0)
    max_repeat_attempts: int = Field(default=5, ge=1)


class StorageConfig(BaseModel):
    """Event log persistence settings."""

    db_path: str = DEFAULT_DB_PATH


class RankerConfig(BaseModel):
    """Complete photo ranker configuration."""

    rating: RatingConfig = Field(default_factory=RatingConfig)
    matchmaking: MatchmakingConfig = Field(default_factory=MatchmakingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    seed: int | None = None


def _convert_validation_error(
    exc: pydantic.ValidationError, config_path: Path
) -> ConfigurationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "<root>"
    if first["type"] == "missing":
        return MissingFieldError(field, str(config_path))
    return ValidationError(field, first["msg"])


def load_config(path: str | Path) -> RankerConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated RankerConfig instance. An empty file yields the defaults.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        try:
            data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Could not parse {config_path}: {e}", "Check the YAML syntax."
            ) from e

    if data is None:
        return RankerConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a mapping at the top of {config_path}",
            "Use sections such as 'rating:' and 'matchmaking:'.",
        )

    try:
        return RankerConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise _convert_validation_error(e, config_path) from e
