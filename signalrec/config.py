"""Engine configuration.

EngineConfig holds the process-wide, read-only settings of the engine: the
ensemble's algorithm weights, neighborhood sizes, and the category rules of
the context-aware pass. Defaults are defined here; from_dict() merges a
partial dict (e.g. loaded from a JSON file) with these defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from signalrec.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Environment variable read by the CLI scripts for the default log level
LOG_LEVEL_ENV_VAR = "SIGNALREC_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


class AlgorithmWeights(BaseModel):
    """Weights applied to each scorer when the ensemble merges results."""

    model_config = ConfigDict(frozen=True)

    user_based: float = Field(default=0.25, ge=0)
    item_based: float = Field(default=0.25, ge=0)
    content_based: float = Field(default=0.20, ge=0)
    learned: float = Field(default=0.30, ge=0)

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "AlgorithmWeights":
        total = self.user_based + self.item_based + self.content_based + self.learned
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"Algorithm weights must sum to 1.0, got {total}")
        return self


class ContextRules(BaseModel):
    """Category sets and bonuses used by the context-aware adjuster."""

    model_config = ConfigDict(frozen=True)

    relaxation_categories: FrozenSet[str] = frozenset({"relaxation", "relaxamento"})
    refreshing_categories: FrozenSet[str] = frozenset({"refreshing", "refrescante"})
    warming_categories: FrozenSet[str] = frozenset({"warming", "aquecimento"})

    base_score: float = 0.5
    night_bonus: float = 0.2
    mobile_bonus: float = 0.1
    # Mobile users lean towards items cheaper than this
    mobile_price_threshold: float = 100.0
    season_bonus: float = 0.15
    holiday_bonus: float = 0.2


class EngineConfig(BaseModel):
    """Configuration for the recommendation engine."""

    model_config = ConfigDict(frozen=True)

    weights: AlgorithmWeights = Field(default_factory=AlgorithmWeights)

    # Most similar users kept by the user-based filter
    neighbor_count: int = Field(default=20, gt=0)

    # Similar products considered per purchased product by the item-based filter
    similar_items_per_purchase: int = Field(default=10, gt=0)

    # Each scorer is asked for candidate_multiplier * k candidates before merging
    candidate_multiplier: int = Field(default=2, ge=1)

    # Fixed confidence of ensemble output; not derived from algorithm agreement
    ensemble_confidence: float = Field(default=0.85, ge=0, le=1)

    reason_separator: str = " • "

    context_rules: ContextRules = Field(default_factory=ContextRules)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "EngineConfig":
        """Create config from dictionary, ignoring unknown keys."""
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in config_dict.items() if k in allowed}
        ignored = set(config_dict) - allowed
        if ignored:
            logger.warning(f"Ignoring unknown config keys: {sorted(ignored)}")
        return cls.model_validate(filtered)


DEFAULT_CONFIG = EngineConfig()


def resolve_config(config: Optional[EngineConfig]) -> EngineConfig:
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG


def load_config(config_path: str) -> EngineConfig:
    """Load engine configuration from a JSON file.

    Args:
        config_path: Path to a JSON object with any subset of EngineConfig fields.

    Returns:
        Validated EngineConfig.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or holds
            invalid values.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}", {"path": config_path})

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Config file is not valid JSON: {config_path}",
            {"path": config_path, "error": str(e)},
        ) from e

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config file must contain a JSON object: {config_path}",
            {"path": config_path},
        )

    try:
        config = EngineConfig.from_dict(raw)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}",
            {"path": config_path, "errors": e.errors(include_url=False)},
        ) from e

    logger.info(f"Loaded engine config from {config_path}")
    return config


def default_log_level() -> str:
    """Log level for scripts, taken from SIGNALREC_LOG_LEVEL when set."""
    return os.getenv(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
