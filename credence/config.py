# credence/config.py
"""
Configuration for the Credence belief pipeline.

All configuration flows through this module. Values are loaded from environment
variables (via .env file) and validated with Pydantic. Every pipeline receives
its own immutable configuration object, so agents with different tunables or
lookup tables never interfere with each other.
"""

from __future__ import annotations

import math
from pathlib import Path

import structlog
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)

# Resolve .env relative to the project root (one level above credence/ package),
# so the config works regardless of the caller's current working directory.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

DEFAULT_TRAITS = (
    "openness",
    "conscientiousness",
    "extraversion",
    "agreeableness",
    "neuroticism",
)


class PipelineConfig(BaseSettings):
    """Tunables for normalization, clustering, consolidation, evolution and propagation."""

    # Signal decay: weight * exp(-decay_rate * age_seconds)
    decay_rate: float = Field(1e-4, alias="CREDENCE_DECAY_RATE")
    prune_epsilon: float = Field(1e-3, alias="CREDENCE_PRUNE_EPSILON")
    clock_skew_seconds: float = Field(0.0, alias="CREDENCE_CLOCK_SKEW_SECONDS")

    # Clustering
    similarity_threshold: float = Field(0.85, alias="CREDENCE_SIMILARITY_THRESHOLD")
    min_cluster_size: int = Field(3, alias="CREDENCE_MIN_CLUSTER_SIZE")

    # Consolidation
    belief_threshold: float = Field(0.3, alias="CREDENCE_BELIEF_THRESHOLD")
    base_adaptability: float = Field(0.3, alias="CREDENCE_BASE_ADAPTABILITY")
    volatility_variance_threshold: float = Field(
        0.02,
        alias="CREDENCE_VOLATILITY_VARIANCE_THRESHOLD",
    )  # member weight variance above this raises adaptability
    volatility_gain: float = Field(2.0, alias="CREDENCE_VOLATILITY_GAIN")
    precision: int = Field(9, alias="CREDENCE_PRECISION")

    # Evolution and conflict resolution
    belief_decay_rate: float = Field(1e-6, alias="CREDENCE_BELIEF_DECAY_RATE")
    confidence_floor: float = Field(0.0, alias="CREDENCE_CONFIDENCE_FLOOR")
    resolution_epsilon: float = Field(0.1, alias="CREDENCE_RESOLUTION_EPSILON")
    absorb_similarity: float = Field(0.85, alias="CREDENCE_ABSORB_SIMILARITY")

    # Network
    relation_min_similarity: float = Field(0.2, alias="CREDENCE_RELATION_MIN_SIMILARITY")
    damping: float = Field(0.5, alias="CREDENCE_DAMPING")
    max_hops: int = Field(3, alias="CREDENCE_MAX_HOPS")

    model_config = {
        "env_file": _ENV_FILE,
        "extra": "ignore",
        "populate_by_name": True,
        "frozen": True,
    }

    @field_validator("decay_rate", "belief_decay_rate")
    @classmethod
    def _positive_rate(cls, value: float) -> float:
        if not math.isfinite(value) or value <= 0:
            raise ValueError("decay rates must be positive and finite")
        return value

    @field_validator(
        "similarity_threshold",
        "belief_threshold",
        "base_adaptability",
        "confidence_floor",
        "absorb_similarity",
        "relation_min_similarity",
    )
    @classmethod
    def _unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("value must lie in [0, 1]")
        return value

    @field_validator("prune_epsilon", "resolution_epsilon")
    @classmethod
    def _small_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("epsilon must be positive")
        return value

    @field_validator("damping")
    @classmethod
    def _open_unit_interval(cls, value: float) -> float:
        # damping == 1 would let a change circulate undiminished around a cycle
        if not 0.0 < value < 1.0:
            raise ValueError("damping must lie strictly between 0 and 1")
        return value

    @field_validator("min_cluster_size", "max_hops", "precision")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value

    @field_validator("clock_skew_seconds", "volatility_variance_threshold", "volatility_gain")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("value must be >= 0")
        return value


class ContextTables(BaseSettings):
    """Per-agent lookup tables for contextual weighting and source trust.

    Unknown keys are not errors: they resolve to a neutral factor of 1.0.
    From the environment, each table is given as a JSON object, e.g.
    ``CREDENCE_ENVIRONMENT_WEIGHTS='{"home": 1.2, "work": 0.8}'``.
    """

    environment_weights: dict[str, float] = Field(
        default_factory=dict, alias="CREDENCE_ENVIRONMENT_WEIGHTS"
    )
    relationship_trust: dict[str, float] = Field(
        default_factory=dict, alias="CREDENCE_RELATIONSHIP_TRUST"
    )
    source_trust: dict[str, float] = Field(default_factory=dict, alias="CREDENCE_SOURCE_TRUST")

    model_config = {
        "env_file": _ENV_FILE,
        "extra": "ignore",
        "populate_by_name": True,
        "frozen": True,
    }

    @field_validator("environment_weights", "relationship_trust", "source_trust")
    @classmethod
    def _non_negative_factors(cls, table: dict[str, float]) -> dict[str, float]:
        for key, factor in table.items():
            if not math.isfinite(factor) or factor < 0:
                raise ValueError(f"factor for {key!r} must be finite and >= 0")
        return table

    def environment_factor(self, environment_id: str) -> float | None:
        """Return the environment factor, or None when the id is unknown."""
        return self.environment_weights.get(environment_id)

    def relationship_factor(self, relationship_id: str) -> float | None:
        """Return the relationship-trust factor, or None when the id is unknown."""
        return self.relationship_trust.get(relationship_id)

    def trust_for_source(self, source_id: str) -> float:
        return self.source_trust.get(source_id, 1.0)


class PersonalityConfig(BaseSettings):
    """Configuration for how beliefs fold into personality."""

    trait_learning_rate: float = Field(0.1, alias="CREDENCE_TRAIT_LEARNING_RATE")
    baseline_rate: float = Field(0.2, alias="CREDENCE_BASELINE_RATE")
    initial_traits: dict[str, float] = Field(
        default_factory=lambda: {name: 0.0 for name in DEFAULT_TRAITS},
        alias="CREDENCE_INITIAL_TRAITS",
    )

    model_config = {
        "env_file": _ENV_FILE,
        "extra": "ignore",
        "populate_by_name": True,
        "frozen": True,
    }

    @field_validator("trait_learning_rate", "baseline_rate")
    @classmethod
    def _unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("rate must lie in [0, 1]")
        return value


class PersistenceConfig(BaseSettings):
    """Configuration for the asynchronous persistence hand-off."""

    max_retries: int = Field(3, alias="CREDENCE_PERSIST_MAX_RETRIES")
    base_delay: float = Field(0.1, alias="CREDENCE_PERSIST_BASE_DELAY")
    max_delay: float = Field(2.0, alias="CREDENCE_PERSIST_MAX_DELAY")
    queue_size: int = Field(10000, alias="CREDENCE_PERSIST_QUEUE_SIZE")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "PersistenceConfig":
        self.max_retries = max(0, int(self.max_retries))
        self.base_delay = max(0.0, float(self.base_delay))
        self.max_delay = max(self.base_delay, float(self.max_delay))
        self.queue_size = max(1, int(self.queue_size))
        return self


class CredenceConfig:
    """Aggregated configuration for one agent's pipeline."""

    def __init__(
        self,
        pipeline: PipelineConfig | None = None,
        tables: ContextTables | None = None,
        personality: PersonalityConfig | None = None,
        persistence: PersistenceConfig | None = None,
    ):
        self.pipeline = pipeline or PipelineConfig()
        self.tables = tables or ContextTables()
        self.personality = personality or PersonalityConfig()
        self.persistence = persistence or PersistenceConfig()
        logger.debug(
            "config.loaded",
            similarity_threshold=self.pipeline.similarity_threshold,
            belief_threshold=self.pipeline.belief_threshold,
            max_hops=self.pipeline.max_hops,
        )

    def __repr__(self) -> str:
        return (
            f"CredenceConfig(pipeline={self.pipeline!r}, tables={self.tables!r}, "
            f"personality={self.personality!r})"
        )
