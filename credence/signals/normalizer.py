"""
Signal Normalizer — the front door of the belief pipeline.

Raw feelings arrive noisy: weights of 40, valences of -3, arousal expressed in
whatever units the submitter happened to use. Before anything downstream can
reason about them, every feeling is validated and squashed into canonical
ranges with monotonic bounded maps, so no raw magnitude, however large, can
break a range invariant further down.

Three operations, applied in order:
1. ingest: validate and squash into a Feeling
2. apply_context_weight: scale by environment and relationship-trust factors
3. apply_decay: exponential temporal decay, with pruning below epsilon

Pruning is not an error. It is the normal end of a feeling that was never
consolidated into a belief.
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from typing import Any, Iterable, Optional

import structlog

from credence._utils import clamp01, squash_signed, squash_unit
from credence.config import ContextTables, PipelineConfig
from credence.signals.feeling import Feeling, RawFeeling, derive_feeling_id
from credence.types import FeelingContext

logger = structlog.get_logger(__name__)


class FeelingValidationError(ValueError):
    """A raw feeling was rejected at ingestion."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"invalid feeling {field}: {reason}")


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise FeelingValidationError(field, "must be a non-empty string")
    return value.strip()


def _require_number(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise FeelingValidationError(field, "must be numeric")
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        raise FeelingValidationError(field, "must be numeric") from None
    if math.isnan(numeric):
        raise FeelingValidationError(field, "must not be NaN")
    return numeric


def _timestamp_seconds(value: Any) -> float:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise FeelingValidationError("timestamp", "datetime must be timezone-aware")
        return value.timestamp()
    if value is None:
        raise FeelingValidationError("timestamp", "is required")
    return _require_number(value, "timestamp")


class SignalNormalizer:
    """Validates, squashes, weights and decays feelings for one agent."""

    def __init__(self, config: PipelineConfig, tables: ContextTables):
        self._config = config
        self._tables = tables

    def ingest(self, raw: RawFeeling, now: Optional[float] = None) -> Feeling:
        """Validate a raw feeling and squash its fields into canonical ranges.

        Raises FeelingValidationError for missing content or source, or a
        timestamp that is not a valid past-or-present instant.
        """
        now = time.time() if now is None else now
        try:
            content = _require_text(raw.content, "content")
            source_id = _require_text(raw.source_id, "source_id")
            created_at = _timestamp_seconds(raw.timestamp)
            if not math.isfinite(created_at) or created_at < 0:
                raise FeelingValidationError("timestamp", "must be a finite, non-negative instant")
            if created_at > now + self._config.clock_skew_seconds:
                raise FeelingValidationError("timestamp", "lies in the future")
            raw_weight = _require_number(raw.weight, "weight")
            raw_valence = _require_number(raw.valence, "valence")
            raw_arousal = _require_number(raw.arousal, "arousal")
        except FeelingValidationError as exc:
            logger.info("normalizer.rejected", field=exc.field, reason=exc.reason)
            raise

        context = FeelingContext(
            environment_id=(raw.environment_id or "").strip(),
            trigger_id=(raw.trigger_id or "").strip(),
            relationship_ids=tuple(raw.relationship_ids or ()),
        )
        feeling_id = (raw.feeling_id or "").strip() or derive_feeling_id(
            content, source_id, created_at, context
        )
        feeling = Feeling(
            feeling_id=feeling_id,
            content=content,
            weight=squash_unit(raw_weight),
            valence=squash_signed(raw_valence),
            arousal=squash_unit(raw_arousal),
            source_id=source_id,
            created_at=created_at,
            context=context,
        )
        logger.debug(
            "normalizer.ingested",
            feeling_id=feeling.feeling_id,
            weight=feeling.weight,
            valence=feeling.valence,
            arousal=feeling.arousal,
        )
        return feeling

    def apply_context_weight(
        self, feeling: Feeling, tables: Optional[ContextTables] = None
    ) -> Feeling:
        """Scale weight by the environment factor and each relationship-trust factor.

        Unknown ids resolve to a neutral 1.0 with a warning.
        """
        tables = tables or self._tables
        factor = 1.0

        env_id = feeling.context.environment_id
        if env_id:
            env_factor = tables.environment_factor(env_id)
            if env_factor is None:
                logger.warning("normalizer.unknown_environment", environment_id=env_id)
            else:
                factor *= env_factor

        for rel_id in feeling.context.relationship_ids:
            rel_factor = tables.relationship_factor(rel_id)
            if rel_factor is None:
                logger.warning("normalizer.unknown_relationship", relationship_id=rel_id)
                continue
            factor *= rel_factor

        return feeling.with_weight(clamp01(feeling.weight * factor, default=0.0))

    def apply_decay(self, feeling: Feeling, now: float) -> Optional[Feeling]:
        """Return the feeling with its decayed strength as of ``now``, or None if pruned."""
        age = max(0.0, now - feeling.created_at)
        strength = feeling.weight * math.exp(-self._config.decay_rate * age)
        if strength < self._config.prune_epsilon:
            logger.debug("normalizer.pruned", feeling_id=feeling.feeling_id, age_seconds=age)
            return None
        return feeling.with_strength(strength)


class FeelingWorkingSet:
    """The agent's live feelings, keyed by id.

    Members are stored with their base weight; decayed strength is recomputed
    on demand by ``refresh``.
    """

    def __init__(self, normalizer: SignalNormalizer):
        self._normalizer = normalizer
        self._feelings: dict[str, Feeling] = {}

    def add(self, feeling: Feeling) -> None:
        if feeling.feeling_id in self._feelings:
            logger.debug("working_set.duplicate_ignored", feeling_id=feeling.feeling_id)
            return
        self._feelings[feeling.feeling_id] = feeling

    def remove(self, feeling_id: str) -> Optional[Feeling]:
        return self._feelings.pop(feeling_id, None)

    def get(self, feeling_id: str) -> Optional[Feeling]:
        return self._feelings.get(feeling_id)

    def refresh(self, now: float) -> list[Feeling]:
        """Decay every member to ``now``, prune the dead, return the live ones."""
        live: list[Feeling] = []
        pruned = 0
        for feeling_id in sorted(self._feelings):
            decayed = self._normalizer.apply_decay(self._feelings[feeling_id], now)
            if decayed is None:
                del self._feelings[feeling_id]
                pruned += 1
                continue
            live.append(decayed)
        if pruned:
            logger.debug("working_set.pruned", pruned=pruned, remaining=len(live))
        return live

    def absorb(self, feeling_ids: Iterable[str]) -> int:
        """Drop feelings that were consumed as evidence by a belief."""
        absorbed = 0
        for feeling_id in feeling_ids:
            if self._feelings.pop(feeling_id, None) is not None:
                absorbed += 1
        return absorbed

    def __len__(self) -> int:
        return len(self._feelings)

    def __contains__(self, feeling_id: object) -> bool:
        return feeling_id in self._feelings
