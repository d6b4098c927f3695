"""
Feelings — the transient signals beliefs are made from.

A feeling is a single weighted emotional signal attached to an agent: something
happened in some environment, was triggered by something, involved some
relationships, and it felt a particular way. On its own it means very little.
Feelings live in the agent's working set until they either decay below
relevance and are pruned, or are absorbed as evidence into a belief. After
absorption only the feeling's id survives, inside the belief's evidence list.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from credence.types import EmotionalSignature, FeelingContext


@dataclass
class RawFeeling:
    """An unvalidated signal as submitted by an (already authenticated) caller.

    Numeric fields may hold arbitrary magnitudes; the normalizer squashes them
    into canonical ranges.
    """

    content: Any
    source_id: Any
    timestamp: Any
    weight: Any = 1.0
    valence: Any = 0.0
    arousal: Any = 0.0
    environment_id: str = ""
    trigger_id: str = ""
    relationship_ids: list[str] = field(default_factory=list)
    feeling_id: Optional[str] = None


@dataclass(frozen=True)
class Feeling:
    """A validated, normalized feeling.

    ``weight`` is the normalized, context-weighted base weight. ``strength`` is
    the weight after temporal decay as of the last time it was read; it equals
    ``weight`` until decay is applied.
    """

    feeling_id: str
    content: str
    weight: float
    valence: float
    arousal: float
    source_id: str
    created_at: float
    context: FeelingContext = field(default_factory=FeelingContext)
    strength: float = -1.0

    def __post_init__(self) -> None:
        if self.strength < 0:
            object.__setattr__(self, "strength", self.weight)

    @property
    def signature(self) -> EmotionalSignature:
        return EmotionalSignature(valence=self.valence, arousal=self.arousal)

    def with_weight(self, weight: float) -> Feeling:
        """Return a copy with a new base weight (strength reset to match)."""
        return replace(self, weight=weight, strength=weight)

    def with_strength(self, strength: float) -> Feeling:
        return replace(self, strength=strength)


def derive_feeling_id(content: str, source_id: str, created_at: float, context: FeelingContext) -> str:
    """Stable id for a feeling submitted without one.

    Identical submissions map to the same id, so re-submitting a signal does
    not create a second feeling in the working set.
    """
    digest = hashlib.sha256(
        "\x1f".join(
            [
                content,
                source_id,
                repr(float(created_at)),
                context.environment_id,
                context.trigger_id,
                ",".join(context.relationship_ids),
            ]
        ).encode("utf-8")
    ).hexdigest()
    return f"feel-{digest[:16]}"
