"""
Core value types shared across Credence subsystems.

These are small immutable containers that cross stage boundaries (signals,
beliefs, personality). They live here rather than in a specific subsystem to
avoid circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from credence._utils import clamp01, clamp_signed


@dataclass(frozen=True)
class EmotionalSignature:
    """Valence (-1.0 to 1.0) and arousal (0.0 to 1.0) of a signal or belief."""

    valence: float = 0.0
    arousal: float = 0.0

    def clamp(self) -> EmotionalSignature:
        """Ensure both dimensions stay within valid ranges."""
        return EmotionalSignature(
            valence=clamp_signed(self.valence),
            arousal=clamp01(self.arousal, default=0.0),
        )

    def blend(self, other: EmotionalSignature, weight: float = 0.5) -> EmotionalSignature:
        """Blend two signatures with a given weight (0=self, 1=other)."""
        w = max(0.0, min(1.0, weight))
        return EmotionalSignature(
            valence=self.valence * (1 - w) + other.valence * w,
            arousal=self.arousal * (1 - w) + other.arousal * w,
        ).clamp()


@dataclass(frozen=True)
class FeelingContext:
    """Where a feeling came from: environment, trigger and relationships involved."""

    environment_id: str = ""
    trigger_id: str = ""
    # Ordered and de-duplicated; order is the order the submitter listed them in
    relationship_ids: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: dict[str, None] = {}
        for rel in self.relationship_ids:
            rel = str(rel).strip()
            if rel:
                seen.setdefault(rel, None)
        object.__setattr__(self, "relationship_ids", tuple(seen))

    def context_ids(self) -> tuple[str, ...]:
        """All non-empty context identifiers, in a stable order."""
        ids = [self.environment_id, self.trigger_id, *self.relationship_ids]
        return tuple(i for i in ids if i)
