"""
Beliefs — the durable records feelings consolidate into.

A belief is an immutable snapshot. Every change the pipeline makes to a belief
(reinforcement, decay, propagation, supersession) produces a new Belief object;
the old one is left untouched for anyone still holding it. The live belief is
whichever snapshot the agent's BeliefNetwork currently stores under its id.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from credence.types import EmotionalSignature


def _ordered_union(*sequences: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for sequence in sequences:
        for item in sequence:
            seen.setdefault(item, None)
    return tuple(seen)


@dataclass(frozen=True)
class BeliefSources:
    """Where a belief's support came from. Both sets are order-insensitive."""

    primary: frozenset[str] = field(default_factory=frozenset)
    supporting: frozenset[str] = field(default_factory=frozenset)

    def union(self, other: BeliefSources) -> BeliefSources:
        primary = self.primary | other.primary
        return BeliefSources(
            primary=primary,
            supporting=(self.supporting | other.supporting) - primary,
        )

    def with_supporting(self, source_id: str) -> BeliefSources:
        if source_id in self.primary or source_id in self.supporting:
            return self
        return BeliefSources(primary=self.primary, supporting=self.supporting | {source_id})


@dataclass(frozen=True)
class BeliefEvidence:
    """Ordered feeling ids and context ids that contributed to a belief."""

    feelings: tuple[str, ...] = field(default_factory=tuple)
    contexts: tuple[str, ...] = field(default_factory=tuple)

    def with_feeling(self, feeling_id: str, context_ids: Iterable[str] = ()) -> BeliefEvidence:
        return BeliefEvidence(
            feelings=_ordered_union(self.feelings, [feeling_id]),
            contexts=_ordered_union(self.contexts, context_ids),
        )

    def union(self, other: BeliefEvidence) -> BeliefEvidence:
        return BeliefEvidence(
            feelings=_ordered_union(self.feelings, other.feelings),
            contexts=_ordered_union(self.contexts, other.contexts),
        )


@dataclass(frozen=True)
class FormationMetadata:
    created_at: float
    last_update: float
    version: int = 1


@dataclass(frozen=True)
class Belief:
    """A consolidated, versioned belief.

    ``confidence`` is the belief's strength as of ``formation.last_update``;
    passive decay beyond that instant is applied lazily by the evolver.
    Superseded beliefs are kept for audit but never influence propagation
    or personality.
    """

    belief_id: str
    content: str
    confidence: float
    signature: EmotionalSignature
    sources: BeliefSources
    evidence: BeliefEvidence
    formation: FormationMetadata
    adaptability: float
    trust_score: float
    superseded: bool = False
    superseded_by: Optional[str] = None

    @property
    def version(self) -> int:
        return self.formation.version

    @property
    def strength(self) -> float:
        """Conflict strength: confidence weighted by source trust."""
        return self.confidence * self.trust_score

    @property
    def is_active(self) -> bool:
        return not self.superseded

    def with_confidence(self, confidence: float) -> Belief:
        return replace(self, confidence=max(0.0, min(1.0, confidence)))

    def supersede(self, by: Optional[str] = None) -> Belief:
        """Return a superseded copy. Supersession is terminal."""
        if self.superseded:
            return self
        return replace(self, superseded=True, superseded_by=by)
