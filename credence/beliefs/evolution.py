"""
Belief Evolution — how beliefs change after they form.

Three forces act on a belief over its lifetime:

1. Reinforcement: new evidence pulls confidence toward the evidence's strength.
   How far it pulls depends on the belief's adaptability: an adaptable belief
   tracks new evidence closely, a settled one barely moves.
2. Passive decay: a belief nobody reinforces erodes exponentially. Decay is
   lazy; it is computed from the time since the belief's last update whenever
   the belief is read or evolved, never by a background timer.
3. Conflict: when two beliefs contradict each other, the resolver either
   synthesizes them into one (when they are roughly equally strong) or keeps
   the stronger and supersedes the weaker.

Every operation here returns new Belief snapshots; none mutates its inputs.
"""

from __future__ import annotations

import hashlib
import math
import time
from dataclasses import dataclass, replace
from typing import Optional

import structlog

from credence._utils import clamp01
from credence.beliefs.belief import Belief, FormationMetadata
from credence.beliefs.clustering import weighted_mean
from credence.config import PipelineConfig
from credence.signals.feeling import Feeling
from credence.types import EmotionalSignature

logger = structlog.get_logger(__name__)


class BeliefEvolver:
    """Reinforces beliefs with new evidence and applies lazy passive decay."""

    def __init__(self, config: PipelineConfig):
        self._config = config

    def apply_passive_decay(self, belief: Belief, now: float) -> Belief:
        """Confidence as of ``now``: c * exp(-belief_decay_rate * elapsed), floored."""
        elapsed = now - belief.formation.last_update
        if elapsed <= 0:
            return belief
        decayed = belief.confidence * math.exp(-self._config.belief_decay_rate * elapsed)
        floor = min(belief.confidence, self._config.confidence_floor)
        return replace(
            belief,
            confidence=max(floor, decayed, 0.0),
            formation=replace(belief.formation, last_update=now),
        )

    def evolve(self, belief: Belief, feeling: Feeling, now: Optional[float] = None) -> Belief:
        """Fold one new piece of evidence into a belief.

        new_confidence = confidence × (1 − adaptability) + evidence_strength × adaptability
        """
        if belief.superseded:
            logger.warning("evolver.superseded_belief_ignored", belief_id=belief.belief_id)
            return belief
        if feeling.feeling_id in belief.evidence.feelings:
            logger.debug(
                "evolver.duplicate_evidence",
                belief_id=belief.belief_id,
                feeling_id=feeling.feeling_id,
            )
            return belief

        now = time.time() if now is None else now
        current = self.apply_passive_decay(belief, now)
        adaptability = clamp01(current.adaptability)
        evidence_strength = clamp01(feeling.strength, default=0.0)
        confidence = clamp01(
            current.confidence * (1 - adaptability) + evidence_strength * adaptability,
            default=current.confidence,
        )

        evolved = replace(
            current,
            confidence=confidence,
            evidence=current.evidence.with_feeling(
                feeling.feeling_id, feeling.context.context_ids()
            ),
            sources=current.sources.with_supporting(feeling.source_id),
            formation=FormationMetadata(
                created_at=current.formation.created_at,
                last_update=now,
                version=current.formation.version + 1,
            ),
        )
        logger.info(
            "evolver.evolved",
            belief_id=belief.belief_id,
            previous=belief.confidence,
            confidence=confidence,
            version=evolved.version,
        )
        return evolved


@dataclass(frozen=True)
class ConflictOutcome:
    """The result of resolving two contradicting beliefs.

    ``winner`` is the belief that stays active: either the stronger input,
    unchanged, or a newly synthesized belief. ``superseded`` holds the
    retired inputs, flagged and kept for audit.
    """

    winner: Belief
    superseded: tuple[Belief, ...]
    merged: bool


def merged_belief_id(id_a: str, id_b: str) -> str:
    first, second = sorted((id_a, id_b))
    digest = hashlib.sha256(f"merge\x1f{first}\x1f{second}".encode("utf-8")).hexdigest()
    return f"belief-{digest[:16]}"


class ConflictResolver:
    """Resolves contradicting beliefs by synthesis or selection."""

    def __init__(self, config: PipelineConfig):
        self._config = config

    @staticmethod
    def _canonical_order(a: Belief, b: Belief) -> tuple[Belief, Belief]:
        """Stronger first; ties by content then id, so argument order never matters."""
        first, second = sorted((a, b), key=lambda x: (-x.strength, x.content, x.belief_id))
        return first, second

    def resolve_conflict(self, a: Belief, b: Belief) -> ConflictOutcome:
        """Resolve two belief snapshots. Always yields a result."""
        first, second = self._canonical_order(a, b)
        gap = abs(first.strength - second.strength)

        if gap < self._config.resolution_epsilon:
            merged = self._synthesize(first, second)
            retired = tuple(
                sorted(
                    (first.supersede(merged.belief_id), second.supersede(merged.belief_id)),
                    key=lambda x: x.belief_id,
                )
            )
            logger.info(
                "resolver.merged",
                belief_ids=[x.belief_id for x in retired],
                merged_id=merged.belief_id,
                strength_gap=gap,
            )
            return ConflictOutcome(winner=merged, superseded=retired, merged=True)

        logger.info(
            "resolver.selected",
            winner=first.belief_id,
            superseded=second.belief_id,
            strength_gap=gap,
        )
        return ConflictOutcome(
            winner=first,
            superseded=(second.supersede(first.belief_id),),
            merged=False,
        )

    def _synthesize(self, first: Belief, second: Belief) -> Belief:
        confidences = [first.confidence, second.confidence]
        signature = EmotionalSignature(
            valence=weighted_mean(
                [first.signature.valence, second.signature.valence], confidences
            ),
            arousal=weighted_mean(
                [first.signature.arousal, second.signature.arousal], confidences
            ),
        ).clamp()
        return Belief(
            belief_id=merged_belief_id(first.belief_id, second.belief_id),
            content=first.content,
            confidence=max(confidences),
            signature=signature,
            sources=first.sources.union(second.sources),
            evidence=first.evidence.union(second.evidence),
            formation=FormationMetadata(
                created_at=min(first.formation.created_at, second.formation.created_at),
                last_update=max(first.formation.last_update, second.formation.last_update),
                version=max(first.version, second.version) + 1,
            ),
            # The more volatile input wins
            adaptability=max(first.adaptability, second.adaptability),
            trust_score=weighted_mean([first.trust_score, second.trust_score], confidences),
        )
