"""
Belief Consolidation — when a pattern of feelings becomes a belief.

Clusters are candidates, not conclusions. The consolidator scores each one's
belief potential:

    potential = total_weight × coherence × |average_valence| × average_arousal

Strong, tight, emotionally charged clusters score high; a large but
lukewarm or scattered cluster does not. Only when the potential crosses the
configured threshold is a Belief emitted. Falling short is not an error: it is
the normal non-formation path, and the cluster's feelings keep decaying in the
working set.

Consolidation is idempotent. The same cluster snapshot always produces a
content-identical belief: same id, same ordered evidence, same numbers to the
configured precision.
"""

from __future__ import annotations

import hashlib
import statistics
import time
from dataclasses import dataclass
from typing import Optional

import structlog

from credence._utils import clamp01, squash_unit
from credence.beliefs.belief import (
    Belief,
    BeliefEvidence,
    BeliefSources,
    FormationMetadata,
)
from credence.beliefs.clustering import FeelingCluster, weighted_mean
from credence.config import ContextTables, PipelineConfig
from credence.types import EmotionalSignature

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BeliefPotential:
    """A cluster's belief potential and the four factors it is made of."""

    value: float
    total_weight: float
    coherence: float
    valence_magnitude: float
    arousal: float

    def crosses(self, threshold: float) -> bool:
        return self.value >= threshold


def belief_id_for(content: str, evidence_ids: tuple[str, ...]) -> str:
    """Deterministic belief id from its content and ordered evidence."""
    digest = hashlib.sha256(
        (content + "\x1f" + ",".join(evidence_ids)).encode("utf-8")
    ).hexdigest()
    return f"belief-{digest[:16]}"


class BeliefConsolidator:
    """Scores clusters and crystallizes the strong ones into beliefs."""

    def __init__(self, config: PipelineConfig, tables: ContextTables):
        self._config = config
        self._tables = tables

    def _round(self, value: float) -> float:
        return round(value, self._config.precision)

    def evaluate(self, cluster: FeelingCluster) -> BeliefPotential:
        valence_magnitude = abs(cluster.average_valence)
        value = (
            cluster.total_weight
            * cluster.coherence
            * valence_magnitude
            * cluster.average_arousal
        )
        return BeliefPotential(
            value=value,
            total_weight=cluster.total_weight,
            coherence=cluster.coherence,
            valence_magnitude=valence_magnitude,
            arousal=cluster.average_arousal,
        )

    def consolidate(
        self, cluster: FeelingCluster, now: Optional[float] = None
    ) -> Optional[Belief]:
        """Return a new Belief if the cluster's potential crosses the threshold, else None."""
        potential = self.evaluate(cluster)
        if not potential.crosses(self._config.belief_threshold):
            logger.debug(
                "consolidator.below_threshold",
                centroid=cluster.centroid,
                potential=potential.value,
                threshold=self._config.belief_threshold,
            )
            return None

        now = time.time() if now is None else now
        # Evidence ordered by contribution weight, strongest first
        contributors = sorted(cluster.members, key=lambda f: (-f.strength, f.feeling_id))
        evidence_ids = tuple(f.feeling_id for f in contributors)
        contexts: dict[str, None] = {}
        for feeling in contributors:
            for context_id in feeling.context.context_ids():
                contexts.setdefault(context_id, None)

        weights = [f.strength for f in contributors]
        adaptability = self._config.base_adaptability
        variance = statistics.pvariance(weights) if len(weights) > 1 else 0.0
        if variance > self._config.volatility_variance_threshold:
            adaptability = clamp01(
                adaptability + self._config.volatility_gain * variance,
                default=adaptability,
            )

        trust_score = weighted_mean(
            [self._tables.trust_for_source(f.source_id) for f in contributors],
            weights,
        )

        belief = Belief(
            belief_id=belief_id_for(cluster.centroid, evidence_ids),
            content=cluster.centroid,
            confidence=self._round(squash_unit(potential.value)),
            signature=EmotionalSignature(
                valence=self._round(cluster.average_valence),
                arousal=self._round(cluster.average_arousal),
            ),
            sources=BeliefSources(
                primary=frozenset(f.source_id for f in contributors),
                supporting=frozenset(),
            ),
            evidence=BeliefEvidence(feelings=evidence_ids, contexts=tuple(contexts)),
            formation=FormationMetadata(created_at=now, last_update=now, version=1),
            adaptability=self._round(adaptability),
            trust_score=self._round(max(0.0, trust_score)),
        )
        logger.info(
            "consolidator.formed",
            belief_id=belief.belief_id,
            content=belief.content,
            confidence=belief.confidence,
            potential=potential.value,
            evidence_count=len(evidence_ids),
        )
        return belief
