"""
Cluster Builder — grouping live feelings into coherent themes.

A single feeling is noise. Several strong, similar feelings from different
moments are a pattern worth paying attention to. This module groups the live
working set into clusters that the consolidator can then weigh.

The pass is deterministic: identical feelings and configuration always yield
identical membership and ordering. Feelings are walked strongest-first (ties by
feeling id), each one joining the most similar existing cluster above the
similarity threshold, or seeding a new one. Clusters too small to mean anything
are dropped from the output, but their feelings stay in the working set for the
next pass.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from credence.beliefs.similarity import SimilarityFn, bounded, jaccard_similarity
from credence.config import PipelineConfig
from credence.signals.feeling import Feeling

logger = structlog.get_logger(__name__)

# Largest possible population standard deviation of values in [0, 1]
_MAX_UNIT_STDEV = 0.5


@dataclass(frozen=True)
class FeelingCluster:
    """An ephemeral group of similar feelings from one clustering pass."""

    centroid: str                       # Content of the representative member
    centroid_id: str                    # Feeling id of the representative member
    members: tuple[Feeling, ...]        # In walk order (strongest first)
    total_weight: float
    average_valence: float
    average_arousal: float
    coherence: float
    similarities: tuple[float, ...]     # Each member's similarity to the centroid

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(f.feeling_id for f in self.members)

    @property
    def size(self) -> int:
        return len(self.members)


def weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float:
    """Weight-weighted mean, falling back to the plain mean when weights sum to zero."""
    if not values:
        return 0.0
    total = sum(weights)
    if total <= 0:
        return sum(values) / len(values)
    return sum(v * w for v, w in zip(values, weights)) / total


def coherence_of(similarities: Sequence[float]) -> float:
    """One minus the normalized dispersion of member similarities to the centroid."""
    if len(similarities) < 2:
        return 1.0
    dispersion = statistics.pstdev(similarities) / _MAX_UNIT_STDEV
    return max(0.0, 1.0 - min(1.0, dispersion))


class ClusterBuilder:
    """Deterministic, threshold-based clustering of live feelings."""

    def __init__(self, config: PipelineConfig, similarity: Optional[SimilarityFn] = None):
        self._config = config
        self._similarity = bounded(similarity or jaccard_similarity)

    def build_clusters(self, active_feelings: Sequence[Feeling]) -> list[FeelingCluster]:
        """Group feelings into clusters; only clusters of min_cluster_size or more are emitted."""
        threshold = self._config.similarity_threshold
        ordered = sorted(active_feelings, key=lambda f: (-f.strength, f.feeling_id))

        groups: list[list[Feeling]] = []
        for feeling in ordered:
            best_index: Optional[int] = None
            best_similarity = -1.0
            for index, group in enumerate(groups):
                # During the walk a cluster's centroid is its seed (strongest member)
                similarity = self._similarity(group[0].content, feeling.content)
                if similarity >= threshold and similarity > best_similarity:
                    best_index, best_similarity = index, similarity
            if best_index is None:
                groups.append([feeling])
            else:
                groups[best_index].append(feeling)

        clusters: list[FeelingCluster] = []
        discarded = 0
        for group in groups:
            if len(group) < self._config.min_cluster_size:
                discarded += 1
                continue
            clusters.append(self._summarize(group))

        logger.debug(
            "clusters.built",
            feelings=len(ordered),
            candidate_groups=len(groups),
            emitted=len(clusters),
            discarded=discarded,
        )
        return clusters

    def _representative(self, members: Sequence[Feeling]) -> Feeling:
        """The member most similar to the rest, weighted by their strength."""
        best: Optional[Feeling] = None
        best_score = -1.0
        for candidate in sorted(members, key=lambda f: f.feeling_id):
            score = sum(
                other.strength * self._similarity(candidate.content, other.content)
                for other in members
            )
            if score > best_score:
                best, best_score = candidate, score
        assert best is not None
        return best

    def _summarize(self, members: list[Feeling]) -> FeelingCluster:
        centroid = self._representative(members)
        similarities = tuple(
            self._similarity(centroid.content, member.content) for member in members
        )
        weights = [m.strength for m in members]
        return FeelingCluster(
            centroid=centroid.content,
            centroid_id=centroid.feeling_id,
            members=tuple(members),
            total_weight=sum(weights),
            average_valence=weighted_mean([m.valence for m in members], weights),
            average_arousal=weighted_mean([m.arousal for m in members], weights),
            coherence=coherence_of(similarities),
            similarities=similarities,
        )
