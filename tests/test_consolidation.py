"""
Tests for credence.beliefs.consolidation — Belief Consolidator.

Covers:
- potential = total_weight × coherence × |valence| × arousal
- threshold gating (non-formation is the normal path, not an error)
- belief field derivation (confidence, sources, evidence order, trust, adaptability)
- idempotence / determinism
"""

from __future__ import annotations

import math

import pytest

from conftest import NOW, make_feeling
from credence.beliefs.clustering import ClusterBuilder
from credence.beliefs.consolidation import BeliefConsolidator
from credence.config import PipelineConfig
from credence.types import FeelingContext


@pytest.fixture()
def builder(pipeline_config) -> ClusterBuilder:
    return ClusterBuilder(pipeline_config)


@pytest.fixture()
def consolidator(pipeline_config, context_tables) -> BeliefConsolidator:
    return BeliefConsolidator(pipeline_config, context_tables)


def _cluster(builder, feelings):
    clusters = builder.build_clusters(feelings)
    assert len(clusters) == 1
    return clusters[0]


class TestPotential:
    def test_potential_formula(self, builder, consolidator):
        cluster = _cluster(builder, [make_feeling(f"f{i}") for i in range(3)])
        potential = consolidator.evaluate(cluster)
        assert potential.value == pytest.approx(2.1 * 1.0 * 0.6 * 0.6)
        assert potential.total_weight == pytest.approx(2.1)
        assert potential.coherence == pytest.approx(1.0)

    def test_negative_valence_counts_by_magnitude(self, builder, consolidator):
        cluster = _cluster(builder, [make_feeling(f"f{i}", valence=-0.6) for i in range(3)])
        assert consolidator.evaluate(cluster).value == pytest.approx(2.1 * 0.6 * 0.6)

    def test_below_threshold_forms_nothing(self, builder, consolidator):
        feelings = [make_feeling(f"f{i}", weight=0.2, valence=0.1, arousal=0.2) for i in range(3)]
        assert consolidator.consolidate(_cluster(builder, feelings), now=NOW) is None

    def test_neutral_cluster_forms_nothing(self, builder, consolidator):
        feelings = [make_feeling(f"f{i}", valence=0.0) for i in range(3)]
        assert consolidator.consolidate(_cluster(builder, feelings), now=NOW) is None


class TestBeliefFields:
    def test_formed_belief(self, builder, consolidator):
        feelings = [
            make_feeling("f1", weight=0.5, source_id="src-a"),
            make_feeling("f2", weight=0.9, source_id="src-b"),
            make_feeling("f3", weight=0.7, source_id="src-a"),
        ]
        cluster = _cluster(builder, feelings)
        belief = consolidator.consolidate(cluster, now=NOW)

        assert belief is not None
        potential = consolidator.evaluate(cluster).value
        assert belief.confidence == pytest.approx(math.tanh(potential))
        assert 0.0 < belief.confidence <= 1.0
        assert belief.content == "rainy mornings feel calming"
        assert belief.evidence.feelings == ("f2", "f3", "f1")
        assert belief.sources.primary == frozenset({"src-a", "src-b"})
        assert belief.sources.supporting == frozenset()
        assert belief.version == 1
        assert belief.formation.created_at == NOW
        assert belief.signature.valence == pytest.approx(0.6)
        assert not belief.superseded

    def test_trust_is_weighted_mean_of_source_trust(self, builder, consolidator):
        feelings = [
            make_feeling("f1", source_id="src-a"),
            make_feeling("f2", source_id="src-b"),
            make_feeling("f3", source_id="src-c"),
        ]
        belief = consolidator.consolidate(_cluster(builder, feelings), now=NOW)
        assert belief.trust_score == pytest.approx((1.0 + 0.8 + 0.6) / 3)

    def test_unknown_source_trust_is_neutral(self, builder, consolidator):
        feelings = [make_feeling(f"f{i}", source_id="src-unknown") for i in range(3)]
        belief = consolidator.consolidate(_cluster(builder, feelings), now=NOW)
        assert belief.trust_score == pytest.approx(1.0)

    def test_steady_weights_keep_base_adaptability(self, builder, consolidator, pipeline_config):
        belief = consolidator.consolidate(
            _cluster(builder, [make_feeling(f"f{i}") for i in range(3)]), now=NOW
        )
        assert belief.adaptability == pytest.approx(pipeline_config.base_adaptability)

    def test_volatile_weights_raise_adaptability(self, builder, consolidator, pipeline_config):
        feelings = [
            make_feeling("f1", weight=1.0),
            make_feeling("f2", weight=0.5),
            make_feeling("f3", weight=0.1),
        ]
        belief = consolidator.consolidate(_cluster(builder, feelings), now=NOW)
        assert pipeline_config.base_adaptability < belief.adaptability <= 1.0

    def test_context_ids_collected_in_contribution_order(self, builder, consolidator):
        feelings = [
            make_feeling("f1", weight=0.9, context=FeelingContext("home", "storm", ("friend",))),
            make_feeling("f2", weight=0.7, context=FeelingContext("office", "", ("friend",))),
            make_feeling("f3", weight=0.5),
        ]
        belief = consolidator.consolidate(_cluster(builder, feelings), now=NOW)
        assert belief.evidence.contexts == ("home", "storm", "friend", "office")


class TestIdempotence:
    def test_same_snapshot_same_belief(self, builder, consolidator):
        cluster = _cluster(builder, [make_feeling(f"f{i}") for i in range(3)])
        assert consolidator.consolidate(cluster, now=NOW) == consolidator.consolidate(
            cluster, now=NOW
        )

    def test_rebuilt_cluster_same_content(self, consolidator):
        feelings = [make_feeling(f"f{i}", weight=0.5 + 0.1 * i) for i in range(3)]
        first = consolidator.consolidate(
            ClusterBuilder(PipelineConfig()).build_clusters(feelings)[0], now=NOW
        )
        second = consolidator.consolidate(
            ClusterBuilder(PipelineConfig()).build_clusters(list(reversed(feelings)))[0],
            now=NOW + 5,
        )
        assert first.belief_id == second.belief_id
        assert first.evidence == second.evidence
        assert first.confidence == second.confidence
        assert first.trust_score == second.trust_score
        assert first.adaptability == second.adaptability
