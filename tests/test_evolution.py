"""
Tests for credence.beliefs.evolution — Belief Evolver and Conflict Resolver.

Covers:
- evolve() confidence update, bounds, evidence/version bookkeeping
- apply_passive_decay() laziness, monotonicity and floor
- resolve_conflict() synthesis vs. selection, and order symmetry
"""

from __future__ import annotations

import itertools
import math

import pytest

from conftest import NOW, make_belief, make_feeling
from credence.beliefs.evolution import BeliefEvolver, ConflictResolver
from credence.config import PipelineConfig
from credence.types import FeelingContext


@pytest.fixture()
def evolver(pipeline_config) -> BeliefEvolver:
    return BeliefEvolver(pipeline_config)


@pytest.fixture()
def resolver(pipeline_config) -> ConflictResolver:
    return ConflictResolver(pipeline_config)


# ---------------------------------------------------------------------------
# evolve
# ---------------------------------------------------------------------------

class TestEvolve:
    def test_confidence_update_rule(self, evolver):
        belief = make_belief("b1", confidence=0.4, adaptability=0.25)
        feeling = make_feeling("f-new", weight=0.8)
        evolved = evolver.evolve(belief, feeling, now=NOW)
        assert evolved.confidence == pytest.approx(0.4 * 0.75 + 0.8 * 0.25)

    def test_confidence_always_in_unit_range(self, evolver):
        values = (0.0, 0.5, 1.0)
        for confidence, adaptability, strength in itertools.product(values, repeat=3):
            belief = make_belief("b1", confidence=confidence, adaptability=adaptability)
            evolved = evolver.evolve(belief, make_feeling("f-new", weight=strength), now=NOW)
            assert 0.0 <= evolved.confidence <= 1.0

    def test_bookkeeping(self, evolver):
        belief = make_belief("b1", evidence=("f1", "f2"), version=3)
        feeling = make_feeling(
            "f3", source_id="src-z", context=FeelingContext(environment_id="home")
        )
        evolved = evolver.evolve(belief, feeling, now=NOW + 10)
        assert evolved.evidence.feelings == ("f1", "f2", "f3")
        assert "home" in evolved.evidence.contexts
        assert evolved.version == 4
        assert evolved.formation.last_update == NOW + 10
        assert evolved.formation.created_at == belief.formation.created_at
        assert "src-z" in evolved.sources.supporting

    def test_input_not_mutated(self, evolver):
        belief = make_belief("b1", confidence=0.4)
        evolver.evolve(belief, make_feeling("f-new", weight=0.9), now=NOW)
        assert belief.confidence == 0.4
        assert belief.version == 1

    def test_duplicate_evidence_ignored(self, evolver):
        belief = make_belief("b1", evidence=("f1",))
        assert evolver.evolve(belief, make_feeling("f1"), now=NOW) is belief

    def test_superseded_belief_not_evolved(self, evolver):
        belief = make_belief("b1").supersede("b2")
        assert evolver.evolve(belief, make_feeling("f-new"), now=NOW) is belief

    def test_primary_source_not_duplicated_as_supporting(self, evolver):
        belief = make_belief("b1", sources=frozenset({"src-a"}))
        evolved = evolver.evolve(belief, make_feeling("f-new", source_id="src-a"), now=NOW)
        assert evolved.sources.supporting == frozenset()


# ---------------------------------------------------------------------------
# passive decay
# ---------------------------------------------------------------------------

class TestPassiveDecay:
    def test_decay_formula(self, evolver, pipeline_config):
        belief = make_belief("b1", confidence=0.8)
        decayed = evolver.apply_passive_decay(belief, NOW + 100_000)
        expected = 0.8 * math.exp(-pipeline_config.belief_decay_rate * 100_000)
        assert decayed.confidence == pytest.approx(expected)
        assert decayed.version == belief.version

    def test_no_elapsed_time_is_identity(self, evolver):
        belief = make_belief("b1")
        assert evolver.apply_passive_decay(belief, NOW) is belief
        assert evolver.apply_passive_decay(belief, NOW - 50) is belief

    def test_repeated_reads_do_not_compound(self, evolver):
        belief = make_belief("b1", confidence=0.8)
        once = evolver.apply_passive_decay(belief, NOW + 2000)
        twice = evolver.apply_passive_decay(
            evolver.apply_passive_decay(belief, NOW + 1000), NOW + 2000
        )
        assert twice.confidence == pytest.approx(once.confidence)

    def test_floor_respected(self, pipeline_config):
        evolver = BeliefEvolver(PipelineConfig(confidence_floor=0.2))
        decayed = evolver.apply_passive_decay(make_belief("b1", confidence=0.8), NOW + 1e9)
        assert decayed.confidence == pytest.approx(0.2)

    def test_never_negative(self, evolver):
        decayed = evolver.apply_passive_decay(make_belief("b1", confidence=0.8), NOW + 1e12)
        assert decayed.confidence >= 0.0

    def test_evolve_decays_before_reinforcing(self, evolver, pipeline_config):
        belief = make_belief("b1", confidence=0.8, adaptability=0.5)
        later = NOW + 500_000
        evolved = evolver.evolve(belief, make_feeling("f-new", weight=0.8), now=later)
        decayed = 0.8 * math.exp(-pipeline_config.belief_decay_rate * 500_000)
        assert evolved.confidence == pytest.approx(decayed * 0.5 + 0.8 * 0.5)


# ---------------------------------------------------------------------------
# conflict resolution
# ---------------------------------------------------------------------------

class TestResolveConflict:
    def test_close_strengths_synthesize(self, resolver):
        a = make_belief("a", content="rain is calming", confidence=0.52, evidence=("f1", "f2"))
        b = make_belief("b", content="rain is stressful", confidence=0.55, evidence=("f2", "f3"),
                        sources=frozenset({"src-b"}), version=4, adaptability=0.6)
        outcome = resolver.resolve_conflict(a, b)

        assert outcome.merged
        merged = outcome.winner
        assert set(merged.evidence.feelings) == {"f1", "f2", "f3"}
        assert len(merged.evidence.feelings) == 3
        assert merged.confidence == pytest.approx(0.55)
        assert merged.sources.primary == frozenset({"src-a", "src-b"})
        assert merged.version == 5
        assert merged.adaptability == pytest.approx(0.6)
        # Representative content comes from the stronger belief
        assert merged.content == "rain is stressful"
        assert {s.belief_id for s in outcome.superseded} == {"a", "b"}
        assert all(s.superseded and s.superseded_by == merged.belief_id for s in outcome.superseded)

    def test_distant_strengths_select(self, resolver):
        weak = make_belief("weak", content="rain is stressful", confidence=0.2)
        strong = make_belief("strong", content="rain is calming", confidence=0.9)
        outcome = resolver.resolve_conflict(weak, strong)

        assert not outcome.merged
        assert outcome.winner is strong
        (loser,) = outcome.superseded
        assert loser.belief_id == "weak"
        assert loser.superseded
        assert loser.superseded_by == "strong"
        # The input snapshot itself is untouched
        assert not weak.superseded

    def test_trust_weighs_into_strength(self, resolver):
        trusted = make_belief("t", confidence=0.6, trust_score=1.0)
        doubtful = make_belief("d", confidence=0.9, trust_score=0.3)
        outcome = resolver.resolve_conflict(trusted, doubtful)
        assert outcome.winner is trusted

    @pytest.mark.parametrize(
        "conf_a,conf_b",
        [(0.52, 0.55), (0.2, 0.9), (0.5, 0.5), (0.7, 0.1)],
    )
    def test_order_symmetric(self, resolver, conf_a, conf_b):
        a = make_belief("a", content="rain is calming", confidence=conf_a, evidence=("f1",))
        b = make_belief("b", content="rain is stressful", confidence=conf_b, evidence=("f2",))
        ab = resolver.resolve_conflict(a, b)
        ba = resolver.resolve_conflict(b, a)
        assert ab == ba

    def test_resolution_always_yields_a_winner(self, resolver):
        for conf_a, conf_b in itertools.product((0.0, 0.3, 1.0), repeat=2):
            outcome = resolver.resolve_conflict(
                make_belief("a", confidence=conf_a), make_belief("b", confidence=conf_b)
            )
            assert outcome.winner is not None
            assert outcome.winner.is_active
