"""
Shared fixtures for the Credence test suite.

Provides feeling and belief factories, default configs and a fixed clock so
individual test modules can focus on behavior rather than setup.
"""

from __future__ import annotations

from typing import Optional

import pytest

from credence.beliefs.belief import Belief, BeliefEvidence, BeliefSources, FormationMetadata
from credence.config import ContextTables, CredenceConfig, PipelineConfig
from credence.signals.feeling import Feeling, RawFeeling
from credence.types import EmotionalSignature, FeelingContext

# A fixed "now" keeps decay arithmetic exact and runs reproducible.
NOW = 1_700_000_000.0


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_raw(
    content: str = "rainy mornings feel calming",
    source_id: str = "src-a",
    seconds_ago: float = 1.0,
    **overrides,
) -> RawFeeling:
    """A RawFeeling timestamped *seconds_ago* seconds before NOW."""
    fields = dict(
        content=content,
        source_id=source_id,
        timestamp=NOW - seconds_ago,
        weight=0.9,
        valence=0.8,
        arousal=0.7,
    )
    fields.update(overrides)
    return RawFeeling(**fields)


def make_feeling(
    feeling_id: str,
    content: str = "rainy mornings feel calming",
    weight: float = 0.7,
    valence: float = 0.6,
    arousal: float = 0.6,
    source_id: str = "src-a",
    created_at: float = NOW,
    context: Optional[FeelingContext] = None,
) -> Feeling:
    """An already-normalized Feeling with strength equal to its weight."""
    return Feeling(
        feeling_id=feeling_id,
        content=content,
        weight=weight,
        valence=valence,
        arousal=arousal,
        source_id=source_id,
        created_at=created_at,
        context=context or FeelingContext(),
    )


def make_belief(
    belief_id: str,
    content: str = "rainy mornings feel calming",
    confidence: float = 0.5,
    trust_score: float = 1.0,
    valence: float = 0.5,
    arousal: float = 0.5,
    evidence: tuple[str, ...] = (),
    sources: frozenset[str] = frozenset({"src-a"}),
    adaptability: float = 0.3,
    version: int = 1,
    last_update: float = NOW,
) -> Belief:
    return Belief(
        belief_id=belief_id,
        content=content,
        confidence=confidence,
        signature=EmotionalSignature(valence=valence, arousal=arousal),
        sources=BeliefSources(primary=sources),
        evidence=BeliefEvidence(feelings=evidence or (f"{belief_id}-f1",)),
        formation=FormationMetadata(created_at=NOW, last_update=last_update, version=version),
        adaptability=adaptability,
        trust_score=trust_score,
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def pipeline_config() -> PipelineConfig:
    """PipelineConfig with the documented defaults."""
    return PipelineConfig()


@pytest.fixture()
def context_tables() -> ContextTables:
    return ContextTables(
        environment_weights={"home": 1.0, "office": 0.5},
        relationship_trust={"friend": 1.0, "stranger": 0.5},
        source_trust={"src-a": 1.0, "src-b": 0.8, "src-c": 0.6},
    )


@pytest.fixture()
def credence_config(pipeline_config, context_tables) -> CredenceConfig:
    return CredenceConfig(pipeline=pipeline_config, tables=context_tables)
