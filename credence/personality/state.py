"""
Personality State — who the agent is, as accumulated from what it believes.

The state is an immutable snapshot: trait values, an emotional baseline the
agent tends toward, the behavior patterns it follows, and a reference to the
belief network the snapshot was computed against. Personality evolves as an
explicit fold, one belief change at a time, each step producing a new
snapshot. Readers holding an older snapshot never see it change underneath
them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

from credence._utils import clamp01
from credence.beliefs.network import BeliefNetwork
from credence.types import EmotionalSignature


def _frozen_mapping(values: Mapping[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class BehaviorPattern:
    """A trigger → response rule whose confidence tracks the beliefs it depends on."""

    trigger_id: str
    response_id: str
    confidence: float = 0.0
    dependencies: tuple[str, ...] = field(default_factory=tuple)
    # Per-dependency weights, parallel to ``dependencies``; empty means all 1.0
    weights: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.weights and len(self.weights) != len(self.dependencies):
            raise ValueError("weights must be empty or match dependencies one-to-one")
        if any(w < 0 for w in self.weights):
            raise ValueError("dependency weights must be >= 0")

    @property
    def key(self) -> tuple[str, str]:
        return (self.trigger_id, self.response_id)

    def depends_on(self, belief_id: str) -> bool:
        return belief_id in self.dependencies

    def recompute(self, confidences: Mapping[str, float]) -> BehaviorPattern:
        """Weighted average of the dependencies' current confidences.

        Dependencies missing from ``confidences`` count as 0.0 with their
        weight retained.
        """
        if not self.dependencies:
            return self
        weights = self.weights or tuple(1.0 for _ in self.dependencies)
        total = sum(weights)
        if total <= 0:
            return replace(self, confidence=0.0)
        value = sum(
            w * confidences.get(dep, 0.0) for dep, w in zip(self.dependencies, weights)
        ) / total
        return replace(self, confidence=clamp01(value, default=0.0))


@dataclass(frozen=True)
class PersonalityView:
    """Read-only view of personality for the query boundary."""

    traits: Mapping[str, float]
    baseline: EmotionalSignature
    processed: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize for callers outside the pipeline."""
        return {
            "traits": dict(self.traits),
            "baseline": {
                "valence": self.baseline.valence,
                "arousal": self.baseline.arousal,
            },
            "processed": self.processed,
        }


@dataclass(frozen=True)
class PersonalityState:
    traits: Mapping[str, float]
    network: BeliefNetwork
    baseline: EmotionalSignature = field(default_factory=EmotionalSignature)
    patterns: tuple[BehaviorPattern, ...] = field(default_factory=tuple)
    # Number of belief changes folded into this state so far
    processed: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.traits, MappingProxyType):
            object.__setattr__(self, "traits", _frozen_mapping(self.traits))

    @classmethod
    def initial(
        cls,
        traits: Mapping[str, float],
        network: BeliefNetwork,
        baseline: EmotionalSignature | None = None,
    ) -> PersonalityState:
        return cls(traits=traits, network=network, baseline=baseline or EmotionalSignature())

    def with_network(self, network: BeliefNetwork) -> PersonalityState:
        return replace(self, network=network)

    def with_pattern(self, pattern: BehaviorPattern) -> PersonalityState:
        """Add a pattern, replacing any existing one with the same trigger and response."""
        kept = tuple(p for p in self.patterns if p.key != pattern.key)
        return replace(self, patterns=kept + (pattern,))

    def view(self) -> PersonalityView:
        return PersonalityView(traits=self.traits, baseline=self.baseline, processed=self.processed)
