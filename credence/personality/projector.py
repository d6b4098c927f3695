"""
Personality Projector — folding belief changes into character.

Each time a belief forms, evolves or is superseded, the projector produces the
next personality snapshot:

- Traits move by a trait-affinity-weighted share of the belief's
  confidence × trust score. Which traits a belief touches, and in which
  direction, is decided by a pluggable affinity capability.
- The emotional baseline drifts toward the belief's emotional signature as an
  exponential moving average, pulled harder by more confident beliefs.
- Behavior patterns that depend on the belief recompute their confidence from
  the current confidences of all their dependencies.

Superseded beliefs no longer shape traits or baseline. Patterns that depend on
one are still refreshed, so a retired belief stops propping them up.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Mapping, Optional

import structlog

from credence._utils import clamp01, clamp_signed
from credence.beliefs.belief import Belief
from credence.config import PersonalityConfig
from credence.personality.state import PersonalityState

logger = structlog.get_logger(__name__)

TraitAffinityFn = Callable[[Belief], Mapping[str, float]]


def default_trait_affinity(belief: Belief) -> dict[str, float]:
    """Map a belief's emotional signature onto Big-Five trait affinities in [-1, 1].

    Pleasant beliefs open the agent up and make it more agreeable; unpleasant
    ones raise neuroticism. Activating beliefs push toward extraversion, calm
    ones away from it. Any consolidated belief nudges conscientiousness a little.
    """
    valence = belief.signature.valence
    arousal = belief.signature.arousal
    return {
        "openness": 0.5 * max(valence, 0.0),
        "agreeableness": 0.5 * valence,
        "neuroticism": -0.5 * valence,
        "extraversion": arousal - 0.5,
        "conscientiousness": 0.25,
    }


class PersonalityProjector:
    """Produces the next PersonalityState from one belief change."""

    def __init__(
        self,
        config: PersonalityConfig,
        trait_affinity: Optional[TraitAffinityFn] = None,
    ):
        self._config = config
        self._affinity = trait_affinity or default_trait_affinity

    def project(
        self, state: PersonalityState, belief: Belief, now: Optional[float] = None
    ) -> PersonalityState:
        """Fold one belief change into the next state.

        Dependency confidences are decayed to ``now`` when it is given.
        """
        traits = dict(state.traits)
        baseline = state.baseline

        if belief.is_active:
            influence = belief.confidence * belief.trust_score
            for trait, affinity in sorted(self._affinity(belief).items()):
                prior = traits.get(trait, 0.0)
                traits[trait] = clamp_signed(
                    prior + self._config.trait_learning_rate * affinity * influence
                )
            alpha = clamp01(self._config.baseline_rate * belief.confidence, default=0.0)
            baseline = baseline.blend(belief.signature, alpha)

        confidences = state.network.active_confidences(now)
        # The projected belief may be newer than the network snapshot
        if belief.is_active:
            confidences[belief.belief_id] = belief.confidence
        else:
            confidences.pop(belief.belief_id, None)

        patterns = tuple(
            p.recompute(confidences) if p.depends_on(belief.belief_id) else p
            for p in state.patterns
        )
        refreshed = sum(1 for p in state.patterns if p.depends_on(belief.belief_id))

        logger.debug(
            "projector.projected",
            belief_id=belief.belief_id,
            active=belief.is_active,
            patterns_refreshed=refreshed,
            baseline_valence=baseline.valence,
        )
        return replace(
            state,
            traits=traits,
            baseline=baseline,
            patterns=patterns,
            processed=state.processed + 1,
        )

    def refresh_patterns(
        self, state: PersonalityState, now: Optional[float] = None
    ) -> PersonalityState:
        """Recompute every pattern from the network's current confidences.

        Needed after propagation, which moves beliefs the projected change
        never named, and whenever time has passed since the last fold.
        """
        if not state.patterns:
            return state
        confidences = state.network.active_confidences(now)
        patterns = tuple(p.recompute(confidences) for p in state.patterns)
        return replace(state, patterns=patterns)
