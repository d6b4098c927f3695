"""
Agent Pipeline — one agent's belief formation, end to end.

The pipeline is the single logical owner of an agent's feelings, belief network
and personality. Stages always run in the same strict order:

    normalize → cluster → consolidate → evolve/resolve → propagate → project

and each stage sees only the finished output of the one before it. Pipelines
for different agents share no mutable state and can run side by side.

Two entry points drive it:

- submit(): one authenticated feeling at a time. A feeling that clearly
  restates an existing belief is absorbed straight into it as new evidence;
  anything else joins the working set to wait for clustering.
- process(): one consolidation pass over the working set. Strong clusters
  become beliefs, contradictions are resolved, changes ripple through the
  network and into personality, and every created, evolved, merged or
  superseded belief is handed to the persistence outbox.

Decay is lazy throughout. Nothing runs in the background; feelings and beliefs
are decayed to "now" whenever they are read.
"""

from __future__ import annotations

import time
from typing import Optional

import structlog

from credence.beliefs.belief import Belief
from credence.beliefs.clustering import ClusterBuilder
from credence.beliefs.consolidation import BeliefConsolidator
from credence.beliefs.evolution import BeliefEvolver, ConflictResolver
from credence.beliefs.network import BeliefNetwork, PropagationReport, RelationDiscoveryFn
from credence.beliefs.similarity import SimilarityFn, bounded, jaccard_similarity
from credence.config import CredenceConfig
from credence.persistence import BeliefSnapshot, PersistenceOutbox, SnapshotKind
from credence.personality.projector import PersonalityProjector, TraitAffinityFn
from credence.personality.state import BehaviorPattern, PersonalityState, PersonalityView
from credence.signals.feeling import Feeling, RawFeeling
from credence.signals.normalizer import FeelingWorkingSet, SignalNormalizer

logger = structlog.get_logger(__name__)


class AgentPipeline:
    """Owns and advances one agent's feelings, beliefs and personality."""

    def __init__(
        self,
        agent_id: str,
        config: Optional[CredenceConfig] = None,
        similarity: Optional[SimilarityFn] = None,
        relation_discovery: Optional[RelationDiscoveryFn] = None,
        trait_affinity: Optional[TraitAffinityFn] = None,
        outbox: Optional[PersistenceOutbox] = None,
    ):
        self.agent_id = agent_id
        self._config = config or CredenceConfig()
        pipeline_config = self._config.pipeline
        self._similarity = bounded(similarity or jaccard_similarity)

        self._normalizer = SignalNormalizer(pipeline_config, self._config.tables)
        self._working_set = FeelingWorkingSet(self._normalizer)
        self._clusters = ClusterBuilder(pipeline_config, self._similarity)
        self._consolidator = BeliefConsolidator(pipeline_config, self._config.tables)
        self._evolver = BeliefEvolver(pipeline_config)
        self._resolver = ConflictResolver(pipeline_config)
        self._projector = PersonalityProjector(self._config.personality, trait_affinity)
        self._outbox = outbox

        network = BeliefNetwork(pipeline_config, relation_discovery)
        self._state = PersonalityState.initial(
            traits=self._config.personality.initial_traits,
            network=network,
        )

        logger.info(
            "pipeline.initialized",
            agent_id=agent_id,
            similarity_threshold=pipeline_config.similarity_threshold,
            belief_threshold=pipeline_config.belief_threshold,
        )

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def submit(self, raw: RawFeeling, now: Optional[float] = None) -> Feeling:
        """Normalize and weight one feeling, then absorb it or add it to the working set.

        Raises FeelingValidationError if the feeling is rejected.
        """
        now = time.time() if now is None else now
        feeling = self._normalizer.ingest(raw, now=now)
        feeling = self._normalizer.apply_context_weight(feeling)
        decayed = self._normalizer.apply_decay(feeling, now)
        if decayed is None:
            # Already too old to matter when it arrived
            return feeling

        target = self._absorption_target(decayed)
        if target is not None:
            self._absorb(target, decayed, now)
            return decayed

        self._working_set.add(feeling)
        return decayed

    def _absorption_target(self, feeling: Feeling) -> Optional[Belief]:
        best: Optional[Belief] = None
        best_similarity = -1.0
        for belief in self.network.active_beliefs():
            similarity = self._similarity(belief.content, feeling.content)
            if similarity >= self._config.pipeline.absorb_similarity and similarity > best_similarity:
                best, best_similarity = belief, similarity
        return best

    def _absorb(self, belief: Belief, feeling: Feeling, now: float) -> None:
        previous = self._evolver.apply_passive_decay(belief, now).confidence
        evolved = self._evolver.evolve(belief, feeling, now)
        if evolved is belief:
            return
        network = self.network.integrate(evolved)
        network, report = network.propagate(
            evolved.belief_id, evolved.confidence - previous, now=now
        )
        self._commit(network, [evolved], now, report)
        self._emit(evolved, "belief.evolved")

    # ------------------------------------------------------------------
    # Consolidation pass
    # ------------------------------------------------------------------

    def process(self, now: Optional[float] = None) -> list[Belief]:
        """Run one clustering + consolidation pass; return beliefs formed or merged."""
        now = time.time() if now is None else now
        live = self._working_set.refresh(now)
        clusters = self._clusters.build_clusters(live)

        formed: list[Belief] = []
        for cluster in clusters:
            belief = self._consolidator.consolidate(cluster, now=now)
            if belief is None:
                continue
            if self.network.get(belief.belief_id) is not None:
                logger.debug("pipeline.already_consolidated", belief_id=belief.belief_id)
                self._working_set.absorb(belief.evidence.feelings)
                continue
            self._emit(belief, "belief.created")
            survivor = self._settle(belief, now)
            self._working_set.absorb(belief.evidence.feelings)
            if survivor is not None:
                formed.append(survivor)

        logger.info(
            "pipeline.processed",
            agent_id=self.agent_id,
            live_feelings=len(live),
            clusters=len(clusters),
            formed=len(formed),
        )
        return formed

    def _settle(self, belief: Belief, now: float) -> Optional[Belief]:
        """Resolve a new belief against its rivals and fold the outcome into state.

        Returns the belief that ends up active, or None when the new belief
        itself lost a conflict.
        """
        network = self.network
        current = belief
        changed: list[Belief] = []

        for rival in network.conflicts_for(current):
            rival = self._evolver.apply_passive_decay(rival, now)
            outcome = self._resolver.resolve_conflict(current, rival)
            for loser in outcome.superseded:
                network = network.supersede(
                    loser.belief_id, loser.superseded_by, snapshot=loser
                )
                changed.append(loser)
                self._emit(loser, "belief.superseded")
            if outcome.merged:
                current = outcome.winner
                self._emit(current, "belief.merged")
            elif outcome.winner.belief_id != current.belief_id:
                # The new belief lost; it is kept for audit only
                self._commit(network, changed, now)
                return None

        previous = network.get(current.belief_id)
        delta = current.confidence - (previous.confidence if previous is not None else 0.0)
        network = network.integrate(current)
        network, report = network.propagate(current.belief_id, delta, now=now)
        self._commit(network, changed + [current], now, report)
        return current

    def _commit(
        self,
        network: BeliefNetwork,
        changed: list[Belief],
        now: float,
        report: Optional[PropagationReport] = None,
    ) -> None:
        """Install the new network, project each changed belief in order, then
        bring every behavior pattern up to date with the network as of ``now``.
        """
        state = self._state.with_network(network)
        for belief in changed:
            state = self._projector.project(
                state, network.get(belief.belief_id) or belief, now=now
            )
        # Propagation moves beliefs no projection above named
        state = self._projector.refresh_patterns(state, now=now)
        if report is not None and report.adjustments:
            logger.debug(
                "pipeline.propagated",
                origin_id=report.origin_id,
                adjusted=sorted(report.adjustments),
                patterns=len(state.patterns),
            )
        self._state = state

    def _emit(self, belief: Belief, event_type: SnapshotKind) -> None:
        if self._outbox is None:
            return
        self._outbox.enqueue(BeliefSnapshot.from_belief(belief, event_type, self.agent_id))

    # ------------------------------------------------------------------
    # Behavior patterns
    # ------------------------------------------------------------------

    def add_behavior_pattern(
        self, pattern: BehaviorPattern, now: Optional[float] = None
    ) -> BehaviorPattern:
        """Register a pattern; its confidence is computed from the network as of ``now``."""
        now = time.time() if now is None else now
        confidences = self.network.active_confidences(now)
        pattern = pattern.recompute(confidences)
        self._state = self._state.with_pattern(pattern)
        return pattern

    # ------------------------------------------------------------------
    # Query boundary
    # ------------------------------------------------------------------

    @property
    def network(self) -> BeliefNetwork:
        return self._state.network

    @property
    def state(self) -> PersonalityState:
        return self._state

    def belief(self, belief_id: str, now: Optional[float] = None) -> Optional[Belief]:
        """A belief with passive decay applied up to ``now``."""
        belief = self.network.get(belief_id)
        if belief is None or belief.superseded:
            return belief
        return self._evolver.apply_passive_decay(belief, time.time() if now is None else now)

    def personality(self) -> PersonalityView:
        return self._state.view()

    def behavior_patterns(self, now: Optional[float] = None) -> tuple[BehaviorPattern, ...]:
        """Patterns with confidences recomputed from beliefs decayed to ``now``."""
        now = time.time() if now is None else now
        return self._projector.refresh_patterns(self._state, now=now).patterns

    @property
    def working_set_size(self) -> int:
        return len(self._working_set)
