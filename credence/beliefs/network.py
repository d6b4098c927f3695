"""
Belief Network — how beliefs relate to and influence each other.

Beliefs do not live in isolation. "Rainy days are calming" supports "I like
staying in"; "crowds are exhausting" contradicts "I enjoy parties". The network
stores beliefs as nodes in an arena keyed by belief id, and relationships as
directed edges keyed by ordered (source, target) id pairs. Holding ids rather
than object references keeps ownership with the network, even though the graph
is freely cyclic.

When a belief's confidence changes, the change ripples outward: a breadth-first
walk along outgoing edges adjusts each reached belief by

    edge.strength × delta × damping^hop

Support edges pass the change on unchanged. Contradiction edges extend that
rule by inverting the sign, so confidence gained by one belief is lost by the
beliefs it contradicts, and the inversion carries on down the path. The walk
never goes beyond max_hops. That bound alone is what guarantees termination on
a cyclic graph; no cycle detection is needed.

Confidences read through the network are lazily decayed: when a caller passes
``now``, each belief is decayed to that instant before it is used, and a
propagated adjustment lands on the decayed value.

Every operation returns a new BeliefNetwork. Snapshots handed out earlier are
never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional

import structlog

from credence.beliefs.belief import Belief
from credence.beliefs.evolution import BeliefEvolver
from credence.beliefs.similarity import SimilarityFn, bounded, jaccard_similarity, tokenize
from credence.config import PipelineConfig

logger = structlog.get_logger(__name__)

SUPPORTS = "supports"
CONTRADICTS = "contradicts"


@dataclass(frozen=True)
class RelationProposal:
    kind: str
    strength: float


RelationDiscoveryFn = Callable[[Belief, Belief], Optional[RelationProposal]]


@dataclass(frozen=True)
class BeliefEdge:
    """A directed relationship between two beliefs."""

    source_id: str
    target_id: str
    kind: str
    strength: float

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_id, self.target_id)


class OppositionRelationDiscovery:
    """Default relation discovery from content similarity and opposition cues.

    Two beliefs about the same topic (similarity at or above the minimum)
    are related. They contradict when one states the opposite of the other
    (an opposition word pair such as like/dislike) or when they feel opposite
    ways about it (valence signs disagree); otherwise one supports the other.
    """

    # Format: (word, opposite) - both directions are checked
    _OPPOSITION_PAIRS = (
        ("always", "never"),
        ("often", "rarely"),
        ("can", "cannot"),
        ("will", "won't"),
        ("like", "dislike"),
        ("love", "hate"),
        ("enjoy", "dread"),
        ("prefer", "avoid"),
        ("trust", "distrust"),
        ("safe", "dangerous"),
        ("good", "bad"),
        ("calm", "anxious"),
        ("calming", "stressful"),
        ("happy", "sad"),
        ("helpful", "harmful"),
        ("friendly", "hostile"),
        ("reliable", "unreliable"),
        ("agree", "disagree"),
        ("accept", "reject"),
        ("more", "less"),
        ("better", "worse"),
    )
    _NEGATIONS = frozenset({"not", "no", "never", "don't", "doesn't", "isn't", "aren't"})
    # Valence closer to zero than this carries no direction
    _NEUTRAL_VALENCE = 0.1

    def __init__(self, similarity: Optional[SimilarityFn] = None, min_similarity: float = 0.2):
        self._similarity = bounded(similarity or jaccard_similarity)
        self._min_similarity = min_similarity

    def _opposed_wording(self, text_a: str, text_b: str) -> bool:
        tokens_a = tokenize(text_a)
        tokens_b = tokenize(text_b)
        for word, opposite in self._OPPOSITION_PAIRS:
            if (word in tokens_a and opposite in tokens_b) or (
                opposite in tokens_a and word in tokens_b
            ):
                return True
        # One side negated, the other not
        return bool(tokens_a & self._NEGATIONS) != bool(tokens_b & self._NEGATIONS)

    def _opposed_feeling(self, a: Belief, b: Belief) -> bool:
        va, vb = a.signature.valence, b.signature.valence
        if abs(va) < self._NEUTRAL_VALENCE or abs(vb) < self._NEUTRAL_VALENCE:
            return False
        return (va > 0) != (vb > 0)

    def __call__(self, a: Belief, b: Belief) -> Optional[RelationProposal]:
        similarity = self._similarity(a.content, b.content)
        if similarity < self._min_similarity:
            return None
        if self._opposed_wording(a.content, b.content) or self._opposed_feeling(a, b):
            return RelationProposal(kind=CONTRADICTS, strength=similarity)
        return RelationProposal(kind=SUPPORTS, strength=similarity)


@dataclass(frozen=True)
class PropagationReport:
    """What a propagation walk touched: belief id -> confidence adjustment applied."""

    origin_id: str
    delta: float
    adjustments: Mapping[str, float] = field(default_factory=dict)
    hops_walked: int = 0


class BeliefNetwork:
    """Immutable arena of beliefs with an ordered-pair edge index."""

    def __init__(
        self,
        config: PipelineConfig,
        relation_discovery: Optional[RelationDiscoveryFn] = None,
        nodes: Optional[Mapping[str, Belief]] = None,
        edges: Optional[Mapping[tuple[str, str], BeliefEdge]] = None,
    ):
        self._config = config
        self._discover = relation_discovery or OppositionRelationDiscovery(
            min_similarity=config.relation_min_similarity
        )
        self._evolver = BeliefEvolver(config)
        self._nodes: dict[str, Belief] = dict(nodes or {})
        self._edges: dict[tuple[str, str], BeliefEdge] = dict(edges or {})
        self._outgoing: dict[str, list[BeliefEdge]] = {}
        for key in sorted(self._edges):
            edge = self._edges[key]
            self._outgoing.setdefault(edge.source_id, []).append(edge)

    def _derive(
        self,
        nodes: dict[str, Belief],
        edges: dict[tuple[str, str], BeliefEdge],
    ) -> BeliefNetwork:
        return BeliefNetwork(self._config, self._discover, nodes, edges)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Mapping[str, Belief]:
        return MappingProxyType(self._nodes)

    @property
    def edges(self) -> Mapping[tuple[str, str], BeliefEdge]:
        return MappingProxyType(self._edges)

    def get(self, belief_id: str) -> Optional[Belief]:
        return self._nodes.get(belief_id)

    def edge(self, source_id: str, target_id: str) -> Optional[BeliefEdge]:
        return self._edges.get((source_id, target_id))

    def outgoing(self, belief_id: str) -> list[BeliefEdge]:
        """Outgoing edges of a belief, ordered by target id."""
        return list(self._outgoing.get(belief_id, ()))

    def active_beliefs(self) -> list[Belief]:
        return [self._nodes[k] for k in sorted(self._nodes) if self._nodes[k].is_active]

    def _decayed(self, belief: Belief, now: Optional[float]) -> Belief:
        if now is None or belief.superseded:
            return belief
        return self._evolver.apply_passive_decay(belief, now)

    def active_confidences(self, now: Optional[float] = None) -> dict[str, float]:
        """Belief id -> confidence of every active belief, decayed to ``now`` when given."""
        return {b.belief_id: self._decayed(b, now).confidence for b in self.active_beliefs()}

    def conflicts_for(self, belief: Belief) -> list[Belief]:
        """Active beliefs (other than this one) that this belief contradicts."""
        rivals = []
        for other in self.active_beliefs():
            if other.belief_id == belief.belief_id:
                continue
            proposal = self._discover(belief, other)
            if proposal is not None and proposal.kind == CONTRADICTS:
                rivals.append(other)
        return rivals

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def integrate(self, belief: Belief) -> BeliefNetwork:
        """Insert or overwrite a belief and (re)discover its relationships.

        Re-integrating the same belief is idempotent: each ordered pair holds
        at most one edge, and rediscovery overwrites it.
        """
        if belief.superseded:
            return self.supersede(belief.belief_id, belief.superseded_by, snapshot=belief)

        nodes = dict(self._nodes)
        edges = dict(self._edges)
        nodes[belief.belief_id] = belief

        discovered = 0
        for other in self.active_beliefs():
            if other.belief_id == belief.belief_id:
                continue
            for source, target in ((belief, other), (other, belief)):
                proposal = self._discover(source, target)
                if proposal is None or proposal.strength <= 0:
                    continue
                edge = BeliefEdge(
                    source_id=source.belief_id,
                    target_id=target.belief_id,
                    kind=proposal.kind,
                    strength=max(0.0, min(1.0, proposal.strength)),
                )
                edges[edge.key] = edge
                discovered += 1

        logger.debug(
            "network.integrated",
            belief_id=belief.belief_id,
            relationships=discovered,
            nodes=len(nodes),
            edges=len(edges),
        )
        return self._derive(nodes, edges)

    def supersede(
        self,
        belief_id: str,
        by: Optional[str] = None,
        snapshot: Optional[Belief] = None,
    ) -> BeliefNetwork:
        """Retire a belief: kept for audit, cut out of the active graph.

        ``snapshot`` is the version of the belief to keep on record, for a
        loser that is newer than the stored node or was never stored at all.
        """
        belief = snapshot if snapshot is not None else self._nodes.get(belief_id)
        if belief is None:
            logger.warning("network.supersede_unknown", belief_id=belief_id)
            return self
        nodes = dict(self._nodes)
        nodes[belief_id] = belief.supersede(by)
        edges = {k: e for k, e in self._edges.items() if belief_id not in k}
        logger.info("network.superseded", belief_id=belief_id, superseded_by=by)
        return self._derive(nodes, edges)

    def propagate(
        self, changed_id: str, delta: float, now: Optional[float] = None
    ) -> tuple[BeliefNetwork, PropagationReport]:
        """Ripple a confidence change outward from ``changed_id``, at most max_hops deep.

        Each reachable active belief is adjusted once, at the hop it is first
        reached. Superseded beliefs neither receive nor relay changes. With
        ``now``, each target is decayed to that instant before it is adjusted.
        """
        origin = self._nodes.get(changed_id)
        if origin is None or origin.superseded or delta == 0:
            return self, PropagationReport(origin_id=changed_id, delta=delta)

        damping = self._config.damping
        nodes = dict(self._nodes)
        adjustments: dict[str, float] = {}
        visited = {changed_id}
        frontier: list[tuple[str, float]] = [(changed_id, 1.0)]
        hops_walked = 0

        for hop in range(1, self._config.max_hops + 1):
            next_frontier: list[tuple[str, float]] = []
            for node_id, path_sign in frontier:
                for edge in self._outgoing.get(node_id, ()):
                    target = nodes.get(edge.target_id)
                    if edge.target_id in visited or target is None or target.superseded:
                        continue
                    visited.add(edge.target_id)
                    sign = -path_sign if edge.kind == CONTRADICTS else path_sign
                    adjustment = sign * edge.strength * delta * damping**hop
                    target = self._decayed(target, now)
                    nodes[edge.target_id] = target.with_confidence(target.confidence + adjustment)
                    adjustments[edge.target_id] = adjustment
                    next_frontier.append((edge.target_id, sign))
            if not next_frontier:
                break
            hops_walked = hop
            frontier = next_frontier

        logger.debug(
            "network.propagated",
            origin_id=changed_id,
            delta=delta,
            touched=len(adjustments),
            hops=hops_walked,
        )
        report = PropagationReport(
            origin_id=changed_id,
            delta=delta,
            adjustments=MappingProxyType(adjustments),
            hops_walked=hops_walked,
        )
        return self._derive(nodes, self._edges), report
