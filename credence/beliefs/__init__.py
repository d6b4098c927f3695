"""Belief layer — clustering, consolidation, evolution and the belief network."""
from credence.beliefs.belief import Belief, BeliefEvidence, BeliefSources, FormationMetadata
from credence.beliefs.clustering import ClusterBuilder, FeelingCluster
from credence.beliefs.consolidation import BeliefConsolidator, BeliefPotential
from credence.beliefs.evolution import BeliefEvolver, ConflictOutcome, ConflictResolver
from credence.beliefs.network import (
    BeliefEdge,
    BeliefNetwork,
    OppositionRelationDiscovery,
    PropagationReport,
    RelationProposal,
)

__all__ = [
    "Belief",
    "BeliefEvidence",
    "BeliefSources",
    "FormationMetadata",
    "ClusterBuilder",
    "FeelingCluster",
    "BeliefConsolidator",
    "BeliefPotential",
    "BeliefEvolver",
    "ConflictOutcome",
    "ConflictResolver",
    "BeliefEdge",
    "BeliefNetwork",
    "OppositionRelationDiscovery",
    "PropagationReport",
    "RelationProposal",
]
