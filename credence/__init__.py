"""
Credence — Belief Formation for Autonomous Agents

This package turns a stream of transient emotional signals ("feelings") into
durable, evolving beliefs, and folds those beliefs into an agent's personality
traits, emotional baseline and behavior patterns.

Pipeline stages (one independent instance per agent):
    1. Signals (normalization, contextual weighting, temporal decay)
    2. Clustering (deterministic grouping of similar feelings)
    3. Consolidation (threshold-gated belief formation)
    4. Evolution (reinforcement, passive decay, conflict resolution)
    5. Network (relationship graph + bounded propagation)
    6. Personality (trait, baseline and behavior projection)
"""

__version__ = "0.1.0"
