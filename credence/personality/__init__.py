"""Personality layer — traits, emotional baseline and behavior patterns."""
from credence.personality.projector import PersonalityProjector, default_trait_affinity
from credence.personality.state import BehaviorPattern, PersonalityState, PersonalityView

__all__ = [
    "PersonalityProjector",
    "default_trait_affinity",
    "BehaviorPattern",
    "PersonalityState",
    "PersonalityView",
]
