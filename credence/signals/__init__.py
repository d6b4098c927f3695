"""Signal layer — feelings, their normalization, weighting and decay."""
from credence.signals.feeling import Feeling, RawFeeling
from credence.signals.normalizer import FeelingValidationError, FeelingWorkingSet, SignalNormalizer

__all__ = [
    "Feeling",
    "RawFeeling",
    "FeelingValidationError",
    "FeelingWorkingSet",
    "SignalNormalizer",
]
