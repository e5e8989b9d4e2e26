"""Matching engine and strategies."""

from .engine import MatchingEngine
from .grouping import build_clusters, description_key
from .similarity import edit_distance, similarity
from .strategies import (
    DateToleranceStrategy,
    ExactMatchStrategy,
    FuzzyDescriptionStrategy,
    GroupMatchingStrategy,
    MatchingStrategy,
)

__all__ = [
    "MatchingEngine",
    "MatchingStrategy",
    "ExactMatchStrategy",
    "DateToleranceStrategy",
    "FuzzyDescriptionStrategy",
    "GroupMatchingStrategy",
    "build_clusters",
    "description_key",
    "edit_distance",
    "similarity",
]
