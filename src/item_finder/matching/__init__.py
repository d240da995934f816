"""Scoring of per-frame detections against a search intent."""

from .embeddings import SpacyWordEmbeddings, StaticWordEmbeddings, WordEmbeddings
from .match_scorer import MatchScorer
from .match_types import (
    BoundingBox,
    MatchType,
    RawDetection,
    ScoredMatch,
    ranking_key,
    sanitize_detection,
)

__all__ = [
    "SpacyWordEmbeddings",
    "StaticWordEmbeddings",
    "WordEmbeddings",
    "MatchScorer",
    "BoundingBox",
    "MatchType",
    "RawDetection",
    "ScoredMatch",
    "ranking_key",
    "sanitize_detection",
]
