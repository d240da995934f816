"""Query understanding: natural-language text to structured search intent."""

from .pos_tagger import PosTagger, SpacyPosTagger
from .query_parser import QueryParser
from .search_intent import (
    Ownership,
    QueryAttributes,
    QueryIntent,
    RelationType,
    SearchIntent,
    SpatialRelationship,
)

__all__ = [
    "PosTagger",
    "SpacyPosTagger",
    "QueryParser",
    "Ownership",
    "QueryAttributes",
    "QueryIntent",
    "RelationType",
    "SearchIntent",
    "SpatialRelationship",
]
