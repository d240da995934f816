"""
Structured search intent extracted from a natural-language query.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class QueryIntent(Enum):
    """What the user wants to do with the query."""

    FIND = "find"  # "Find my keys"
    LOCATE_NEARBY = "locate_nearby"  # "Is my wallet near the couch?"
    DESCRIBE_SCENE = "describe_scene"  # "What's in this room?"
    NAVIGATE = "navigate"  # "Take me to my laptop"
    REMEMBER = "remember"  # "Remember where I put my watch"
    UNKNOWN = "unknown"


class Ownership(Enum):
    """Ownership modifier for the searched item."""

    MINE = "mine"
    OTHERS = "others"
    UNKNOWN = "unknown"


class RelationType(Enum):
    """Spatial relation between the target and a reference object."""

    NEAR = "near"
    ON = "on"
    UNDER = "under"
    INSIDE = "inside"
    BEHIND = "behind"
    IN_FRONT_OF = "in front of"
    NEXT_TO = "next to"
    BETWEEN = "between"
    ABOVE = "above"
    BELOW = "below"

    @classmethod
    def from_name(cls, name: str) -> "RelationType":
        """Resolve a lexicon relation name ("in_front_of") or value ("in front of")."""
        key = name.strip().lower()
        for member in cls:
            if key == member.value or key == member.name.lower():
                return member
        raise ValueError(f"Unknown spatial relation: {name!r}")


@dataclass(frozen=True)
class SpatialRelationship:
    """A spatial relationship such as "couch" in "keys near the couch"."""

    reference_object: str
    relation: RelationType
    confidence: float = 0.8

    def describe(self) -> str:
        return f"{self.relation.value} {self.reference_object}"


@dataclass(frozen=True)
class QueryAttributes:
    """Attributes describing the searched item."""

    colors: Tuple[str, ...] = ()
    sizes: Tuple[str, ...] = ()
    materials: Tuple[str, ...] = ()
    time_references: Tuple[str, ...] = ()
    location_references: Tuple[str, ...] = ()
    ownership: Ownership = Ownership.UNKNOWN

    @property
    def is_mine(self) -> bool:
        return self.ownership is Ownership.MINE

    @property
    def has_attributes(self) -> bool:
        """True if any attribute field carries a value."""
        return bool(
            self.colors
            or self.sizes
            or self.materials
            or self.time_references
            or self.location_references
            or self.is_mine
        )

    def as_dict(self) -> Dict[str, str]:
        """Flatten into comma-joined strings (color/size/material/ownership)."""
        result: Dict[str, str] = {}
        if self.colors:
            result["color"] = ",".join(self.colors)
        if self.sizes:
            result["size"] = ",".join(self.sizes)
        if self.materials:
            result["material"] = ",".join(self.materials)
        if self.is_mine:
            result["ownership"] = "mine"
        return result


_INTENT_PHRASES = {
    QueryIntent.FIND: "Looking for ",
    QueryIntent.LOCATE_NEARBY: "Finding ",
    QueryIntent.DESCRIBE_SCENE: "Describing ",
    QueryIntent.NAVIGATE: "Navigating to ",
    QueryIntent.REMEMBER: "Remembering ",
    QueryIntent.UNKNOWN: "Searching for ",
}


@dataclass(frozen=True)
class SearchIntent:
    """
    Parsed form of a search query.

    Attributes:
        target_items: Items the user is looking for, in extraction order
        intent: Interpreted intent of the query
        attributes: Attributes describing the target items
        spatial_relationships: Relationships between the target and other objects
        raw_query: Original text (diagnostics only)
        confidence: Overall confidence in the extraction (0-1)
    """

    target_items: Tuple[str, ...] = ()
    intent: QueryIntent = QueryIntent.FIND
    attributes: QueryAttributes = field(default_factory=QueryAttributes)
    spatial_relationships: Tuple[SpatialRelationship, ...] = ()
    raw_query: Optional[str] = None
    confidence: float = 1.0

    @property
    def has_searchable_content(self) -> bool:
        return bool(
            self.target_items or self.attributes.has_attributes or self.spatial_relationships
        )

    @property
    def primary_target(self) -> str:
        return self.target_items[0] if self.target_items else ""

    @classmethod
    def from_simple_query(cls, query: str) -> "SearchIntent":
        """Treat every space/comma/semicolon separated word as a target item."""
        items = []
        for word in re.split(r"[ ,;]+", query.lower()):
            if word and word not in items:
                items.append(word)
        return cls(target_items=tuple(items), raw_query=query)

    def describe(self) -> str:
        """Human-readable description of what is being searched for."""
        description = _INTENT_PHRASES[self.intent]

        attribute_text = ""
        for values in (self.attributes.colors, self.attributes.sizes, self.attributes.materials):
            if values:
                attribute_text += "/".join(values) + " "

        if self.target_items:
            description += attribute_text + ", ".join(self.target_items)
        else:
            description += "items"

        if self.spatial_relationships:
            description += " " + self.spatial_relationships[0].describe()

        return description

    def to_dict(self) -> Dict:
        return {
            "target_items": list(self.target_items),
            "intent": self.intent.value,
            "attributes": {
                "colors": list(self.attributes.colors),
                "sizes": list(self.attributes.sizes),
                "materials": list(self.attributes.materials),
                "time_references": list(self.attributes.time_references),
                "location_references": list(self.attributes.location_references),
                "ownership": self.attributes.ownership.value,
            },
            "spatial_relationships": [
                {
                    "reference_object": rel.reference_object,
                    "relation": rel.relation.value,
                    "confidence": rel.confidence,
                }
                for rel in self.spatial_relationships
            ],
            "raw_query": self.raw_query,
            "confidence": self.confidence,
            "has_searchable_content": self.has_searchable_content,
        }
