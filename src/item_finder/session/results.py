"""
Result records handed to the presentation layer.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..matching.match_types import BoundingBox, MatchType, Vector3
from ..tracking.tracked_object import TrackedObject

_MATCH_SUFFIX = {
    MatchType.EXACT_MATCH: " (Exact Match)",
    MatchType.SIMILAR_ITEM: " (Similar Item)",
    MatchType.PARTIAL_MATCH: " (Partial Match)",
}


@dataclass(frozen=True)
class FinderResult:
    """One stabilized, ranked candidate for overlay rendering."""

    identity: str
    label: str
    match_type: MatchType
    match_score: float
    bounding_box: BoundingBox
    confidence: float
    location_description: Optional[str] = None
    world_position: Optional[Vector3] = None
    is_anchored: bool = False
    position_confidence: float = 0.0
    distance_from_camera: Optional[float] = None
    continuous_detection_count: int = 1

    @classmethod
    def from_tracked(cls, tracked: TrackedObject) -> "FinderResult":
        match = tracked.match
        detection = match.detection
        last = tracked.last_position
        return cls(
            identity=tracked.identity,
            label=detection.label,
            match_type=match.match_type,
            match_score=match.match_score,
            bounding_box=detection.bounding_box,
            confidence=detection.confidence,
            location_description=match.location_description,
            world_position=tuple(float(v) for v in last) if last is not None else None,
            is_anchored=tracked.is_anchored,
            position_confidence=tracked.position_confidence,
            distance_from_camera=detection.distance_from_camera,
            continuous_detection_count=tracked.continuous_detection_count,
        )

    def describe(self) -> str:
        """Short overlay text, e.g. "keys (Exact Match) (1.2m away)"."""
        description = self.label

        if self.match_score > 0.7:
            if self.match_type is MatchType.POTENTIAL_LOCATION:
                if self.location_description:
                    description = f"Look {self.location_description} for your item"
            elif self.match_type in _MATCH_SUFFIX:
                description += _MATCH_SUFFIX[self.match_type]

        if self.distance_from_camera is not None and self.distance_from_camera > 0:
            description += f" ({self.distance_from_camera:.1f}m away)"

        return description

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "label": self.label,
            "match_type": self.match_type.value,
            "match_score": self.match_score,
            "bounding_box": self.bounding_box.to_list(),
            "confidence": self.confidence,
            "location_description": self.location_description,
            "world_position": list(self.world_position) if self.world_position is not None else None,
            "is_anchored": self.is_anchored,
            "position_confidence": self.position_confidence,
            "distance_from_camera": self.distance_from_camera,
            "continuous_detection_count": self.continuous_detection_count,
            "description": self.describe(),
        }
