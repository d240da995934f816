"""
Detection and match value types.

Detections arrive once per frame from the perception collaborator and are never
mutated; scoring wraps them in a new ScoredMatch.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

Vector3 = Tuple[float, float, float]


class MatchType(Enum):
    """How a detection relates to the current query."""

    EXACT_MATCH = "exact_match"  # Direct match with search term
    SIMILAR_ITEM = "similar_item"  # Synonym or semantically similar
    POTENTIAL_LOCATION = "potential_location"  # Place where the item might be
    PARTIAL_MATCH = "partial_match"  # Only some attributes match
    NONE = "none"  # Not a match


# Lower value ranks first
MATCH_TYPE_PRIORITY = {
    MatchType.EXACT_MATCH: 0,
    MatchType.SIMILAR_ITEM: 1,
    MatchType.POTENTIAL_LOCATION: 2,
    MatchType.PARTIAL_MATCH: 3,
    MatchType.NONE: 4,
}


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in normalized image coordinates (0-1)."""

    x: float
    y: float
    width: float
    height: float

    def clamped(self) -> "BoundingBox":
        """Clip the box to the unit square."""
        x = _clamp(self.x)
        y = _clamp(self.y)
        return BoundingBox(
            x=x,
            y=y,
            width=_clamp(self.width, 0.0, 1.0 - x),
            height=_clamp(self.height, 0.0, 1.0 - y),
        )

    def to_list(self):
        return [self.x, self.y, self.width, self.height]


@dataclass(frozen=True)
class RawDetection:
    """
    One object reported by the perception collaborator for one frame.

    Attributes:
        label: Top classification label
        confidence: Detection confidence (0-1)
        bounding_box: Normalized bounding box
        world_position: Optional [x, y, z] position in meters
        position_confidence: Optional confidence in world_position (0-1)
        distance_from_camera: Optional distance in meters
    """

    label: str
    confidence: float
    bounding_box: BoundingBox = BoundingBox(0.0, 0.0, 0.0, 0.0)
    world_position: Optional[Vector3] = None
    position_confidence: Optional[float] = None
    distance_from_camera: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawDetection":
        """
        Build a detection from a plain mapping (e.g. a recorded JSON frame).

        ``bounding_box`` is [x, y, width, height]; ``world_position`` is [x, y, z].
        """
        bbox = data.get("bounding_box") or [0.0, 0.0, 0.0, 0.0]
        if isinstance(bbox, dict):
            box = BoundingBox(
                float(bbox.get("x", 0.0)),
                float(bbox.get("y", 0.0)),
                float(bbox.get("width", 0.0)),
                float(bbox.get("height", 0.0)),
            )
        else:
            box = BoundingBox(*(float(v) for v in bbox))

        position = data.get("world_position")
        return cls(
            label=str(data["label"]),
            confidence=float(data["confidence"]),
            bounding_box=box,
            world_position=tuple(float(v) for v in position) if position is not None else None,
            position_confidence=_optional_float(data.get("position_confidence")),
            distance_from_camera=_optional_float(data.get("distance_from_camera")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "bounding_box": self.bounding_box.to_list(),
            "world_position": list(self.world_position) if self.world_position is not None else None,
            "position_confidence": self.position_confidence,
            "distance_from_camera": self.distance_from_camera,
        }


@dataclass(frozen=True)
class ScoredMatch:
    """A detection together with its match result for the current query."""

    detection: RawDetection
    match_type: MatchType
    match_score: float = 0.0
    location_description: Optional[str] = None
    scored: bool = True  # False for pass-through results of a query with no searchable content

    @property
    def label(self) -> str:
        return self.detection.label

    @property
    def confidence(self) -> float:
        return self.detection.confidence

    @property
    def is_visible(self) -> bool:
        """Pass-through results are shown; scored non-matches are not."""
        return not self.scored or self.match_type is not MatchType.NONE


def ranking_key(match: ScoredMatch):
    """Sort key: match type priority, then match score desc, then detection confidence desc."""
    return (MATCH_TYPE_PRIORITY[match.match_type], -match.match_score, -match.confidence)


def sanitize_detection(detection: RawDetection) -> Optional[RawDetection]:
    """
    Clamp out-of-range values; reject detections that cannot be repaired.

    Returns:
        A valid detection, or None when the label is empty, the confidence is
        not a finite number, or the position is not a finite 3-vector.
    """
    label = (detection.label or "").strip()
    if not label:
        return None
    if not _is_finite(detection.confidence):
        return None

    position = detection.world_position
    if position is not None:
        if len(position) != 3 or not all(_is_finite(v) for v in position):
            return None
        position = tuple(float(v) for v in position)

    position_confidence = detection.position_confidence
    if position_confidence is not None:
        position_confidence = _clamp(position_confidence) if _is_finite(position_confidence) else None

    distance = detection.distance_from_camera
    if distance is not None and (not _is_finite(distance) or distance < 0):
        distance = None

    box = detection.bounding_box
    if all(_is_finite(v) for v in box.to_list()):
        box = box.clamped()
    else:
        box = BoundingBox(0.0, 0.0, 0.0, 0.0)

    return RawDetection(
        label=label,
        confidence=_clamp(detection.confidence),
        bounding_box=box,
        world_position=position,
        position_confidence=position_confidence,
        distance_from_camera=distance,
    )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


def _is_finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None
