"""
Per-identity tracking record used by the temporal stabilizer.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional

import numpy as np
from scipy.spatial.distance import pdist

from ..matching.match_types import ScoredMatch


class TrackState(Enum):
    """Lifecycle of a tracked object (eviction removes it from the store)."""

    NEW = "new"
    TRACKING = "tracking"
    ANCHORED = "anchored"


def mean_pairwise_distance(positions: List[np.ndarray]) -> float:
    """Average Euclidean distance over all pairs of positions."""
    if len(positions) < 2:
        return 0.0
    return float(np.mean(pdist(np.vstack(positions))))


@dataclass
class TrackedObject:
    """
    One physical object followed across frames.

    Attributes:
        identity: Stable identifier (e.g. "keys_0")
        match: Latest scored match for this object
        position_history: Most recent world positions, oldest first
        continuous_detection_count: Sightings since the object last went stale
        first_seen: Time of first sighting (seconds)
        last_seen: Time of latest sighting (seconds)
        is_anchored: Whether the position is stable enough to fix in place
        position_confidence: Confidence of the latest position (0-1)
    """

    identity: str
    match: ScoredMatch
    history_size: int = 10
    position_history: Deque[np.ndarray] = field(default_factory=deque)
    continuous_detection_count: int = 0
    first_seen: float = 0.0
    last_seen: float = 0.0
    is_anchored: bool = False
    position_confidence: float = 0.0

    def __post_init__(self):
        self.position_history = deque(self.position_history, maxlen=self.history_size)

    @property
    def label(self) -> str:
        return self.match.label

    @property
    def last_position(self) -> Optional[np.ndarray]:
        return self.position_history[-1] if self.position_history else None

    @property
    def state(self) -> TrackState:
        if self.is_anchored:
            return TrackState.ANCHORED
        if self.continuous_detection_count <= 1:
            return TrackState.NEW
        return TrackState.TRACKING

    def age(self, now: float) -> float:
        """Seconds since the last sighting."""
        return now - self.last_seen

    def is_recent(self, now: float, threshold: float = 2.0) -> bool:
        """Check whether the object was seen within ``threshold`` seconds."""
        return self.age(now) <= threshold

    def record_sighting(self, match: ScoredMatch, now: float, was_stale: bool = False) -> None:
        """
        Register a new sighting.

        Args:
            match: Match from the current frame
            now: Current time (seconds)
            was_stale: The object had dropped out of the recency window
        """
        self.match = match
        if was_stale or self.continuous_detection_count == 0:
            self.continuous_detection_count = 1
        else:
            self.continuous_detection_count += 1
        self.last_seen = now

        position = match.detection.world_position
        if position is not None:
            # deque(maxlen) drops the oldest sample
            self.position_history.append(np.asarray(position, dtype=np.float64))
            if match.detection.position_confidence is not None:
                self.position_confidence = match.detection.position_confidence

    def update_anchor(self, min_samples: int, threshold: float, release_on_drift: bool) -> bool:
        """
        Re-evaluate anchoring from the position history.

        Args:
            min_samples: Samples required before anchoring is considered
            threshold: Mean pairwise distance (meters) below which the object is stable
            release_on_drift: Clear the anchor when the samples spread out again

        Returns:
            Whether the object is anchored afterwards
        """
        if len(self.position_history) < min_samples:
            return self.is_anchored

        spread = mean_pairwise_distance(list(self.position_history))
        if spread < threshold:
            self.is_anchored = True
        elif release_on_drift:
            self.is_anchored = False
        return self.is_anchored

    def distance_to(self, position) -> Optional[float]:
        """Distance from the last known position, or None when either is unknown."""
        last = self.last_position
        if last is None or position is None:
            return None
        return float(np.linalg.norm(last - np.asarray(position, dtype=np.float64)))

    def to_dict(self) -> Dict:
        last = self.last_position
        return {
            "identity": self.identity,
            "label": self.label,
            "state": self.state.value,
            "match_type": self.match.match_type.value,
            "match_score": self.match.match_score,
            "continuous_detection_count": self.continuous_detection_count,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "is_anchored": self.is_anchored,
            "position_confidence": self.position_confidence,
            "position": last.tolist() if last is not None else None,
            "history_length": len(self.position_history),
        }
