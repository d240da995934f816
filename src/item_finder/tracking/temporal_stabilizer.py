"""
Temporal stabilization of per-frame matches into persistent tracked objects.
"""

from typing import Dict, List, Optional, Sequence, Set

from ..finder_config import AnchorPolicy, FinderConfig
from ..matching.match_types import ScoredMatch, ranking_key
from ..utils.logging_utils import get_structured_logger
from .tracked_object import TrackedObject

logger = get_structured_logger(__name__)


class TemporalStabilizer:
    """
    Turns noisy per-frame matches into a stable set of tracked objects.

    A match is associated with an existing object when the labels agree and,
    if both have positions, the new position lies within
    ``config.association_distance`` of the last one. Objects missing for
    longer than ``recency_window`` are hidden; after ``retention_window``
    they are dropped.

    Example:
        >>> stabilizer = TemporalStabilizer()
        >>> stabilizer.observe(matches, now=12.5)
        >>> visible = stabilizer.ranked_objects(now=12.5)
    """

    def __init__(self, config: Optional[FinderConfig] = None):
        self.config = config or FinderConfig()
        self._objects: Dict[str, TrackedObject] = {}
        self._next_id = 0

    def observe(self, matches: Sequence[ScoredMatch], now: float) -> List[TrackedObject]:
        """
        Feed one frame of matches.

        Args:
            matches: Matches from the scorer (hidden ones are ignored)
            now: Frame time in seconds

        Returns:
            Tracked objects updated or created by this frame
        """
        self.prune(now)

        claimed: Set[str] = set()
        updated = []
        for match in matches:
            if not match.is_visible:
                continue

            tracked = self._associate(match, claimed)
            if tracked is None:
                tracked = self._create(match, now)
                was_stale = False
            else:
                was_stale = not tracked.is_recent(now, self.config.recency_window)

            tracked.record_sighting(match, now, was_stale=was_stale)
            tracked.update_anchor(
                min_samples=self.config.anchor_min_samples,
                threshold=self.config.anchor_threshold,
                release_on_drift=self.config.anchor_policy is AnchorPolicy.RELEASE_ON_DRIFT,
            )
            claimed.add(tracked.identity)
            updated.append(tracked)

        return updated

    def _associate(self, match: ScoredMatch, claimed: Set[str]) -> Optional[TrackedObject]:
        """Find the existing object this match belongs to."""
        label = match.label.lower()
        position = match.detection.world_position

        by_distance = []
        without_position = []
        for tracked in self._objects.values():
            if tracked.identity in claimed or tracked.label.lower() != label:
                continue

            distance = tracked.distance_to(position)
            if distance is None:
                without_position.append(tracked)
            elif distance <= self.config.association_distance:
                by_distance.append((distance, tracked))

        if by_distance:
            by_distance.sort(key=lambda item: item[0])
            return by_distance[0][1]
        if without_position:
            return max(without_position, key=lambda t: t.last_seen)
        return None

    def _create(self, match: ScoredMatch, now: float) -> TrackedObject:
        while len(self._objects) >= self.config.max_tracked_objects:
            oldest = min(self._objects.values(), key=lambda t: t.last_seen)
            logger.debug("Tracked object cap reached, evicting %s", oldest.identity)
            del self._objects[oldest.identity]

        identity = f"{match.label.lower().replace(' ', '_')}_{self._next_id}"
        self._next_id += 1

        tracked = TrackedObject(
            identity=identity,
            match=match,
            history_size=self.config.history_size,
            first_seen=now,
            last_seen=now,
        )
        self._objects[identity] = tracked
        return tracked

    def prune(self, now: float) -> int:
        """Drop objects not seen within the retention window; returns how many were removed."""
        expired = [
            identity
            for identity, tracked in self._objects.items()
            if tracked.age(now) > self.config.retention_window
        ]
        for identity in expired:
            del self._objects[identity]
        if expired:
            logger.debug("Dropped %d expired tracked objects", len(expired))
        return len(expired)

    def recent_objects(self, now: float) -> List[TrackedObject]:
        """Objects seen within the recency window, in creation order."""
        return [t for t in self._objects.values() if t.is_recent(now, self.config.recency_window)]

    def ranked_objects(self, now: float) -> List[TrackedObject]:
        """Recent objects ranked by their latest match (type, score, confidence)."""
        return sorted(self.recent_objects(now), key=lambda t: ranking_key(t.match))

    def get(self, identity: str) -> Optional[TrackedObject]:
        return self._objects.get(identity)

    def all_objects(self) -> List[TrackedObject]:
        return list(self._objects.values())

    def clear(self) -> None:
        self._objects.clear()
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._objects)

    def __repr__(self) -> str:
        return f"TemporalStabilizer(objects={len(self._objects)})"
