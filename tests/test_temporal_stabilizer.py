"""
Tests for temporal stabilization and anchoring.

Run with: pytest tests/test_temporal_stabilizer.py -v
"""

import pytest

from item_finder.finder_config import AnchorPolicy, FinderConfig
from item_finder.matching import BoundingBox, MatchType, RawDetection, ScoredMatch
from item_finder.tracking import TemporalStabilizer, TrackState, mean_pairwise_distance


def match(label="keys", position=None, match_type=MatchType.EXACT_MATCH, score=0.9, confidence=0.9, scored=True):
    detection = RawDetection(
        label=label,
        confidence=confidence,
        bounding_box=BoundingBox(0.4, 0.4, 0.1, 0.1),
        world_position=position,
        position_confidence=0.8 if position is not None else None,
    )
    return ScoredMatch(detection=detection, match_type=match_type, match_score=score, scored=scored)


def feed(stabilizer, positions, label="keys", start=0.0, step=0.2):
    """Observe one sighting per frame; returns the time of the last frame."""
    now = start
    for position in positions:
        stabilizer.observe([match(label, position)], now)
        now += step
    return now - step


class TestAnchoring:
    """Position history and anchor decisions."""

    def test_identical_positions_anchor_after_min_samples(self):
        stabilizer = TemporalStabilizer(FinderConfig())

        feed(stabilizer, [(1.0, 0.5, 2.0)] * 4)
        tracked = stabilizer.get("keys_0")
        assert not tracked.is_anchored
        assert tracked.state == TrackState.TRACKING

        feed(stabilizer, [(1.0, 0.5, 2.0)], start=1.0)
        assert tracked.is_anchored
        assert tracked.state == TrackState.ANCHORED
        assert len(stabilizer) == 1

    def test_spread_positions_do_not_anchor(self):
        stabilizer = TemporalStabilizer(FinderConfig())
        feed(stabilizer, [(0.1 * i, 0.0, 0.0) for i in range(5)])

        tracked = stabilizer.get("keys_0")
        assert len(stabilizer) == 1
        assert mean_pairwise_distance(list(tracked.position_history)) == pytest.approx(0.2)
        assert not tracked.is_anchored

    def test_history_keeps_most_recent_samples(self):
        stabilizer = TemporalStabilizer(FinderConfig())
        feed(stabilizer, [(0.001 * i, 0.0, 0.0) for i in range(12)])

        history = stabilizer.get("keys_0").position_history
        assert len(history) == 10
        assert history[0][0] == pytest.approx(0.002)
        assert history[-1][0] == pytest.approx(0.011)

    def test_sticky_anchor_survives_drift(self):
        stabilizer = TemporalStabilizer(FinderConfig(anchor_policy=AnchorPolicy.STICKY))
        end = feed(stabilizer, [(0.0, 0.0, 0.0)] * 5)
        feed(stabilizer, [(0.25, 0.0, 0.0), (0.5, 0.0, 0.0)], start=end + 0.2)

        assert stabilizer.get("keys_0").is_anchored

    def test_release_on_drift(self):
        stabilizer = TemporalStabilizer(FinderConfig(anchor_policy=AnchorPolicy.RELEASE_ON_DRIFT))
        end = feed(stabilizer, [(0.0, 0.0, 0.0)] * 5)
        assert stabilizer.get("keys_0").is_anchored

        feed(stabilizer, [(0.25, 0.0, 0.0)], start=end + 0.2)
        assert not stabilizer.get("keys_0").is_anchored

    def test_position_confidence_is_recorded(self):
        stabilizer = TemporalStabilizer()
        feed(stabilizer, [(0.0, 0.0, 0.0)])
        assert stabilizer.get("keys_0").position_confidence == pytest.approx(0.8)

    def test_mean_pairwise_distance_of_single_sample(self):
        assert mean_pairwise_distance([]) == 0.0


class TestAssociation:
    """Matching sightings to existing identities."""

    def test_continuous_detection_count(self):
        stabilizer = TemporalStabilizer()
        feed(stabilizer, [(0.0, 0.0, 0.0)] * 3)

        tracked = stabilizer.get("keys_0")
        assert tracked.continuous_detection_count == 3
        assert tracked.first_seen == 0.0
        assert tracked.last_seen == pytest.approx(0.4)

    def test_far_sighting_creates_new_identity(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)
        stabilizer.observe([match("keys", (0.5, 0.0, 0.0))], 0.2)

        assert [t.identity for t in stabilizer.all_objects()] == ["keys_0", "keys_1"]

    def test_nearest_track_wins(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0)), match("keys", (0.4, 0.0, 0.0))], 0.0)
        stabilizer.observe([match("keys", (0.25, 0.0, 0.0))], 0.2)

        assert stabilizer.get("keys_0").continuous_detection_count == 1
        assert stabilizer.get("keys_1").continuous_detection_count == 2

    def test_track_claimed_once_per_frame(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0)), match("keys", (0.1, 0.0, 0.0))], 0.2)

        assert len(stabilizer) == 2

    def test_labels_must_agree(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)
        stabilizer.observe([match("wallet", (0.0, 0.0, 0.0))], 0.2)

        assert stabilizer.get("wallet_1") is not None
        assert stabilizer.get("keys_0").continuous_detection_count == 1

    def test_sighting_without_position_joins_latest_track(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", None)], 0.0)
        stabilizer.observe([match("keys", None)], 0.2)

        assert len(stabilizer) == 1
        tracked = stabilizer.get("keys_0")
        assert tracked.continuous_detection_count == 2
        assert tracked.last_position is None
        assert not tracked.is_anchored

    def test_hidden_matches_are_ignored(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("person", None, match_type=MatchType.NONE, score=0.0)], 0.0)
        assert len(stabilizer) == 0

    def test_pass_through_matches_are_tracked(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("person", None, match_type=MatchType.NONE, score=0.0, scored=False)], 0.0)
        assert len(stabilizer) == 1

    def test_capacity_evicts_least_recently_seen(self):
        stabilizer = TemporalStabilizer(FinderConfig(max_tracked_objects=3))
        for i, label in enumerate(["keys", "wallet", "phone"]):
            stabilizer.observe([match(label, (float(i), 0.0, 0.0))], 0.1 * i)
        # Refresh keys so wallet becomes the oldest
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.3)
        stabilizer.observe([match("glasses", (5.0, 0.0, 0.0))], 0.4)

        labels = sorted(t.label for t in stabilizer.all_objects())
        assert labels == ["glasses", "keys", "phone"]


class TestStaleness:
    """Recency and retention windows."""

    def test_object_hidden_after_recency_window(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)

        assert [t.identity for t in stabilizer.recent_objects(2.0)] == ["keys_0"]
        assert stabilizer.recent_objects(2.5) == []
        # Still remembered until the retention window passes
        assert len(stabilizer) == 1

    def test_resighted_object_reappears_with_fresh_count(self):
        stabilizer = TemporalStabilizer()
        feed(stabilizer, [(0.0, 0.0, 0.0)] * 3)
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 5.0)

        tracked = stabilizer.get("keys_0")
        assert tracked.continuous_detection_count == 1
        assert tracked.first_seen == 0.0
        assert stabilizer.recent_objects(5.0) == [tracked]

    def test_object_dropped_after_retention_window(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)

        assert stabilizer.prune(10.0) == 0
        assert stabilizer.prune(10.5) == 1
        assert stabilizer.get("keys_0") is None

    def test_observe_prunes_expired_objects(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 12.0)

        assert [t.identity for t in stabilizer.all_objects()] == ["keys_1"]

    def test_ranked_objects_order(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe(
            [
                match("drawer", (1.0, 0.0, 0.0), MatchType.POTENTIAL_LOCATION, 0.5),
                match("mug", (2.0, 0.0, 0.0), MatchType.SIMILAR_ITEM, 0.7),
                match("cup", (3.0, 0.0, 0.0), MatchType.EXACT_MATCH, 0.9),
            ],
            0.0,
        )
        assert [t.label for t in stabilizer.ranked_objects(0.0)] == ["cup", "mug", "drawer"]

    def test_clear(self):
        stabilizer = TemporalStabilizer()
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 0.0)
        stabilizer.clear()

        assert len(stabilizer) == 0
        stabilizer.observe([match("keys", (0.0, 0.0, 0.0))], 1.0)
        assert stabilizer.get("keys_0") is not None


def test_tracked_object_to_dict():
    stabilizer = TemporalStabilizer()
    stabilizer.observe([match("keys", (1.0, 2.0, 3.0))], 0.0)

    data = stabilizer.get("keys_0").to_dict()
    assert data["identity"] == "keys_0"
    assert data["state"] == "new"
    assert data["position"] == [1.0, 2.0, 3.0]
    assert data["match_type"] == "exact_match"
