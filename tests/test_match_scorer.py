"""
Tests for the match scorer.

Run with: pytest tests/test_match_scorer.py -v
"""

import math
import random

import pytest

from item_finder.matching import (
    BoundingBox,
    MatchScorer,
    MatchType,
    RawDetection,
    StaticWordEmbeddings,
    sanitize_detection,
)
from item_finder.query import (
    QueryAttributes,
    QueryIntent,
    RelationType,
    SearchIntent,
    SpatialRelationship,
)


def det(label, confidence=0.9, **kwargs):
    return RawDetection(label=label, confidence=confidence, bounding_box=BoundingBox(0.1, 0.1, 0.2, 0.2), **kwargs)


def intent_for(*targets, intent=QueryIntent.FIND, relationships=()):
    return SearchIntent(
        target_items=tuple(targets),
        intent=intent,
        spatial_relationships=tuple(relationships),
    )


class TestMatchRules:
    """Priority-ordered match rules."""

    def test_empty_detections(self, scorer):
        assert scorer.score([], intent_for("keys")) == []

    def test_exact_match(self, scorer):
        matches = scorer.score([det("Keys")], intent_for("keys"))
        assert len(matches) == 1
        assert matches[0].match_type == MatchType.EXACT_MATCH
        assert matches[0].match_score == pytest.approx(0.9)
        assert matches[0].match_score >= 0.8

    def test_synonym_match_both_directions(self, scorer):
        forward = scorer.score([det("mug")], intent_for("cup"))
        backward = scorer.score([det("cup")], intent_for("mug"))
        for matches in (forward, backward):
            assert matches[0].match_type == MatchType.SIMILAR_ITEM
            assert matches[0].match_score == pytest.approx(0.7)

    def test_semantic_similarity(self, scorer):
        matches = scorer.score([det("coat")], intent_for("jacket"))
        similarity = 0.9 / math.sqrt(0.82)
        assert matches[0].match_type == MatchType.SIMILAR_ITEM
        assert matches[0].match_score == pytest.approx(0.6 * similarity + 0.1, rel=1e-5)

    def test_semantic_similarity_below_threshold(self, scorer):
        assert scorer.score([det("shoe")], intent_for("jacket")) == []

    def test_spatial_reference_exact(self, scorer):
        relationship = SpatialRelationship("couch", RelationType.UNDER, 0.8)
        matches = scorer.score([det("couch", 0.5)], intent_for("keys", relationships=[relationship]))
        assert matches[0].match_type == MatchType.POTENTIAL_LOCATION
        assert matches[0].match_score == pytest.approx(0.8)
        assert matches[0].location_description == "under the couch"

    def test_spatial_reference_synonym(self, scorer):
        relationship = SpatialRelationship("couch", RelationType.NEAR, 0.8)
        matches = scorer.score([det("sofa", 0.5)], intent_for("keys", relationships=[relationship]))
        assert matches[0].match_type == MatchType.POTENTIAL_LOCATION
        assert matches[0].match_score == pytest.approx(0.72)
        assert matches[0].location_description == "near the sofa"

    def test_container_fallback(self, scorer, lexicon):
        matches = scorer.score([det("drawer")], intent_for("keys"))
        assert matches[0].match_type == MatchType.POTENTIAL_LOCATION
        assert matches[0].match_score == pytest.approx(0.5)
        preposition = matches[0].location_description.split(" ")[0]
        assert preposition in lexicon.fallback_location_prepositions
        assert matches[0].location_description.endswith(" the drawer")

    def test_container_requires_find_intent(self, scorer):
        assert scorer.score([det("drawer")], intent_for("keys", intent=QueryIntent.NAVIGATE)) == []

    def test_container_requires_targets(self, scorer):
        intent = SearchIntent(attributes=QueryAttributes(colors=("red",)))
        assert scorer.score([det("drawer")], intent) == []

    def test_unrelated_label_is_excluded(self, scorer):
        assert scorer.score([det("person")], intent_for("keys")) == []

    def test_exact_match_beats_container_rule(self, scorer):
        matches = scorer.score([det("bag")], intent_for("bag"))
        assert matches[0].match_type == MatchType.EXACT_MATCH


class TestConfidenceFloor:
    """Low-confidence detections never appear."""

    @pytest.mark.parametrize("confidence", [0.0, 0.1, 0.39])
    def test_below_floor_is_discarded(self, scorer, confidence):
        assert scorer.score([det("keys", confidence)], intent_for("keys")) == []

    def test_floor_is_inclusive(self, scorer):
        assert len(scorer.score([det("keys", 0.4)], intent_for("keys"))) == 1


class TestPassThrough:
    """Intent with no searchable content."""

    def test_all_detections_returned_unscored(self, scorer):
        detections = [det("person", 0.2), det("keys", 0.9), det("chair", 0.5)]
        matches = scorer.score(detections, SearchIntent())
        assert [m.label for m in matches] == ["person", "keys", "chair"]
        assert all(not m.scored and m.match_type == MatchType.NONE for m in matches)
        assert all(m.is_visible for m in matches)


class TestRanking:
    """Stable ordering by type, score and confidence."""

    def test_type_priority(self, scorer):
        relationship = SpatialRelationship("table", RelationType.ON, 0.8)
        detections = [det("table", 0.99), det("mug", 0.95), det("cup", 0.5)]
        matches = scorer.score(detections, intent_for("cup", relationships=[relationship]))
        assert [m.match_type for m in matches] == [
            MatchType.EXACT_MATCH,
            MatchType.SIMILAR_ITEM,
            MatchType.POTENTIAL_LOCATION,
        ]

    def test_confidence_breaks_score_ties(self, scorer):
        detections = [det("keys", 0.6), det("keys", 0.95), det("keys", 0.8)]
        matches = scorer.score(detections, intent_for("keys"))
        assert [m.confidence for m in matches] == [0.95, 0.8, 0.6]

    def test_full_ties_keep_input_order(self, scorer):
        detections = [
            det("keys", 0.9, world_position=(0.0, 0.0, 0.0)),
            det("keys", 0.9, world_position=(1.0, 0.0, 0.0)),
            det("keys", 0.9, world_position=(2.0, 0.0, 0.0)),
        ]
        matches = scorer.score(detections, intent_for("keys"))
        assert [m.detection.world_position[0] for m in matches] == [0.0, 1.0, 2.0]

    def test_intent_is_not_mutated(self, scorer):
        intent = intent_for("keys")
        before = intent.to_dict()
        scorer.score([det("keys"), det("drawer")], intent)
        assert intent.to_dict() == before


class TestLocationDescription:
    """Randomized fallback text is reproducible with a seeded source."""

    def test_seeded_rng_is_deterministic(self, lexicon, embeddings, config):
        def describe(seed):
            scorer = MatchScorer(lexicon=lexicon, embeddings=embeddings, config=config, rng=random.Random(seed))
            return [scorer.generate_location_description("box", intent_for("keys")) for _ in range(10)]

        assert describe(3) == describe(3)

    def test_randomness_does_not_change_score(self, lexicon, embeddings, config):
        scores = set()
        for seed in range(5):
            scorer = MatchScorer(lexicon=lexicon, embeddings=embeddings, config=config, rng=random.Random(seed))
            scores.add(scorer.score([det("box")], intent_for("keys"))[0].match_score)
        assert scores == {0.5}


class TestSanitize:
    """Malformed detections are clamped or rejected individually."""

    def test_confidence_is_clamped(self, scorer):
        matches = scorer.score([det("keys", 1.7)], intent_for("keys"))
        assert matches[0].confidence == 1.0

    def test_bad_detections_do_not_abort_batch(self, scorer):
        detections = [
            det("keys", float("nan")),
            det("", 0.9),
            det("keys", 0.9, world_position=(0.0, float("inf"), 0.0)),
            det("keys", 0.8),
        ]
        matches = scorer.score(detections, intent_for("keys"))
        assert len(matches) == 1
        assert matches[0].confidence == 0.8

    def test_bounding_box_and_position_confidence_clamped(self):
        raw = RawDetection(
            label=" keys ",
            confidence=-0.2,
            bounding_box=BoundingBox(-0.1, 0.5, 2.0, 0.8),
            position_confidence=3.0,
        )
        cleaned = sanitize_detection(raw)
        assert cleaned.label == "keys"
        assert cleaned.confidence == 0.0
        assert cleaned.bounding_box == BoundingBox(0.0, 0.5, 1.0, 0.5)
        assert cleaned.position_confidence == 1.0

    def test_wrong_position_length_rejected(self):
        assert sanitize_detection(det("keys", world_position=(1.0, 2.0))) is None


class TestEmbeddings:
    """Cosine similarity helper."""

    def test_missing_words_have_zero_similarity(self):
        embeddings = StaticWordEmbeddings({"cat": [1.0, 0.0]})
        assert embeddings.similarity("cat", "dog") == 0.0
        assert embeddings.contains("CAT")

    def test_best_similarity(self):
        embeddings = StaticWordEmbeddings({"a": [1.0, 0.0], "b": [0.0, 1.0], "c": [1.0, 1.0]})
        assert embeddings.best_similarity("c", ["a", "b"]) == pytest.approx(1 / math.sqrt(2))

    def test_negative_cosine_clipped_to_zero(self):
        embeddings = StaticWordEmbeddings({"up": [1.0], "down": [-1.0]})
        assert embeddings.similarity("up", "down") == 0.0


def test_raw_detection_from_dict():
    detection = RawDetection.from_dict(
        {
            "label": "keys",
            "confidence": 0.9,
            "bounding_box": {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4},
            "world_position": [1, 2, 3],
        }
    )
    assert detection.bounding_box == BoundingBox(0.1, 0.2, 0.3, 0.4)
    assert detection.world_position == (1.0, 2.0, 3.0)
    assert detection.position_confidence is None
