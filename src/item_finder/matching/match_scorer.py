"""
Match scorer connecting per-frame detections with a parsed SearchIntent.
"""

import random
from typing import List, Optional, Sequence, Tuple

from ..finder_config import FinderConfig
from ..lexicon import Lexicon, load_lexicon
from ..query.search_intent import QueryAttributes, QueryIntent, SearchIntent
from ..utils.logging_utils import get_structured_logger
from .embeddings import SpacyWordEmbeddings, WordEmbeddings
from .match_types import MatchType, RawDetection, ScoredMatch, ranking_key, sanitize_detection

logger = get_structured_logger(__name__)


class MatchScorer:
    """
    Scores detections against a SearchIntent and ranks the matches.

    The scorer holds no per-frame state: the same detections and intent always
    yield the same types, scores and order. Only the fallback location text
    for containers draws from ``rng``.

    Example:
        >>> scorer = MatchScorer(rng=random.Random(0))
        >>> matches = scorer.score(detections, intent)
        >>> best = matches[0] if matches else None
    """

    EXACT_BASE = 0.8
    SYNONYM_BASE = 0.6
    SEMANTIC_WEIGHT = 0.6
    ATTRIBUTE_WEIGHT = 0.2
    SYNONYM_RELATIONSHIP_FACTOR = 0.9
    CONTAINER_SCORE = 0.5

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        embeddings: Optional[WordEmbeddings] = None,
        config: Optional[FinderConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize match scorer.

        Args:
            lexicon: Synonym / container tables (defaults to config/lexicon.yaml)
            embeddings: Word embeddings for semantic similarity (defaults to spaCy vectors)
            config: Finder configuration (floors and thresholds)
            rng: Randomness for fallback location text; seed it for deterministic output
        """
        self.config = config or FinderConfig()
        self.lexicon = lexicon or load_lexicon(self.config.lexicon_path)
        self.embeddings = embeddings or SpacyWordEmbeddings(self.config.spacy_model)
        self.rng = rng or random.Random()

    def score(self, detections: Sequence[RawDetection], intent: SearchIntent) -> List[ScoredMatch]:
        """
        Match detections against the search intent.

        Args:
            detections: Detections from the current frame
            intent: Parsed search intent

        Returns:
            Ranked matches. When the intent has no searchable content every
            detection is passed through unscored, in input order.
        """
        valid = []
        for detection in detections:
            cleaned = sanitize_detection(detection)
            if cleaned is None:
                logger.debug("Rejected malformed detection: %r", detection)
                continue
            valid.append(cleaned)

        if not intent.has_searchable_content:
            return [ScoredMatch(detection=d, match_type=MatchType.NONE, scored=False) for d in valid]

        matches = []
        for detection in valid:
            if detection.confidence < self.config.min_detection_confidence:
                continue

            match_type, match_score = self.calculate_match(detection, intent)
            if match_type is MatchType.NONE:
                continue

            location_description = None
            if match_type is MatchType.POTENTIAL_LOCATION:
                location_description = self.generate_location_description(detection.label, intent)

            matches.append(
                ScoredMatch(
                    detection=detection,
                    match_type=match_type,
                    match_score=match_score,
                    location_description=location_description,
                )
            )

        # sorted() is stable, so equal keys keep input order
        return sorted(matches, key=ranking_key)

    def calculate_match(self, detection: RawDetection, intent: SearchIntent) -> Tuple[MatchType, float]:
        """Match type and score for one detection; first matching rule wins."""
        label = detection.label.lower()
        targets = [t.lower() for t in intent.target_items]

        # 1. Exact label match
        if label in targets:
            attribute_score = self.attribute_score(detection, intent.attributes)
            return MatchType.EXACT_MATCH, self.EXACT_BASE + self.ATTRIBUTE_WEIGHT * attribute_score

        # 2. Synonym match
        if any(self.lexicon.is_synonym(label, target) for target in targets):
            attribute_score = self.attribute_score(detection, intent.attributes)
            return MatchType.SIMILAR_ITEM, self.SYNONYM_BASE + self.ATTRIBUTE_WEIGHT * attribute_score

        # 3. Semantic similarity
        if targets:
            similarity = self.embeddings.best_similarity(label, targets)
            if similarity >= self.config.similarity_threshold:
                attribute_score = self.attribute_score(detection, intent.attributes)
                score = self.SEMANTIC_WEIGHT * similarity + self.ATTRIBUTE_WEIGHT * attribute_score
                return MatchType.SIMILAR_ITEM, score

        # 4. Reference object of a spatial relationship
        for relationship in intent.spatial_relationships:
            reference = relationship.reference_object.lower()
            if label == reference:
                return MatchType.POTENTIAL_LOCATION, relationship.confidence
            if self.lexicon.is_synonym(label, reference):
                return (
                    MatchType.POTENTIAL_LOCATION,
                    relationship.confidence * self.SYNONYM_RELATIONSHIP_FACTOR,
                )

        # 5. A container the item might be in
        if intent.intent is QueryIntent.FIND and targets and self.lexicon.is_container(label):
            return MatchType.POTENTIAL_LOCATION, self.CONTAINER_SCORE

        return MatchType.NONE, 0.0

    def attribute_score(self, detection: RawDetection, attributes: QueryAttributes) -> float:
        """
        How well the detection's attributes fit the query attributes (0-1).

        Detections carry no colour/size/material metadata yet, so this is the
        neutral score. Compare detected attributes here once perception reports them.
        """
        return self.config.neutral_attribute_score

    def generate_location_description(self, container: str, intent: SearchIntent) -> str:
        """
        Describe where to look, e.g. "under the couch".

        Uses the relation from the query when the container is a reference
        object; otherwise picks a preposition with ``self.rng``.
        """
        for relationship in intent.spatial_relationships:
            if self.lexicon.is_synonym(container, relationship.reference_object):
                return f"{relationship.relation.value} the {container}"

        preposition = self.rng.choice(self.lexicon.fallback_location_prepositions)
        return f"{preposition} the {container}"
