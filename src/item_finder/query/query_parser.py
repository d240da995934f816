"""
Query parser for extracting structured search intent from natural-language queries.
"""

import re
from typing import List, Optional, Tuple

from ..finder_config import FinderConfig
from ..lexicon import Lexicon, load_lexicon
from ..utils.logging_utils import get_structured_logger
from .pos_tagger import PosTagger, SpacyPosTagger
from .search_intent import (
    Ownership,
    QueryAttributes,
    QueryIntent,
    RelationType,
    SearchIntent,
    SpatialRelationship,
)

logger = get_structured_logger(__name__)

_PUNCTUATION = " \t\n?!.,;:'\""


class QueryParser:
    """
    Parses search queries such as "find my red keys near the couch" into a SearchIntent.

    Parsing never raises: ambiguous or empty queries degrade to empty fields.

    Example:
        >>> parser = QueryParser()
        >>> intent = parser.parse("find my red keys near the couch")
        >>> intent.target_items
        ('keys',)
    """

    # Heuristic constants, not learned
    DEFAULT_CONFIDENCE = 0.8
    RELATIONSHIP_CONFIDENCE = 0.8

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        tagger: Optional[PosTagger] = None,
        config: Optional[FinderConfig] = None,
    ):
        """
        Initialize query parser.

        Args:
            lexicon: Vocabulary tables (defaults to config/lexicon.yaml)
            tagger: Part-of-speech tagger (defaults to spaCy, loaded lazily)
            config: Finder configuration
        """
        self.config = config or FinderConfig()
        self.lexicon = lexicon or load_lexicon(self.config.lexicon_path)
        self.tagger = tagger or SpacyPosTagger(self.config.spacy_model)
        self._tagger_available = True

        # Resolve relation names up front so a bad lexicon fails at construction
        self._prepositions: List[Tuple[str, RelationType]] = [
            (prep, RelationType.from_name(relation))
            for prep, relation in self.lexicon.spatial_prepositions
        ]

    def parse(self, query: str) -> SearchIntent:
        """
        Parse a query into a SearchIntent.

        Args:
            query: Raw query text

        Returns:
            SearchIntent (never raises for any string input)
        """
        text = self._preprocess(query)

        intent = self._determine_intent(text)
        relationships = self._extract_spatial_relationships(text)
        target_items = self._extract_target_items(text, relationships)
        attributes = self._extract_attributes(text)

        logger.debug(
            "Parsed %r -> intent=%s targets=%s relationships=%d",
            query,
            intent.value,
            target_items,
            len(relationships),
        )

        return SearchIntent(
            target_items=target_items,
            intent=intent,
            attributes=attributes,
            spatial_relationships=relationships,
            raw_query=query,
            confidence=self.DEFAULT_CONFIDENCE,
        )

    def _preprocess(self, text: str) -> str:
        return (text or "").lower().strip()

    def _determine_intent(self, text: str) -> QueryIntent:
        """First matching rule wins, so rule order in the lexicon is significant."""
        for rule in self.lexicon.intent_rules:
            if rule.matches(text):
                return QueryIntent(rule.intent)
        return QueryIntent(self.lexicon.default_intent)

    def _extract_target_items(
        self, text: str, relationships: Tuple[SpatialRelationship, ...] = ()
    ) -> Tuple[str, ...]:
        """Extract the objects the user is looking for."""
        if not text:
            return ()

        # Reference objects describe where to look, not what to find
        references = {rel.reference_object for rel in relationships}
        items = _dedupe(noun for noun in self._tag_nouns(text) if noun not in references)
        if items:
            return items

        return self._fallback_target(text)

    def _tag_nouns(self, text: str) -> List[str]:
        if not self._tagger_available or not text:
            return []

        try:
            tagged = self.tagger.tag(text)
        except Exception as e:
            # Keep parsing without POS tags for the rest of the session
            logger.warning("POS tagger unavailable, using keyword extraction: %s", e)
            self._tagger_available = False
            return []

        nouns = []
        for token, pos in tagged:
            word = token.lower().strip(_PUNCTUATION)
            if pos == "NOUN" and word and not self.lexicon.is_stop_word(word):
                nouns.append(word)
        return nouns

    def _fallback_target(self, text: str) -> Tuple[str, ...]:
        """Strip filler prefixes and cut at the first connector."""
        processed = text
        stripped = True
        while stripped:
            stripped = False
            for prefix in self.lexicon.filler_prefixes:
                if processed.startswith(prefix):
                    processed = processed[len(prefix):]
                    stripped = True

        processed = _truncate_at(processed, self.lexicon.connectors).strip(_PUNCTUATION)
        if not processed:
            return ()

        words = [w.strip(_PUNCTUATION) for w in processed.split()]
        if all(not w or self.lexicon.is_stop_word(w) for w in words):
            return ()
        return (processed,)

    def _extract_attributes(self, text: str) -> QueryAttributes:
        """Extract attributes like color, size, material."""
        lex = self.lexicon

        if any(marker in text for marker in lex.ownership_mine):
            ownership = Ownership.MINE
        elif any(marker in text for marker in lex.ownership_others):
            ownership = Ownership.OTHERS
        else:
            ownership = Ownership.UNKNOWN

        return QueryAttributes(
            colors=_scan(text, lex.colors),
            sizes=_scan(text, lex.sizes),
            materials=_scan(text, lex.materials),
            time_references=_scan(text, lex.time_references),
            location_references=_scan(text, lex.location_references),
            ownership=ownership,
        )

    def _extract_spatial_relationships(self, text: str) -> Tuple[SpatialRelationship, ...]:
        """Extract "X <preposition> Y" relationships; each preposition is checked independently."""
        relationships = []

        for preposition, relation in self._prepositions:
            match = re.search(r"\b" + re.escape(preposition) + r"\b", text)
            if not match:
                continue

            words = [w.strip(_PUNCTUATION) for w in text[match.end():].split()]
            words = [w for w in words if w]
            while words and words[0] in self.lexicon.reference_skip_words:
                words.pop(0)
            if not words:
                continue

            reference = words[0]
            if self.lexicon.is_stop_word(reference):
                continue

            relationships.append(
                SpatialRelationship(
                    reference_object=reference,
                    relation=relation,
                    confidence=self.RELATIONSHIP_CONFIDENCE,
                )
            )

        return tuple(relationships)


def _truncate_at(text: str, markers) -> str:
    """Cut text at the earliest occurrence of any marker."""
    cut = len(text)
    for marker in markers:
        idx = text.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    return text[:cut]


def _scan(text: str, vocabulary) -> Tuple[str, ...]:
    return _dedupe(word for word in vocabulary if word in text)


def _dedupe(items) -> Tuple[str, ...]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return tuple(seen)
