"""
Part-of-speech tagging backed by spaCy.

The parser only needs (token, coarse tag) pairs, so any object with a
``tag(text)`` method returning Universal POS tags ("NOUN", "VERB", ...) can be
used in place of the spaCy tagger.
"""

from functools import lru_cache
from typing import List, Optional, Protocol, Tuple

import spacy
from spacy.language import Language

from ..utils.logging_utils import get_structured_logger

logger = get_structured_logger(__name__)


class PosTagger(Protocol):
    def tag(self, text: str) -> List[Tuple[str, str]]:
        ...


@lru_cache(maxsize=4)
def load_pipeline(model_name: str) -> Language:
    """
    Load (once per process) a spaCy pipeline.

    Raises:
        OSError: If the model package is not installed
    """
    logger.info("Loading spaCy pipeline: %s", model_name)
    # Parser and NER are not needed for tagging
    return spacy.load(model_name, exclude=["parser", "ner"])


class SpacyPosTagger:
    """Tagger that loads its spaCy pipeline lazily on first use."""

    def __init__(self, model_name: str = "en_core_web_sm", nlp: Optional[Language] = None):
        self.model_name = model_name
        self._nlp = nlp

    @property
    def nlp(self) -> Language:
        if self._nlp is None:
            self._nlp = load_pipeline(self.model_name)
        return self._nlp

    def tag(self, text: str) -> List[Tuple[str, str]]:
        doc = self.nlp(text)
        return [(token.text, token.pos_) for token in doc if not token.is_punct and not token.is_space]
