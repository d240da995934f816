"""
Word embeddings for semantic similarity between detection labels and query terms.
"""

from typing import Dict, Mapping, Optional, Sequence

import numpy as np
from spacy.language import Language

from ..query.pos_tagger import load_pipeline
from ..utils.logging_utils import get_structured_logger

logger = get_structured_logger(__name__)


class WordEmbeddings:
    """Base class: subclasses provide ``vector(word)``; similarity is cosine."""

    def vector(self, word: str) -> Optional[np.ndarray]:
        raise NotImplementedError

    def contains(self, word: str) -> bool:
        return self.vector(word) is not None

    def similarity(self, word1: str, word2: str) -> float:
        """
        Cosine similarity between two words, clipped to [0, 1].

        Returns 0.0 when either word has no vector.
        """
        v1 = self.vector(word1.lower())
        v2 = self.vector(word2.lower())
        if v1 is None or v2 is None:
            return 0.0

        norm1 = np.linalg.norm(v1)
        norm2 = np.linalg.norm(v2)
        if norm1 == 0 or norm2 == 0:
            return 0.0

        cosine_sim = float(np.dot(v1, v2) / (norm1 * norm2))
        return max(0.0, min(1.0, cosine_sim))

    def best_similarity(self, word: str, candidates: Sequence[str]) -> float:
        """Highest similarity between ``word`` and any candidate."""
        best = 0.0
        for candidate in candidates:
            best = max(best, self.similarity(word, candidate))
        return best


class StaticWordEmbeddings(WordEmbeddings):
    """Embeddings from an in-memory word -> vector table."""

    def __init__(self, vectors: Optional[Mapping[str, Sequence[float]]] = None):
        self._vectors: Dict[str, np.ndarray] = {
            word.lower(): np.asarray(vec, dtype=np.float32) for word, vec in (vectors or {}).items()
        }

    def vector(self, word: str) -> Optional[np.ndarray]:
        return self._vectors.get(word.lower())


class SpacyWordEmbeddings(WordEmbeddings):
    """
    Embeddings from a spaCy pipeline's static vector table.

    Pipelines without static vectors (e.g. en_core_web_sm) yield no vectors, so
    every similarity is 0.0 and semantic matching never fires; use
    en_core_web_md or larger to enable it.
    """

    def __init__(self, model_name: str = "en_core_web_sm", nlp: Optional[Language] = None):
        self.model_name = model_name
        self._nlp = nlp
        self._available = True

    def vector(self, word: str) -> Optional[np.ndarray]:
        nlp = self._pipeline()
        if nlp is None:
            return None
        vocab = nlp.vocab
        if not vocab.has_vector(word):
            return None
        return np.asarray(vocab.get_vector(word), dtype=np.float32)

    def _pipeline(self) -> Optional[Language]:
        if self._nlp is None and self._available:
            try:
                self._nlp = load_pipeline(self.model_name)
            except OSError as e:
                logger.warning("Word vectors unavailable (%s); semantic matching disabled", e)
                self._available = False
        return self._nlp
