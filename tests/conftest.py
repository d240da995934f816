"""
Shared test configuration and fixtures.
"""

import random
import sys
from pathlib import Path
from typing import List, Tuple

import pytest

# Run against the source tree
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from item_finder.finder_config import FinderConfig  # noqa: E402
from item_finder.lexicon import load_lexicon  # noqa: E402
from item_finder.matching import MatchScorer, StaticWordEmbeddings  # noqa: E402
from item_finder.query import QueryParser  # noqa: E402
from item_finder.session import SessionController  # noqa: E402

NOUNS = {
    "keys", "key", "couch", "wallet", "phone", "glasses", "table", "laptop",
    "drawer", "kitchen", "room", "watch", "sofa", "jacket", "bag", "desk",
    "bed", "remote", "cup", "mug", "book",
}


class KeywordTagger:
    """Deterministic tagger: words from NOUNS are nouns, everything else is not."""

    def __init__(self, nouns=NOUNS):
        self.nouns = set(nouns)
        self.calls: List[str] = []

    def tag(self, text: str) -> List[Tuple[str, str]]:
        self.calls.append(text)
        return [(word, "NOUN" if word.strip("?!.,") in self.nouns else "X") for word in text.split()]


class BrokenTagger:
    """Tagger whose model cannot be loaded."""

    def __init__(self):
        self.calls = 0

    def tag(self, text: str):
        self.calls += 1
        raise OSError("Can't find model 'en_core_web_sm'")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture(scope="session")
def lexicon():
    return load_lexicon()


@pytest.fixture
def config():
    return FinderConfig()


@pytest.fixture
def tagger():
    return KeywordTagger()


@pytest.fixture
def embeddings():
    return StaticWordEmbeddings(
        {
            "jacket": [1.0, 0.0, 0.0],
            "coat": [0.9, 0.1, 0.0],
            "shoe": [0.0, 1.0, 0.0],
        }
    )


@pytest.fixture
def parser(lexicon, tagger, config):
    return QueryParser(lexicon=lexicon, tagger=tagger, config=config)


@pytest.fixture
def scorer(lexicon, embeddings, config):
    return MatchScorer(lexicon=lexicon, embeddings=embeddings, config=config, rng=random.Random(7))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller(config, lexicon, parser, scorer, clock):
    return SessionController(config=config, lexicon=lexicon, parser=parser, scorer=scorer, clock=clock)
