"""Natural-language item finder over a live stream of object detections."""

from pathlib import Path

from dotenv import load_dotenv

__version__ = "0.1.0"

# Load environment variables from .env file in project root
_dotenv_path = Path(__file__).resolve().parents[2] / ".env"
if _dotenv_path.exists():
    load_dotenv(_dotenv_path)

from .finder_config import AnchorPolicy, FinderConfig  # noqa: E402
from .lexicon import Lexicon, load_lexicon  # noqa: E402
from .matching import MatchScorer, MatchType, RawDetection, ScoredMatch  # noqa: E402
from .perception import PerceptionError  # noqa: E402
from .query import QueryParser, SearchIntent  # noqa: E402
from .session import ContinuousSearch, FinderResult, SessionController  # noqa: E402
from .tracking import TemporalStabilizer, TrackedObject  # noqa: E402

__all__ = [
    "AnchorPolicy",
    "FinderConfig",
    "Lexicon",
    "load_lexicon",
    "MatchScorer",
    "MatchType",
    "RawDetection",
    "ScoredMatch",
    "PerceptionError",
    "QueryParser",
    "SearchIntent",
    "ContinuousSearch",
    "FinderResult",
    "SessionController",
    "TemporalStabilizer",
    "TrackedObject",
]
