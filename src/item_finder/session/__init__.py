"""Search session orchestration."""

from .continuous_search import ContinuousSearch, SearchStats
from .results import FinderResult
from .session_controller import SessionController, SessionStats

__all__ = [
    "ContinuousSearch",
    "SearchStats",
    "FinderResult",
    "SessionController",
    "SessionStats",
]
