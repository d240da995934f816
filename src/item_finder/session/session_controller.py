"""
Session controller orchestrating query parsing, matching and stabilization.
"""

import json
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from ..finder_config import FinderConfig
from ..lexicon import Lexicon, load_lexicon
from ..matching.match_scorer import MatchScorer
from ..matching.match_types import RawDetection
from ..query.query_parser import QueryParser
from ..query.search_intent import SearchIntent
from ..tracking.temporal_stabilizer import TemporalStabilizer
from ..utils.logging_utils import get_structured_logger
from .results import FinderResult

logger = get_structured_logger(__name__)


@dataclass
class SessionStats:
    """Counters for one controller."""

    frames_processed: int = 0
    frames_dropped: int = 0  # Arrived while another frame was in flight
    stale_frames_discarded: int = 0  # Scored against a replaced query
    perception_failures: int = 0
    last_error: Optional[str] = None
    last_frame_time: Optional[float] = None


class SessionController:
    """
    Owns the cached SearchIntent and the tracked objects of one search session.

    Frames are processed one at a time. A frame submitted while another is
    being processed is dropped rather than queued, and query changes wait for
    the in-flight frame so nothing is scored against a half-updated intent.

    Example:
        >>> controller = SessionController()
        >>> controller.set_query("find my red keys near the couch")
        >>> results = controller.submit_frame(detections)
        >>> for result in results or []:
        ...     print(result.describe())
    """

    def __init__(
        self,
        config: Optional[FinderConfig] = None,
        lexicon: Optional[Lexicon] = None,
        parser: Optional[QueryParser] = None,
        scorer: Optional[MatchScorer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize session controller.

        Args:
            config: Finder configuration
            lexicon: Shared vocabulary (loaded once when not given)
            parser: Query parser (built from the lexicon when not given)
            scorer: Match scorer (built from the lexicon when not given)
            clock: Monotonic time source in seconds
        """
        self.config = config or FinderConfig()
        if lexicon is None and (parser is None or scorer is None):
            lexicon = load_lexicon(self.config.lexicon_path)
        self.parser = parser or QueryParser(lexicon=lexicon, config=self.config)
        self.scorer = scorer or MatchScorer(lexicon=lexicon, config=self.config)
        self.clock = clock

        self._lock = threading.Lock()
        self._intent: Optional[SearchIntent] = None
        self._generation = 0
        self._stabilizer = TemporalStabilizer(self.config)
        self._results: List[FinderResult] = []

        self.stats = SessionStats()

    @property
    def intent(self) -> Optional[SearchIntent]:
        return self._intent

    @property
    def generation(self) -> int:
        """Incremented on every query change; frames tagged with an older value are discarded."""
        return self._generation

    @property
    def current_results(self) -> List[FinderResult]:
        """Results of the last successfully processed frame."""
        return list(self._results)

    @property
    def stabilizer(self) -> TemporalStabilizer:
        return self._stabilizer

    def set_query(self, text: str) -> SearchIntent:
        """
        Parse a new query and start a fresh search.

        Args:
            text: Query text from the search UI

        Returns:
            The parsed SearchIntent, cached for subsequent frames
        """
        intent = self.parser.parse(text)
        with self._lock:
            self._intent = intent
            self._generation += 1
            self._stabilizer.clear()
            self._results = []
        logger.info("New query %r: %s", text, intent.describe())
        return intent

    def clear_query(self) -> None:
        """Drop the cached intent and all tracked state."""
        with self._lock:
            self._intent = None
            self._generation += 1
            self._stabilizer.clear()
            self._results = []
        logger.debug("Query cleared")

    def submit_frame(
        self,
        detections: Sequence[RawDetection],
        timestamp: Optional[float] = None,
        generation: Optional[int] = None,
    ) -> Optional[List[FinderResult]]:
        """
        Process one frame of detections.

        Args:
            detections: Detections for this frame
            timestamp: Frame time in seconds (defaults to the controller clock)
            generation: Query generation the frame was captured under, if known

        Returns:
            Ranked results, an empty list when no query is active, or None when
            the frame was dropped (busy) or belongs to a replaced query
        """
        if not self._lock.acquire(blocking=False):
            self.stats.frames_dropped += 1
            logger.debug("Frame dropped: previous frame still processing")
            return None

        try:
            if generation is not None and generation != self._generation:
                self.stats.stale_frames_discarded += 1
                logger.debug(
                    "Discarding frame from query generation %d (current %d)",
                    generation,
                    self._generation,
                )
                return None

            if self._intent is None:
                return []

            now = self.clock() if timestamp is None else timestamp
            matches = self.scorer.score(detections, self._intent)
            self._stabilizer.observe(matches, now)
            results = [FinderResult.from_tracked(t) for t in self._stabilizer.ranked_objects(now)]

            self._results = results
            self.stats.frames_processed += 1
            self.stats.last_frame_time = now
            if self.stats.last_error is not None:
                logger.info("Perception recovered after error: %s", self.stats.last_error)
                self.stats.last_error = None
            return list(results)
        finally:
            self._lock.release()

    def report_perception_failure(self, error: Union[Exception, str]) -> List[FinderResult]:
        """
        Record a detector failure without touching tracked state.

        Returns:
            The previous results, which stay visible until perception recovers
        """
        with self._lock:
            self.stats.perception_failures += 1
            self.stats.last_error = str(error)
            logger.warning("Perception failure: %s", error)
            return list(self._results)

    def to_dict(self) -> Dict:
        """Snapshot of the session for diagnostics."""
        with self._lock:
            return {
                "snapshot_timestamp": datetime.now().isoformat(),
                "generation": self._generation,
                "intent": self._intent.to_dict() if self._intent else None,
                "tracked_objects": [t.to_dict() for t in self._stabilizer.all_objects()],
                "results": [r.to_dict() for r in self._results],
                "stats": asdict(self.stats),
            }

    def save_to_json(self, output_path: Union[str, Path], include_timestamp: bool = True) -> str:
        """
        Save a session snapshot to JSON.

        Args:
            output_path: Path to save JSON file
            include_timestamp: Whether to include timestamp in filename

        Returns:
            Path to saved file
        """
        output_path = Path(output_path)
        if include_timestamp:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output_path = output_path.parent / f"{output_path.stem}_{timestamp}{output_path.suffix}"

        data = self.to_dict()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.info("Saved session snapshot (%d results) to %s", len(data["results"]), output_path)
        return str(output_path)
