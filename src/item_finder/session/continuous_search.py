"""
Continuous background search service.

Pulls detections from the perception collaborator on an asyncio task, applies
the frame throttle and feeds the session controller, delivering fresh results
through a callback.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Union

from ..perception.detection_source import DetectionSource, FrameThrottle, PerceptionError
from ..utils.logging_utils import get_structured_logger
from .results import FinderResult
from .session_controller import SessionController

logger = get_structured_logger(__name__)

ResultsCallback = Callable[[List[FinderResult]], Union[None, Awaitable[None]]]


@dataclass
class SearchStats:
    """Statistics for the continuous search loop."""

    total_frames: int = 0
    processed_frames: int = 0
    skipped_frames: int = 0  # Throttled before inference
    discarded_frames: int = 0  # Dropped by the controller or superseded by a new query
    failed_frames: int = 0
    avg_processing_time: float = 0.0
    last_processing_time: float = 0.0
    is_running: bool = False


class ContinuousSearch:
    """
    Background loop that keeps a SessionController fed with detections.

    Example:
        >>> search = ContinuousSearch(controller, source=detector.latest, on_results=overlay.show)
        >>> search.start()          # inside a running event loop
        >>> controller.set_query("where are my glasses")
        >>> await search.stop()
    """

    def __init__(
        self,
        controller: SessionController,
        source: DetectionSource,
        on_results: Optional[ResultsCallback] = None,
        frame_interval: float = 1.0 / 30.0,
        frame_skip: Optional[int] = None,
    ):
        """
        Initialize continuous search.

        Args:
            controller: Session to feed
            source: Callable returning the latest frame's detections (may be async)
            on_results: Callback receiving each fresh result list (may be async)
            frame_interval: Seconds between camera frames
            frame_skip: Process every Nth frame (defaults to config.frame_skip)
        """
        self.controller = controller
        self.source = source
        self.on_results = on_results
        self.frame_interval = frame_interval
        self.throttle = FrameThrottle(frame_skip or controller.config.frame_skip)

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

        self.stats = SearchStats()

    def start(self) -> None:
        """Start the background task (must be called from a running event loop)."""
        if self._running:
            logger.warning("Continuous search already running")
            return

        self._running = True
        self.stats.is_running = True
        self._task = asyncio.get_running_loop().create_task(self._search_loop())
        logger.info("Continuous search started")

    async def stop(self) -> None:
        """Stop the background task."""
        if not self._running:
            return

        self._running = False
        self.stats.is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Continuous search stopped")

    def is_running(self) -> bool:
        return self._running

    async def process_next_frame(self) -> Optional[List[FinderResult]]:
        """
        Handle one camera frame.

        Returns:
            Fresh results, or None if the frame was throttled, failed or discarded
        """
        async with self._lock:
            self.stats.total_frames += 1

        if not self.throttle.should_process():
            async with self._lock:
                self.stats.skipped_frames += 1
            return None

        generation = self.controller.generation
        start = time.monotonic()

        try:
            detections = self.source()
            if inspect.isawaitable(detections):
                detections = await detections
        except PerceptionError as e:
            self.controller.report_perception_failure(e)
            async with self._lock:
                self.stats.failed_frames += 1
            return None

        results = self.controller.submit_frame(detections, generation=generation)
        elapsed = time.monotonic() - start

        # A query change while awaiting the detector invalidates this frame
        if results is None or generation != self.controller.generation:
            async with self._lock:
                self.stats.discarded_frames += 1
            return None

        async with self._lock:
            self.stats.processed_frames += 1
            self.stats.last_processing_time = elapsed
            alpha = 0.1  # Smoothing factor
            self.stats.avg_processing_time = alpha * elapsed + (1 - alpha) * self.stats.avg_processing_time

        if self.on_results:
            outcome = self.on_results(results)
            if inspect.isawaitable(outcome):
                await outcome
        return results

    async def _search_loop(self) -> None:
        logger.debug("Search loop started (processing every %d frames)", self.throttle.every_n)

        while self._running:
            loop_start = time.monotonic()

            try:
                await self.process_next_frame()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Keep the loop alive; previous results stay visible
                logger.exception("Search loop error")
                self.controller.report_perception_failure(e)
                async with self._lock:
                    self.stats.failed_frames += 1

            elapsed = time.monotonic() - loop_start
            await asyncio.sleep(max(0.0, self.frame_interval - elapsed))

        logger.debug("Search loop stopped")

    async def get_stats(self) -> SearchStats:
        """Get a copy of the current statistics."""
        async with self._lock:
            return replace(self.stats)
