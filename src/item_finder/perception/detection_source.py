"""
Boundary to the external perception collaborator.

The camera pipeline and detection model live outside this package; they hand
over one list of RawDetection per processed frame, or raise PerceptionError
when inference fails.
"""

from typing import Any, Awaitable, Callable, Dict, List, Sequence, Union

from ..matching.match_types import RawDetection
from ..utils.logging_utils import get_structured_logger

logger = get_structured_logger(__name__)

DetectionBatch = Sequence[RawDetection]

# Sync or async callable returning the detections of the latest frame
DetectionSource = Callable[[], Union[DetectionBatch, Awaitable[DetectionBatch]]]


class PerceptionError(Exception):
    """Raised by a detection source when the detector could not produce results."""


class FrameThrottle:
    """
    Caller-side frame subsampling: let through every Nth frame.

    Example:
        >>> throttle = FrameThrottle(every_n=5)
        >>> [throttle.should_process() for _ in range(5)]
        [False, False, False, False, True]
    """

    def __init__(self, every_n: int = 5):
        if every_n < 1:
            raise ValueError("every_n must be >= 1")
        self.every_n = every_n
        self._frame_counter = 0

    def should_process(self) -> bool:
        self._frame_counter += 1
        return self._frame_counter % self.every_n == 0

    def reset(self) -> None:
        self._frame_counter = 0

    @property
    def frames_seen(self) -> int:
        return self._frame_counter


def detections_from_dicts(items: Sequence[Dict[str, Any]]) -> List[RawDetection]:
    """Convert recorded detection mappings, skipping entries that cannot be read."""
    detections = []
    for item in items:
        try:
            detections.append(RawDetection.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable detection %r: %s", item, e)
    return detections
