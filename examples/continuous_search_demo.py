#!/usr/bin/env python3
"""
Continuous Search Demo

Runs a ContinuousSearch loop against a simulated detector: the keys sit still
near the couch, the detector jitters a little and fails once, and the query is
changed halfway through.

Usage:
    python examples/continuous_search_demo.py
"""

import asyncio
import random
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from item_finder import ContinuousSearch, SessionController  # noqa: E402
from item_finder.matching import BoundingBox, RawDetection  # noqa: E402
from item_finder.perception import PerceptionError  # noqa: E402
from item_finder.utils import configure_logging  # noqa: E402


class SimulatedDetector:
    """Stand-in for the camera + detection model."""

    def __init__(self, seed: int = 0):
        self.rng = random.Random(seed)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0.005)  # Inference latency

        if self.calls == 4:
            raise PerceptionError("Simulated inference timeout")

        jitter = lambda: self.rng.uniform(-0.005, 0.005)  # noqa: E731
        return [
            RawDetection(
                label="keys",
                confidence=0.88,
                bounding_box=BoundingBox(0.42, 0.61, 0.07, 0.04),
                world_position=(0.8 + jitter(), 0.02 + jitter(), 1.4 + jitter()),
                position_confidence=0.9,
                distance_from_camera=1.6,
            ),
            RawDetection(
                label="couch",
                confidence=0.93,
                bounding_box=BoundingBox(0.05, 0.35, 0.65, 0.45),
                world_position=(1.2, 0.0, 1.9),
                distance_from_camera=2.2,
            ),
            RawDetection(
                label="drawer",
                confidence=0.71,
                bounding_box=BoundingBox(0.75, 0.50, 0.20, 0.15),
                world_position=(2.0, 0.3, 1.5),
                distance_from_camera=2.5,
            ),
            RawDetection(
                label="person",
                confidence=0.97,
                bounding_box=BoundingBox(0.70, 0.05, 0.25, 0.90),
            ),
        ]


def show(results):
    print(f"  {len(results)} result(s)")
    for result in results:
        anchor = " [anchored]" if result.is_anchored else ""
        print(f"    {result.match_score:.2f}  {result.describe()}{anchor}")


async def main():
    print("=" * 70)
    print("Item Finder - Continuous Search Demo")
    print("=" * 70)

    configure_logging(level="INFO")

    controller = SessionController()
    detector = SimulatedDetector()
    search = ContinuousSearch(
        controller,
        source=detector,
        on_results=show,
        frame_interval=1.0 / 30.0,
        frame_skip=5,
    )

    intent = controller.set_query("find my red keys near the couch")
    print(f"\nQuery: {intent.describe()}")
    search.start()
    await asyncio.sleep(1.5)

    intent = controller.set_query("where is my wallet")
    print(f"\nQuery: {intent.describe()}")
    await asyncio.sleep(0.5)

    await search.stop()

    stats = await search.get_stats()
    print("\nStatistics:")
    print(f"  Frames seen:       {stats.total_frames}")
    print(f"  Frames processed:  {stats.processed_frames}")
    print(f"  Frames throttled:  {stats.skipped_frames}")
    print(f"  Frames discarded:  {stats.discarded_frames}")
    print(f"  Detector failures: {stats.failed_frames}")
    print(f"  Avg processing:    {stats.avg_processing_time * 1000:.1f} ms")


if __name__ == "__main__":
    asyncio.run(main())
