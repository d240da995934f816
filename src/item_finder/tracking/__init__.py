"""Temporal stabilization of matches into tracked objects."""

from .temporal_stabilizer import TemporalStabilizer
from .tracked_object import TrackedObject, TrackState, mean_pairwise_distance

__all__ = [
    "TemporalStabilizer",
    "TrackedObject",
    "TrackState",
    "mean_pairwise_distance",
]
