"""
Finder Configuration

Configuration dataclass for query parsing, matching and temporal stabilization.
"""

import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


class AnchorPolicy(Enum):
    """What happens to an anchored object whose position starts drifting."""

    STICKY = "sticky"  # Initial placement is treated as ground truth
    RELEASE_ON_DRIFT = "release_on_drift"  # De-anchor once samples spread out again


@dataclass(frozen=True)
class FinderConfig:
    """Configuration for a finder session."""

    # Matching
    min_detection_confidence: float = 0.4  # Hard floor, detections below are discarded
    similarity_threshold: float = 0.7  # Minimum embedding similarity for SIMILAR_ITEM
    neutral_attribute_score: float = 0.5

    # Identity association
    association_distance: float = 0.3  # Meters between consecutive sightings of one object

    # Stabilization
    history_size: int = 10  # Position samples kept per tracked object
    anchor_min_samples: int = 5
    anchor_threshold: float = 0.05  # Mean pairwise distance (meters) below which we anchor
    anchor_policy: AnchorPolicy = AnchorPolicy.STICKY
    recency_window: float = 2.0  # Seconds before a tracked object is stale
    retention_window: float = 10.0  # Seconds before a stale object is dropped entirely
    max_tracked_objects: int = 64

    # Frame intake
    frame_skip: int = 5  # Process every Nth camera frame

    # Resources
    lexicon_path: Optional[Path] = None  # None -> config/lexicon.yaml
    spacy_model: str = "en_core_web_sm"

    def __post_init__(self):
        if not 0.0 <= self.min_detection_confidence <= 1.0:
            raise ValueError("min_detection_confidence must be within [0, 1]")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be within [0, 1]")
        if not 0.0 <= self.neutral_attribute_score <= 1.0:
            raise ValueError("neutral_attribute_score must be within [0, 1]")
        if self.association_distance <= 0:
            raise ValueError("association_distance must be positive")
        if self.anchor_threshold <= 0:
            raise ValueError("anchor_threshold must be positive")
        if self.history_size < 1:
            raise ValueError("history_size must be positive")
        if not 2 <= self.anchor_min_samples <= self.history_size:
            raise ValueError("anchor_min_samples must be between 2 and history_size")
        if self.recency_window <= 0:
            raise ValueError("recency_window must be positive")
        if self.retention_window < self.recency_window:
            raise ValueError("retention_window must be >= recency_window")
        if self.max_tracked_objects < 1:
            raise ValueError("max_tracked_objects must be positive")
        if self.frame_skip < 1:
            raise ValueError("frame_skip must be >= 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinderConfig":
        """
        Build a config from a mapping, rejecting unknown keys.

        Args:
            data: Field name -> value

        Returns:
            FinderConfig
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        values = dict(data)
        if "anchor_policy" in values and not isinstance(values["anchor_policy"], AnchorPolicy):
            values["anchor_policy"] = AnchorPolicy(values["anchor_policy"])
        if values.get("lexicon_path") is not None:
            values["lexicon_path"] = Path(values["lexicon_path"])
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "FinderConfig":
        """Load config overrides from a YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")
        return cls.from_dict(data)

    def with_env_overrides(self) -> "FinderConfig":
        """Apply ITEM_FINDER_LEXICON / ITEM_FINDER_SPACY_MODEL environment overrides."""
        overrides: Dict[str, Any] = {}
        lexicon = os.environ.get("ITEM_FINDER_LEXICON")
        if lexicon:
            overrides["lexicon_path"] = Path(lexicon)
        model = os.environ.get("ITEM_FINDER_SPACY_MODEL")
        if model:
            overrides["spacy_model"] = model
        return replace(self, **overrides) if overrides else self

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Path):
                value = str(value)
            result[f.name] = value
        return result
