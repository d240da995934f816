"""
Static lexicon used by the query parser and the match scorer.

All vocabulary lives in YAML (config/lexicon.yaml by default) and is loaded once
into a frozen Lexicon that is injected into the components that need it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

import yaml

from .utils.logging_utils import get_structured_logger

logger = get_structured_logger(__name__)

# All vocabulary text lives in YAML
DEFAULT_LEXICON_PATH = Path(__file__).resolve().parents[2] / "config" / "lexicon.yaml"


@dataclass(frozen=True)
class IntentRule:
    """Ordered keyword rule: every group must contain at least one substring hit."""

    intent: str
    require: Tuple[Tuple[str, ...], ...]

    def matches(self, text: str) -> bool:
        return all(any(keyword in text for keyword in group) for group in self.require)


@dataclass(frozen=True)
class Lexicon:
    """
    Immutable vocabulary tables.

    Attributes:
        intent_rules: Intent precedence list (first matching rule wins)
        default_intent: Intent used when no rule matches
        synonyms: word -> synonyms (looked up in both directions)
        containers: Container / furniture labels that may hide an item
        spatial_prepositions: Preposition text -> relation name, in extraction order
        stop_words: Words never treated as objects
    """

    intent_rules: Tuple[IntentRule, ...] = ()
    default_intent: str = "find"
    synonyms: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: MappingProxyType({}))
    containers: FrozenSet[str] = frozenset()
    colors: Tuple[str, ...] = ()
    sizes: Tuple[str, ...] = ()
    materials: Tuple[str, ...] = ()
    time_references: Tuple[str, ...] = ()
    location_references: Tuple[str, ...] = ()
    ownership_mine: Tuple[str, ...] = ()
    ownership_others: Tuple[str, ...] = ()
    spatial_prepositions: Tuple[Tuple[str, str], ...] = ()
    stop_words: FrozenSet[str] = frozenset()
    reference_skip_words: FrozenSet[str] = frozenset()
    filler_prefixes: Tuple[str, ...] = ()
    connectors: Tuple[str, ...] = ()
    fallback_location_prepositions: Tuple[str, ...] = ("in", "on", "under", "near")

    def is_synonym(self, word1: str, word2: str) -> bool:
        """Check whether two words are the same or listed as synonyms of each other."""
        a = word1.lower()
        b = word2.lower()
        if a == b:
            return True
        return b in self.synonyms.get(a, ()) or a in self.synonyms.get(b, ())

    def is_container(self, label: str) -> bool:
        return label.lower() in self.containers

    def is_stop_word(self, word: str) -> bool:
        return word.lower() in self.stop_words

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lexicon":
        """
        Build a lexicon from a parsed YAML mapping.

        Args:
            data: Mapping with the keys documented in config/lexicon.yaml

        Returns:
            Lexicon instance

        Raises:
            ValueError: If a section has the wrong shape
        """
        rules = []
        for raw_rule in data.get("intent_rules") or []:
            if not isinstance(raw_rule, dict) or "intent" not in raw_rule:
                raise ValueError(f"Invalid intent rule: {raw_rule!r}")
            groups = raw_rule.get("require") or []
            rules.append(
                IntentRule(
                    intent=str(raw_rule["intent"]),
                    require=tuple(tuple(_lower_all(group)) for group in groups),
                )
            )

        raw_synonyms = data.get("synonyms") or {}
        if not isinstance(raw_synonyms, dict):
            raise ValueError("'synonyms' must be a mapping of word -> list of synonyms")
        synonyms = {
            str(word).lower(): frozenset(_lower_all(values))
            for word, values in raw_synonyms.items()
        }

        raw_preps = data.get("spatial_prepositions") or {}
        if not isinstance(raw_preps, dict):
            raise ValueError("'spatial_prepositions' must be a mapping of preposition -> relation")
        # YAML 1.1 reads a bare `on` key as True
        for key in raw_preps:
            if not isinstance(key, str):
                raise ValueError(f"Spatial preposition keys must be strings, got {key!r} (quote it)")

        ownership = data.get("ownership") or {}

        return cls(
            intent_rules=tuple(rules),
            default_intent=str(data.get("default_intent", "find")),
            synonyms=MappingProxyType(synonyms),
            containers=frozenset(_lower_all(data.get("containers"))),
            colors=tuple(_lower_all(data.get("colors"))),
            sizes=tuple(_lower_all(data.get("sizes"))),
            materials=tuple(_lower_all(data.get("materials"))),
            time_references=tuple(_lower_all(data.get("time_references"))),
            location_references=tuple(_lower_all(data.get("location_references"))),
            ownership_mine=tuple(_lower_all(ownership.get("mine"), strip=False)),
            ownership_others=tuple(_lower_all(ownership.get("others"), strip=False)),
            spatial_prepositions=tuple(
                (prep.lower().strip(), str(relation)) for prep, relation in raw_preps.items()
            ),
            stop_words=frozenset(_lower_all(data.get("stop_words"))),
            reference_skip_words=frozenset(_lower_all(data.get("reference_skip_words"))),
            filler_prefixes=tuple(_lower_all(data.get("filler_prefixes"), strip=False)),
            connectors=tuple(_lower_all(data.get("connectors"), strip=False)),
            fallback_location_prepositions=tuple(
                _lower_all(data.get("fallback_location_prepositions"))
            ) or ("in", "on", "under", "near"),
        )


def _lower_all(values: Optional[Any], strip: bool = True) -> Tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    result = []
    for value in values:
        text = str(value).lower()
        result.append(text.strip() if strip else text)
    return tuple(result)


def load_lexicon(path: Optional[Union[str, Path]] = None) -> Lexicon:
    """
    Load a lexicon from YAML.

    Args:
        path: YAML file (defaults to config/lexicon.yaml)

    Returns:
        Frozen Lexicon

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file content is malformed
    """
    lexicon_path = Path(path) if path is not None else DEFAULT_LEXICON_PATH
    if not lexicon_path.exists():
        raise FileNotFoundError(f"Lexicon file not found: {lexicon_path}")

    with open(lexicon_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Lexicon file must contain a mapping: {lexicon_path}")

    lexicon = Lexicon.from_dict(data)
    logger.debug(
        "Loaded lexicon from %s (%d synonym entries, %d containers)",
        lexicon_path,
        len(lexicon.synonyms),
        len(lexicon.containers),
    )
    return lexicon
