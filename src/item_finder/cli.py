"""
Command line entry point.

Usage:
    item-finder parse "find my red keys near the couch"
    item-finder replay recording.json --query "where is my phone"
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .finder_config import FinderConfig
from .lexicon import load_lexicon
from .perception.detection_source import detections_from_dicts
from .query.query_parser import QueryParser
from .session.session_controller import SessionController
from .utils.logging_utils import configure_logging


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="item-finder",
        description="Parse item search queries and replay recorded detections",
    )
    parser.add_argument("--config", type=Path, help="YAML file with FinderConfig overrides")
    parser.add_argument("--lexicon", type=Path, help="Lexicon YAML (defaults to config/lexicon.yaml)")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Print the parsed search intent as JSON")
    parse_cmd.add_argument("query", help="Query text")

    replay_cmd = subparsers.add_parser("replay", help="Feed recorded frames through a search session")
    replay_cmd.add_argument("frames", type=Path, help="JSON file with recorded frames")
    replay_cmd.add_argument("--query", required=True, help="Query text")
    replay_cmd.add_argument("--snapshot", type=Path, help="Write a session snapshot JSON here")

    return parser


def load_frames(path: Path) -> List[dict]:
    """
    Read recorded frames.

    Accepts either a list of frames or ``{"frames": [...]}``; each frame is
    ``{"timestamp": float, "detections": [...]}``.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    frames = data.get("frames", []) if isinstance(data, dict) else data
    if not isinstance(frames, list):
        raise ValueError(f"No frame list found in {path}")
    return frames


def _load_config(args: argparse.Namespace) -> FinderConfig:
    config = FinderConfig.from_yaml(args.config) if args.config else FinderConfig()
    config = config.with_env_overrides()
    if args.lexicon:
        config = FinderConfig.from_dict({**config.to_dict(), "lexicon_path": args.lexicon})
    return config


def run_parse(args: argparse.Namespace, config: FinderConfig) -> int:
    parser = QueryParser(lexicon=load_lexicon(config.lexicon_path), config=config)
    intent = parser.parse(args.query)
    print(json.dumps(intent.to_dict(), indent=2))
    print(intent.describe(), file=sys.stderr)
    return 0


def run_replay(args: argparse.Namespace, config: FinderConfig) -> int:
    frames = load_frames(args.frames)
    controller = SessionController(config=config)
    intent = controller.set_query(args.query)
    print(f"Query: {intent.describe()}")

    for index, frame in enumerate(frames):
        timestamp = float(frame.get("timestamp", index / 30.0))
        detections = detections_from_dicts(frame.get("detections", []))
        results = controller.submit_frame(detections, timestamp=timestamp) or []

        print(f"\nFrame {index} @ {timestamp:.2f}s: {len(results)} result(s)")
        for result in results:
            anchor = " [anchored]" if result.is_anchored else ""
            print(f"  {result.match_score:.2f}  {result.describe()}{anchor}")

    if args.snapshot:
        controller.save_to_json(args.snapshot, include_timestamp=False)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    config = _load_config(args)

    if args.command == "parse":
        return run_parse(args, config)
    return run_replay(args, config)


if __name__ == "__main__":
    sys.exit(main())
