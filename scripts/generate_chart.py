#!/usr/bin/env python3
"""
generate_chart.py — Generate a rhythm-game chart from an onset list

Reads detected onsets (and optionally a song structure) from JSON files,
runs the chart generator and writes the resulting notes plus the
difficulty rating as JSON.

Usage:
    python scripts/generate_chart.py onsets.json
    python scripts/generate_chart.py onsets.json --structure structure.json --difficulty 14
    python scripts/generate_chart.py onsets.json --difficulty EXPERT --lanes 6 --style MULTI
    python scripts/generate_chart.py onsets.json --seed 42 --output chart.json

Input:
    onsets.json     [{"time": 0.5, "energy": 0.8, "isLowFreq": true}, ...]
                    or {"onsets": [...], "duration": 180.0}
    structure.json  {"bpm": 128, "sections": [{"startTime": 0, "endTime": 30, ...}]}

Flags:
    --no-normal / --no-holds / --no-catch   Disable a note class
    --verbose                               Show per-decision debug output
"""

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from loguru import logger

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import (  # noqa: E402
    DEFAULT_DIFFICULTY,
    DEFAULT_LANE_COUNT,
    DEFAULT_PLAY_STYLE,
    SUPPORTED_LANE_COUNTS,
    SUPPORTED_PLAY_STYLES,
)
from src.services.chart_generator import (  # noqa: E402
    GenerationFailure,
    build_chart,
    chart_summary,
)
from src.services.chart_models import ChartFeatures, Onset  # noqa: E402
from src.services.structure_parser import (  # noqa: E402
    default_structure,
    parse_song_structure,
)


def load_onsets(path: Path) -> Tuple[List[Onset], Optional[float]]:
    """Load onsets and, if present, the song duration."""
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    duration = None
    if isinstance(data, dict):
        duration = data.get("duration")
        data = data.get("onsets", [])
    return [Onset.from_dict(o) for o in data], duration


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a rhythm-game chart from detected onsets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("onsets", type=Path, help="JSON file with detected onsets")
    parser.add_argument("--structure", type=Path, help="JSON song structure")
    parser.add_argument(
        "--duration",
        type=float,
        help="Song length in seconds (default: from onsets file or last onset + 1s)",
    )
    parser.add_argument(
        "--difficulty",
        default=str(DEFAULT_DIFFICULTY),
        help="Level 1-20 or EASY/NORMAL/HARD/EXPERT/TITAN",
    )
    parser.add_argument(
        "--lanes", type=int, choices=sorted(SUPPORTED_LANE_COUNTS), default=DEFAULT_LANE_COUNT
    )
    parser.add_argument(
        "--style",
        choices=sorted(SUPPORTED_PLAY_STYLES),
        default=DEFAULT_PLAY_STYLE,
        type=str.upper,
    )
    parser.add_argument("--no-normal", action="store_true", help="Disable plain taps")
    parser.add_argument("--no-holds", action="store_true", help="Disable hold notes")
    parser.add_argument("--no-catch", action="store_true", help="Disable catch notes")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.add_argument("--output", "-o", type=Path, help="Write chart JSON here")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "INFO")

    if not args.onsets.exists():
        logger.error("❌ Onset file not found: {}", args.onsets)
        return 1

    onsets, file_duration = load_onsets(args.onsets)
    duration = args.duration or file_duration
    if not duration:
        duration = (max(o.time for o in onsets) + 1.0) if onsets else 0.0

    if args.structure:
        structure = parse_song_structure(
            args.structure.read_text(encoding="utf-8"), duration=duration
        )
    else:
        structure = default_structure(duration)

    features = ChartFeatures(
        normal=not args.no_normal, holds=not args.no_holds, catch=not args.no_catch
    )
    rng = random.Random(args.seed) if args.seed is not None else None

    try:
        result = build_chart(
            onsets,
            structure,
            duration,
            difficulty=args.difficulty,
            lane_count=args.lanes,
            play_style=args.style,
            features=features,
            rng=rng,
        )
    except GenerationFailure as e:
        logger.error("❌ {}", e)
        return 1

    taps, holds, catches = chart_summary(result.notes)
    logger.info(
        "🎮 {} notes ({} taps, {} holds, {} catches) — rating {:.2f}",
        result.note_count,
        taps,
        holds,
        catches,
        result.difficulty_rating,
    )

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info("💾 Chart written to {}", args.output)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
