"""
Rhythm Chart Generator - Difficulty Profile

Maps a continuous difficulty level (1–20) to the parameters that drive
chart generation: how quiet an onset may be and still become a note,
how close notes may be, how many may sound together, how awkward a
hand motion is tolerated, and how often canned patterns are injected.

Level 1 is a sparse, slow chart; level 20 admits almost every onset at
up to 50 notes per second.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Union

from loguru import logger

from src.utils import clamp, lerp

MIN_LEVEL = 1.0
MAX_LEVEL = 20.0
DEFAULT_LEVEL = 10.0

# Five-tier names used by older saved songs and API clients
LEGACY_DIFFICULTY_TIERS: Dict[str, float] = {
    "easy": 3,
    "normal": 8,
    "hard": 12,
    "expert": 16,
    "titan": 20,
}


@dataclass(frozen=True)
class DifficultyConfig:
    """Generation parameters derived from a difficulty level."""

    threshold_multiplier: float  # scales the per-section energy gate
    min_gap: float  # seconds between generated note events
    max_polyphony: int  # 1..4 simultaneous notes
    allowed_cost: float  # ergonomic cost ceiling
    pattern_chance: float  # 0..1 probability of a pattern attempt

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _max_polyphony(level: float) -> int:
    if level < 5:
        return 1
    if level < 10:
        return 2
    if level < 16:
        return 3
    return 4


def get_difficulty_config(level: float) -> DifficultyConfig:
    """
    Return the generation parameters for *level*.

    Total over all reals: the level is clamped to ``[1, 20]`` first.
    ``min_gap`` interpolates on ``t ** 0.7`` so that mid levels (≈10)
    already feel noticeably faster than a straight line would give.
    """
    lvl = clamp(float(level), MIN_LEVEL, MAX_LEVEL)
    t = (lvl - MIN_LEVEL) / (MAX_LEVEL - MIN_LEVEL)

    return DifficultyConfig(
        threshold_multiplier=lerp(2.0, 0.15, t),
        min_gap=lerp(0.40, 0.02, t**0.7),
        max_polyphony=_max_polyphony(lvl),
        allowed_cost=lerp(1.5, 30.0, t),
        pattern_chance=lerp(0.1, 1.0, t),
    )


def resolve_difficulty(value: Union[int, float, str, None]) -> float:
    """
    Normalise a caller-supplied difficulty to a numeric level.

    Accepts a number, a numeric string, or one of the legacy tier names
    (EASY / NORMAL / HARD / EXPERT / TITAN).  Numbers are clamped to the
    supported range; unknown names fall back to the default level.
    """
    if value is None:
        return DEFAULT_LEVEL

    if isinstance(value, bool):
        raise TypeError("difficulty must be a number or tier name, not bool")

    if isinstance(value, (int, float)):
        return clamp(float(value), MIN_LEVEL, MAX_LEVEL)

    # Enum members (str subclasses) and plain strings
    raw = getattr(value, "value", value)
    text = str(raw).strip().lower()

    if text in LEGACY_DIFFICULTY_TIERS:
        return float(LEGACY_DIFFICULTY_TIERS[text])

    try:
        return clamp(float(text), MIN_LEVEL, MAX_LEVEL)
    except ValueError:
        logger.warning(
            "⚠️ Unknown difficulty '{}', using level {:.0f}", value, DEFAULT_LEVEL
        )
        return DEFAULT_LEVEL
