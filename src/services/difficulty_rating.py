"""
Rhythm Chart Generator - Difficulty Rating

Post-hoc, strain-based estimate of how hard a finished chart is, used
for sorting and display.  Independent of the generator: it only looks at
note times and lanes.

The chart is cut into fixed 0.4 s sections.  Every note adds strain
inversely proportional to the gap since the previous note, with a 1.5x
surcharge for same-lane repeats (jacks).  The hardest sections dominate
through a geometrically decaying weighted sum, which is then compressed
onto a human-friendly scale.
"""

import math
from typing import Dict, List, Sequence

import numpy as np

from src.services.chart_models import Note

SECTION_LENGTH = 0.4
MIN_NOTE_DELTA = 0.05
JACK_MULTIPLIER = 1.5
TOP_SECTIONS = 30
SECTION_DECAY = 0.9
RATING_SCALE = 0.03
RATING_FACTOR = 2.1
MIN_RATING = 1.0


def _section_index(time: float) -> int:
    # A note on a boundary belongs to the section it closes
    return max(0, math.ceil(time / SECTION_LENGTH) - 1)


def _section_strains(notes: Sequence[Note]) -> List[float]:
    """
    Strain per non-empty section.  Sections without notes carry zero
    strain and add nothing to the weighted sum, so they are left out.
    """
    ordered = sorted(notes, key=lambda n: n.time)
    sections: Dict[int, float] = {}
    previous_time = 0.0
    previous_lane = -1

    for note in ordered:
        if not math.isfinite(note.time):
            raise ValueError(f"Note time must be finite, got {note.time!r}")

        strain = 1.0 / max(note.time - previous_time, MIN_NOTE_DELTA)
        if note.lane == previous_lane:
            strain *= JACK_MULTIPLIER
        index = _section_index(note.time)
        sections[index] = sections.get(index, 0.0) + strain

        previous_time = note.time
        previous_lane = note.lane

    return list(sections.values())


def rate_chart(notes: Sequence[Note], duration: float) -> float:
    """
    Rate a chart.  Returns 0 for an empty chart or zero duration,
    otherwise a value of at least 1.  Raises ValueError for a note
    with a non-finite time.
    """
    if not notes or duration == 0:
        return 0.0

    strains = np.sort(np.asarray(_section_strains(notes), dtype=float))[::-1]
    top = strains[:TOP_SECTIONS]
    weights = SECTION_DECAY ** np.arange(len(top))
    weighted = float(np.dot(top, weights))

    return max(MIN_RATING, math.sqrt(weighted * RATING_SCALE) * RATING_FACTOR)


def performance_rating(difficulty_rating: float, accuracy: float) -> float:
    """
    Player performance value for clearing a chart at *accuracy* (0..1).

    Below 80 % accuracy nothing counts.  At 98 % and above the player
    earns the chart's full rating (plus a small bonus from 99 %);
    in between the reward falls off quadratically.
    """
    if accuracy < 0.8:
        return 0.0

    if accuracy >= 0.99:
        rating = difficulty_rating + (accuracy - 0.99) * 2
    elif accuracy >= 0.98:
        rating = difficulty_rating
    else:
        factor = ((accuracy - 0.8) / 0.18) ** 2
        rating = difficulty_rating * factor * 0.9

    return max(0.0, round(rating, 2))
