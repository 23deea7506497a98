"""
Rhythm Chart Generator - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- Seeded random generators
- Hand-written onset lists for exact scenarios
- A synthetic onset stream (mimicking detector output) for property tests
- Single- and multi-section song structures
"""

import random
from typing import Any, Dict, List

import numpy as np
import pytest

from src.services.chart_models import (
    Flow,
    Focus,
    HandBias,
    MotionDescriptors,
    Onset,
    SectionInfo,
    SectionStyle,
    SectionType,
    SongStructure,
)

# ---------------------------------------------------------------------------
# Builders (importable by tests)
# ---------------------------------------------------------------------------


def make_section(
    start: float = 0.0,
    end: float = 600.0,
    *,
    type: str = "verse",
    intensity: float = 0.8,
    style: str = "stream",
    flow: str = "random",
    hand_bias: str = "balanced",
    focus: str = "melody",
) -> SectionInfo:
    return SectionInfo(
        start_time=start,
        end_time=end,
        type=SectionType(type),
        intensity=intensity,
        style=SectionStyle(style),
        descriptors=MotionDescriptors(
            flow=Flow(flow), hand_bias=HandBias(hand_bias), focus=Focus(focus)
        ),
    )


def make_structure(bpm: float = 120.0, **section_kwargs: Any) -> SongStructure:
    """A single-section structure; keyword args go to ``make_section``."""
    return SongStructure(bpm=bpm, sections=(make_section(**section_kwargs),))


def make_onsets(
    times: List[float], energy: float = 0.9, low: bool = False
) -> List[Onset]:
    return [Onset(time=t, energy=energy, is_low_freq=low) for t in times]


# ---------------------------------------------------------------------------
# Random generators
# ---------------------------------------------------------------------------


@pytest.fixture
def rng() -> random.Random:
    """Seeded generator so chart output is reproducible."""
    return random.Random(1234)


# ---------------------------------------------------------------------------
# Onset fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def three_onsets() -> List[Onset]:
    """Three strong low-frequency hits half a second apart."""
    return make_onsets([0.0, 0.5, 1.0], energy=0.9, low=True)


@pytest.fixture
def dense_run() -> List[Onset]:
    """Six evenly spaced onsets at 16th notes of 60 BPM (0.25 s)."""
    return make_onsets([0.0, 0.25, 0.5, 0.75, 1.0, 1.25], energy=0.9, low=True)


@pytest.fixture
def mock_onset_stream() -> List[Onset]:
    """
    Detector-like output for a 60-second song: ~4 onsets per second with
    random energies and a 30 % share of low-frequency hits.
    """
    rs = np.random.RandomState(42)
    times = np.sort(rs.uniform(0.2, 59.8, 240))
    energies = rs.uniform(0.3, 1.0, len(times))
    low = rs.rand(len(times)) < 0.3
    return [
        Onset(time=float(t), energy=float(e), is_low_freq=bool(lf))
        for t, e, lf in zip(times, energies, low)
    ]


# ---------------------------------------------------------------------------
# Structure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def single_section_structure() -> SongStructure:
    return make_structure(bpm=120.0, end=60.0)


@pytest.fixture
def multi_section_structure() -> SongStructure:
    """Four sections exercising every flow / bias / focus branch."""
    return SongStructure(
        bpm=128.0,
        sections=(
            make_section(
                0.0, 10.0, type="intro", intensity=0.4, style="simple",
                flow="linear", focus="vocal",
            ),
            make_section(
                10.0, 25.0, type="verse", intensity=0.6, style="stream",
                flow="zigzag", hand_bias="alternating",
            ),
            make_section(
                25.0, 40.0, type="chorus", intensity=0.9, style="jump",
                flow="circular", hand_bias="left_heavy", focus="drum",
            ),
            make_section(
                40.0, 60.0, type="drop", intensity=1.0, style="hold",
                flow="slide", hand_bias="right_heavy", focus="vocal",
            ),
        ),
    )


@pytest.fixture
def structure_payload() -> Dict[str, Any]:
    """A structure as returned by the external structuring service."""
    return {
        "bpm": 140,
        "sections": [
            {
                "startTime": 30.0,
                "endTime": 60.0,
                "type": "chorus",
                "intensity": 0.9,
                "style": "jump",
                "descriptors": {
                    "flow": "circular",
                    "hand_bias": "alternating",
                    "focus": "drum",
                    "special_pattern": "burst",
                },
            },
            {
                "startTime": 0.0,
                "endTime": 30.0,
                "type": "intro",
                "intensity": 0.3,
                "style": "simple",
            },
        ],
    }
