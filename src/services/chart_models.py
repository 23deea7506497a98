"""
Rhythm Chart Generator - Chart Data Model

Plain data containers shared by every stage of the chart pipeline:

    - ``Onset``          — a detected transient (input from the DSP stage)
    - ``SectionInfo``    — one structural section with its stylistic intent
    - ``SongStructure``  — tempo plus the ordered list of sections
    - ``ChartFeatures``  — toggles gating whole note classes
    - ``Note``           — one lane-assigned note of the finished chart

The wire shape used by the host application is camelCase
(``isLowFreq``, ``startTime``, ``isHolding`` …); the ``to_dict`` /
``from_dict`` helpers translate to and from that shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SectionType(str, Enum):
    INTRO = "intro"
    VERSE = "verse"
    CHORUS = "chorus"
    BUILD = "build"
    DROP = "drop"
    OUTRO = "outro"


class SectionStyle(str, Enum):
    """Note-placement preference for a section."""

    STREAM = "stream"
    JUMP = "jump"
    HOLD = "hold"
    SIMPLE = "simple"


class Flow(str, Enum):
    """Preferred lane motion; selects the injected pattern shape."""

    LINEAR = "linear"
    ZIGZAG = "zigzag"
    CIRCULAR = "circular"
    RANDOM = "random"
    SLIDE = "slide"


class HandBias(str, Enum):
    ALTERNATING = "alternating"
    LEFT_HEAVY = "left_heavy"
    RIGHT_HEAVY = "right_heavy"
    BALANCED = "balanced"


class Focus(str, Enum):
    """Which layer of the music a section's notes should follow."""

    VOCAL = "vocal"
    DRUM = "drum"
    MELODY = "melody"
    BASS = "bass"


class SpecialPattern(str, Enum):
    BURST = "burst"
    FILL = "fill"
    NONE = "none"


class NoteType(str, Enum):
    NORMAL = "NORMAL"
    CATCH = "CATCH"


class PlayStyle(str, Enum):
    """THUMB caps chords at two notes below level 18; MULTI is unlimited."""

    THUMB = "THUMB"
    MULTI = "MULTI"


# ---------------------------------------------------------------------------
# Input data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Onset:
    """A detected transient: timestamp (s), energy 0..1, low-frequency flag."""

    time: float
    energy: float
    is_low_freq: bool = False

    def with_time(self, time: float) -> Onset:
        return Onset(time=time, energy=self.energy, is_low_freq=self.is_low_freq)

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.time, "energy": self.energy, "isLowFreq": self.is_low_freq}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Onset:
        low = data.get("isLowFreq", data.get("is_low_freq", False))
        return cls(
            time=float(data["time"]),
            energy=float(data.get("energy", 0.0)),
            is_low_freq=bool(low),
        )


@dataclass(frozen=True)
class MotionDescriptors:
    """Per-section hints describing how the notes should move and feel."""

    flow: Flow = Flow.RANDOM
    hand_bias: HandBias = HandBias.BALANCED
    focus: Focus = Focus.MELODY
    special_pattern: SpecialPattern = SpecialPattern.NONE

    def to_dict(self) -> dict[str, str]:
        return {
            "flow": self.flow.value,
            "hand_bias": self.hand_bias.value,
            "focus": self.focus.value,
            "special_pattern": self.special_pattern.value,
        }


@dataclass(frozen=True)
class SectionInfo:
    """One structural section covering ``[start_time, end_time)``."""

    start_time: float
    end_time: float
    type: SectionType = SectionType.VERSE
    intensity: float = 0.8
    style: SectionStyle = SectionStyle.STREAM
    descriptors: MotionDescriptors = field(default_factory=MotionDescriptors)

    def contains(self, t: float) -> bool:
        return self.start_time <= t < self.end_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "type": self.type.value,
            "intensity": self.intensity,
            "style": self.style.value,
            "descriptors": self.descriptors.to_dict(),
        }


@dataclass(frozen=True)
class SongStructure:
    """Tempo plus time-ordered sections.  ``sections`` must be non-empty."""

    bpm: float
    sections: tuple[SectionInfo, ...]

    def __post_init__(self) -> None:
        if self.bpm <= 0:
            raise ValueError(f"bpm must be positive, got {self.bpm}")
        if not self.sections:
            raise ValueError("a song structure needs at least one section")

    def section_at(self, t: float) -> SectionInfo:
        """Return the first section containing *t*, else the first section."""
        for section in self.sections:
            if section.contains(t):
                return section
        return self.sections[0]

    def to_dict(self) -> dict[str, Any]:
        return {"bpm": self.bpm, "sections": [s.to_dict() for s in self.sections]}


@dataclass(frozen=True)
class ChartFeatures:
    """Toggles for whole note classes: plain taps, holds and catches."""

    normal: bool = True
    holds: bool = True
    catch: bool = True

    @property
    def any_enabled(self) -> bool:
        return self.normal or self.holds or self.catch

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChartFeatures:
        if not data:
            return cls()
        return cls(
            normal=bool(data.get("normal", True)),
            holds=bool(data.get("holds", True)),
            catch=bool(data.get("catch", True)),
        )


# ---------------------------------------------------------------------------
# Output data
# ---------------------------------------------------------------------------


def make_note_id(time: float, lane: int) -> str:
    return f"note-{time:.3f}-{lane}"


@dataclass
class Note:
    """
    One note of a chart.

    ``duration`` is 0 for a tap and positive for a hold.  ``hit``,
    ``visible`` and ``is_holding`` belong to the game loop; the generator
    only ever writes their initial values.
    """

    time: float
    lane: int
    type: NoteType = NoteType.NORMAL
    duration: float = 0.0
    id: str = ""
    hit: bool = False
    visible: bool = True
    is_holding: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            self.id = make_note_id(self.time, self.lane)

    @property
    def is_hold(self) -> bool:
        return self.duration > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "time": self.time,
            "lane": self.lane,
            "type": self.type.value,
            "duration": self.duration,
            "hit": self.hit,
            "visible": self.visible,
            "isHolding": self.is_holding,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        return cls(
            time=float(data["time"]),
            lane=int(data["lane"]),
            type=NoteType(str(data.get("type", "NORMAL")).upper()),
            duration=float(data.get("duration", 0.0)),
            id=str(data.get("id", "")),
            hit=bool(data.get("hit", False)),
            visible=bool(data.get("visible", True)),
            is_holding=bool(data.get("isHolding", data.get("is_holding", False))),
        )
