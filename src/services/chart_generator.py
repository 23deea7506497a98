"""
Rhythm Chart Generator - Chart Generator Service

Turns detected onsets plus a coarse song structure into a playable
lane chart whose density, pattern complexity and chord sizes scale with
a difficulty level (1–20) and a lane count (4 or 6).

Pipeline:

    raw onsets ──► align_onsets ──► generate_notes ──► rate_chart
                                      │
                    difficulty config ┤ ergonomic lane search
                                      └ pattern injection

``generate_notes`` is a greedy single forward pass: each aligned onset is
gated on energy and spacing, then becomes either the start of an
injected pattern (stair / trill / roll), or a chord whose lanes are
chosen by ``ErgonomicPhysics``; single-lane chords may turn into holds
or catch notes depending on the section's style and focus.

All randomness comes from one ``random.Random`` so a seeded run is
reproducible.  The whole pass owns its state; nothing is shared between
calls, so callers that offload work must move the entire call.
"""

import random
from dataclasses import dataclass
from typing import AbstractSet, Any, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from src.config import (
    DEFAULT_DIFFICULTY,
    DEFAULT_LANE_COUNT,
    DEFAULT_PLAY_STYLE,
    ENFORCE_COST_CEILING,
    GENERATOR_SEED,
    JACK_FRIENDLY_STYLES,
    SUPPORTED_LANE_COUNTS,
)
from src.services.chart_models import (
    ChartFeatures,
    Flow,
    Focus,
    MotionDescriptors,
    Note,
    NoteType,
    Onset,
    PlayStyle,
    SectionInfo,
    SectionStyle,
    SongStructure,
)
from src.services.chart_validator import assert_chart_invariants
from src.services.difficulty_profile import (
    DifficultyConfig,
    get_difficulty_config,
    resolve_difficulty,
)
from src.services.difficulty_rating import rate_chart
from src.services.ergonomics import ErgonomicPhysics
from src.services.onset_aligner import align_onsets
from src.services.pattern_library import PatternStep, roll, stair, trill

# ---------------------------------------------------------------------------
# Generation constants
# ---------------------------------------------------------------------------

# Section energy gate: (BASE + (1 - intensity) * SPAN) * threshold_multiplier
ENERGY_GATE_BASE = 0.05
ENERGY_GATE_SPAN = 0.2

# Patterns need this many onsets after the current one
PATTERN_LOOKAHEAD = 3
# Patterns are only injected when the local interval is below this
PATTERN_MAX_INTERVAL = 0.4
# ... and at least this fraction of the minimum gap
PATTERN_MIN_GAP_RATIO = 0.8
STAIR_LENGTH = 4
TRILL_LENGTH = 4
ROLL_LENGTH = 6
TRILL_MAX_SPAN = 2

# Polyphony triggers
HEAVY_HIT_ENERGY = 0.9
DRUM_FOCUS_ENERGY = 0.8
TRIPLE_ENERGY = 0.95
TRIPLE_MIN_LEVEL = 18
THUMB_MAX_CHORD = 2

# Holds
HOLD_STYLES = {SectionStyle.HOLD, SectionStyle.SIMPLE}
HOLD_RELEASE_GAP = 0.1  # seconds kept free before the next onset
HOLD_MAX_LENGTH = 0.5
HOLD_MIN_ROOM = 0.2

# Catches
CATCH_ENERGY = 0.8
CATCH_CHANCE = 0.25

# Stand-in for "no next onset"
NO_NEXT_ONSET = 9999.0


class GenerationFailure(RuntimeError):
    """Generation produced no notes (input too sparse for the parameters)."""

    def __init__(self, difficulty: float, onset_count: int):
        self.difficulty = difficulty
        self.onset_count = onset_count
        super().__init__(
            f"No notes generated from {onset_count} onsets at difficulty "
            f"{difficulty:.1f}; try a higher difficulty or check the audio"
        )


@dataclass
class ChartResult:
    """A finished chart plus the figures the host application stores."""

    notes: List[Note]
    difficulty_rating: float
    difficulty_level: float
    lane_count: int
    play_style: PlayStyle

    @property
    def note_count(self) -> int:
        return len(self.notes)

    @property
    def hold_count(self) -> int:
        return sum(1 for n in self.notes if n.is_hold)

    @property
    def catch_count(self) -> int:
        return sum(1 for n in self.notes if n.type is NoteType.CATCH)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notes": [n.to_dict() for n in self.notes],
            "difficultyRating": self.difficulty_rating,
            "difficultyLevel": self.difficulty_level,
            "laneCount": self.lane_count,
            "playStyle": self.play_style.value,
            "noteCount": self.note_count,
            "holdCount": self.hold_count,
            "catchCount": self.catch_count,
        }


# ---------------------------------------------------------------------------
# Per-onset decisions
# ---------------------------------------------------------------------------
def _energy_threshold(section: SectionInfo, config: DifficultyConfig) -> float:
    base = ENERGY_GATE_BASE + (1.0 - section.intensity) * ENERGY_GATE_SPAN
    return base * config.threshold_multiplier


def _pattern_for_flow(
    flow: Flow,
    start_time: float,
    interval: float,
    remaining: int,
    lane_count: int,
    rng: random.Random,
) -> List[PatternStep]:
    """Generate the pattern matching *flow*, or ``[]`` if it has none."""
    if flow is Flow.LINEAR:
        direction = 1 if rng.random() > 0.5 else -1
        start_lane = 0 if direction == 1 else lane_count - 1
        length = min(STAIR_LENGTH, remaining)
        return stair(start_time, length, interval, start_lane, direction, lane_count)

    if flow in (Flow.ZIGZAG, Flow.RANDOM):
        length = min(TRILL_LENGTH, remaining)
        lane_a = rng.randrange(lane_count)
        lane_b = rng.randrange(lane_count)
        while lane_b == lane_a or abs(lane_b - lane_a) > TRILL_MAX_SPAN:
            lane_b = rng.randrange(lane_count)
        return trill(start_time, length, interval, lane_a, lane_b)

    if flow is Flow.CIRCULAR:
        length = min(ROLL_LENGTH, remaining)
        return roll(start_time, length, interval, lane_count)

    return []


def _chord_size(
    onset: Onset,
    descriptors: MotionDescriptors,
    level: float,
    config: DifficultyConfig,
    play_style: PlayStyle,
) -> int:
    """How many simultaneous notes this onset deserves."""
    size = 1
    if config.max_polyphony > 1:
        heavy_hit = onset.energy > HEAVY_HIT_ENERGY and onset.is_low_freq
        if heavy_hit or (
            descriptors.focus is Focus.DRUM and onset.energy > DRUM_FOCUS_ENERGY
        ):
            size = 2
        if level >= TRIPLE_MIN_LEVEL and onset.energy > TRIPLE_ENERGY:
            size = 3

    size = min(size, config.max_polyphony)
    if play_style is PlayStyle.THUMB and level < TRIPLE_MIN_LEVEL:
        size = min(size, THUMB_MAX_CHORD)
    return size


def _hold_duration(
    onset: Onset,
    next_time: float,
    section: SectionInfo,
    bpm: float,
    chord_size: int,
    features: ChartFeatures,
) -> float:
    """Length of the hold for this onset, or 0.0 for a tap."""
    can_hold = (
        features.holds
        and section.descriptors.focus is Focus.VOCAL
        and section.style in HOLD_STYLES
        and chord_size == 1
    )
    if not can_hold:
        return 0.0

    room = next_time - onset.time - HOLD_RELEASE_GAP
    if room <= HOLD_MIN_ROOM:
        return 0.0
    return min(room, min(HOLD_MAX_LENGTH, 60.0 / bpm))


def _is_catch(
    onset: Onset,
    duration: float,
    section: SectionInfo,
    chord_size: int,
    features: ChartFeatures,
    rng: random.Random,
) -> bool:
    if not features.catch or duration != 0:
        return False
    flow = section.descriptors.flow
    if flow is Flow.CIRCULAR or (onset.energy > CATCH_ENERGY and chord_size == 1):
        return rng.random() < CATCH_CHANCE
    return False


def _coerce_play_style(play_style: Union[PlayStyle, str]) -> PlayStyle:
    try:
        return PlayStyle(str(getattr(play_style, "value", play_style)).upper())
    except ValueError:
        raise ValueError(
            f"Unsupported play style {play_style!r} (expected THUMB or MULTI)"
        ) from None


def _check_lane_count(lane_count: int) -> None:
    if lane_count not in SUPPORTED_LANE_COUNTS:
        raise ValueError(
            f"Unsupported lane count {lane_count} "
            f"(expected one of {sorted(SUPPORTED_LANE_COUNTS)})"
        )


# ---------------------------------------------------------------------------
# Main generation pass
# ---------------------------------------------------------------------------
def generate_notes(
    onsets: Sequence[Onset],
    structure: SongStructure,
    difficulty: Union[int, float, str] = DEFAULT_DIFFICULTY,
    lane_count: int = DEFAULT_LANE_COUNT,
    play_style: Union[PlayStyle, str] = DEFAULT_PLAY_STYLE,
    features: Optional[ChartFeatures] = None,
    rng: Optional[random.Random] = None,
    enforce_cost_ceiling: bool = ENFORCE_COST_CEILING,
    jack_friendly_styles: AbstractSet[str] = JACK_FRIENDLY_STYLES,
) -> List[Note]:
    """
    Generate a chart from raw onsets.

    Parameters
    ----------
    onsets : sequence of Onset
        Detector output; aligned and sorted internally.
    structure : SongStructure
        Tempo and sections.  Onsets outside every section use the first.
    difficulty : number or str
        Level 1–20 (clamped) or a legacy tier name (EASY … TITAN).
    lane_count : int
        4 or 6.
    play_style : PlayStyle or str
        THUMB limits chords to two notes below level 18.
    features : ChartFeatures, optional
        Note-class toggles.  With every class disabled nothing is emitted.
    rng : random.Random, optional
        Source of all random decisions.  Pass a seeded instance for
        reproducible charts.
    enforce_cost_ceiling : bool
        Skip chords whose best ergonomic cost exceeds the level's ceiling.
    jack_friendly_styles : set of str
        Section styles in which fast same-lane repeats are permitted.

    Returns
    -------
    list of Note
        Notes in non-decreasing time order; chord members share a time.
    """
    _check_lane_count(lane_count)
    style = _coerce_play_style(play_style)
    features = features or ChartFeatures()
    rng = rng or random.Random(GENERATOR_SEED)

    if not features.any_enabled:
        logger.warning("⚠️ Every note class is disabled — nothing to generate")
        return []

    level = resolve_difficulty(difficulty)
    config = get_difficulty_config(level)
    aligned = align_onsets(onsets)
    physics = ErgonomicPhysics(lane_count, rng, jack_friendly_styles)

    notes: List[Note] = []
    last_generated = -10.0
    patterns = 0
    skipped: Dict[str, int] = {"energy": 0, "spacing": 0, "cost": 0}

    i = 0
    while i < len(aligned):
        onset = aligned[i]
        section = structure.section_at(onset.time)
        desc = section.descriptors
        physics.set_bias(desc.hand_bias)

        if onset.energy < _energy_threshold(section, config):
            skipped["energy"] += 1
            i += 1
            continue

        if onset.time - last_generated < config.min_gap:
            skipped["spacing"] += 1
            i += 1
            continue

        # --- pattern injection ---
        can_pattern = (
            features.normal
            and rng.random() < config.pattern_chance
            and i + PATTERN_LOOKAHEAD < len(aligned)
        )
        if can_pattern:
            interval = aligned[i + 1].time - onset.time
            if config.min_gap * PATTERN_MIN_GAP_RATIO <= interval < PATTERN_MAX_INTERVAL:
                steps = _pattern_for_flow(
                    desc.flow, onset.time, interval, len(aligned) - i, lane_count, rng
                )
                if steps:
                    for step in steps:
                        physics.commit([step.lane], step.time)
                        notes.append(Note(time=step.time, lane=step.lane))
                        last_generated = step.time
                    logger.debug(
                        "🎼 {} pattern at {:.3f}s ({} notes, {:.0f} ms apart)",
                        desc.flow.value,
                        onset.time,
                        len(steps),
                        interval * 1000,
                    )
                    patterns += 1
                    i += len(steps)
                    continue

        # --- standard chord emission ---
        chord_size = _chord_size(onset, desc, level, config, style)
        lanes = physics.get_best_lanes(
            chord_size,
            onset.time,
            config.allowed_cost,
            section.style.value,
            enforce_ceiling=enforce_cost_ceiling,
        )
        if not lanes:
            skipped["cost"] += 1
            i += 1
            continue

        next_time = aligned[i + 1].time if i + 1 < len(aligned) else NO_NEXT_ONSET
        emitted = False
        for lane in lanes:
            duration = _hold_duration(
                onset, next_time, section, structure.bpm, len(lanes), features
            )
            if _is_catch(onset, duration, section, len(lanes), features, rng):
                note_type = NoteType.CATCH
            elif duration > 0 or features.normal:
                note_type = NoteType.NORMAL
            else:
                # plain taps are switched off
                continue
            notes.append(
                Note(time=onset.time, lane=lane, type=note_type, duration=duration)
            )
            emitted = True

        if emitted:
            last_generated = onset.time
        i += 1

    logger.info(
        "✅ Chart generated: {} notes from {} onsets "
        "(level {:.1f}, {}K {}, {} patterns; skipped energy={} spacing={} cost={})",
        len(notes),
        len(aligned),
        level,
        lane_count,
        style.value,
        patterns,
        skipped["energy"],
        skipped["spacing"],
        skipped["cost"],
    )
    return notes


# ---------------------------------------------------------------------------
# End-to-end pipeline
# ---------------------------------------------------------------------------
def build_chart(
    onsets: Sequence[Onset],
    structure: SongStructure,
    duration: float,
    difficulty: Union[int, float, str] = DEFAULT_DIFFICULTY,
    lane_count: int = DEFAULT_LANE_COUNT,
    play_style: Union[PlayStyle, str] = DEFAULT_PLAY_STYLE,
    features: Optional[ChartFeatures] = None,
    rng: Optional[random.Random] = None,
    **kwargs: Any,
) -> ChartResult:
    """
    Generate, check and rate a chart in one call.

    Raises
    ------
    GenerationFailure
        The generator produced no notes.  Retrying with the same inputs
        is pointless; regenerate with different parameters instead.
    ChartInvariantError
        The generated chart is malformed (a generator bug).
    """
    level = resolve_difficulty(difficulty)
    notes = generate_notes(
        onsets,
        structure,
        difficulty=level,
        lane_count=lane_count,
        play_style=play_style,
        features=features,
        rng=rng,
        **kwargs,
    )
    if not notes:
        raise GenerationFailure(level, len(onsets))

    assert_chart_invariants(notes, lane_count)
    rating = rate_chart(notes, duration)

    logger.info(
        "⭐ Chart rated {:.2f} ({} notes over {:.1f}s)", rating, len(notes), duration
    )
    return ChartResult(
        notes=notes,
        difficulty_rating=rating,
        difficulty_level=level,
        lane_count=lane_count,
        play_style=_coerce_play_style(play_style),
    )


def chart_summary(notes: Sequence[Note]) -> Tuple[int, int, int]:
    """Return ``(taps, holds, catches)`` counts for a note list."""
    holds = sum(1 for n in notes if n.is_hold)
    catches = sum(1 for n in notes if n.type is NoteType.CATCH)
    return len(notes) - holds - catches, holds, catches
