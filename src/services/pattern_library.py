"""
Rhythm Chart Generator - Pattern Library

Canned note sequences injected into dense passages instead of scoring
each note individually:

    - **stair** — walks across the lanes in one direction
    - **trill** — alternates between two lanes
    - **roll**  — sweeps out and back across every lane

The generators are pure: they know nothing about hands or fatigue.  The
caller commits the resulting lanes into its ``ErgonomicPhysics`` state.
"""

from typing import Dict, List, NamedTuple, Tuple


class PatternStep(NamedTuple):
    time: float
    lane: int


# Roll lane cycles per lane count: out to the far edge and back
ROLL_CYCLES: Dict[int, Tuple[int, ...]] = {
    4: (0, 1, 2, 3, 2, 1),
    6: (0, 1, 2, 3, 4, 5, 4, 3, 2, 1),
}


def stair(
    start_time: float,
    count: int,
    interval: float,
    start_lane: int,
    direction: int,
    lane_count: int,
) -> List[PatternStep]:
    """
    Step one lane per note in *direction* (+1 or -1).

    A lane that would fall off the highway is nudged back inside
    (two lanes back from the right edge, to lane 1 from the left) rather
    than clamped, so the pattern keeps visibly moving.
    """
    if lane_count < 2:
        raise ValueError("a stair needs at least two lanes")

    steps: List[PatternStep] = []
    for i in range(count):
        lane = start_lane + i * direction
        while lane >= lane_count or lane < 0:
            if lane >= lane_count:
                lane -= 2
            if lane < 0:
                lane = 1
        steps.append(PatternStep(start_time + i * interval, lane))
    return steps


def trill(
    start_time: float, count: int, interval: float, lane_a: int, lane_b: int
) -> List[PatternStep]:
    """Alternate between *lane_a* and *lane_b*, starting on *lane_a*."""
    return [
        PatternStep(start_time + i * interval, lane_a if i % 2 == 0 else lane_b)
        for i in range(count)
    ]


def roll(
    start_time: float, count: int, interval: float, lane_count: int
) -> List[PatternStep]:
    """Cycle through ``ROLL_CYCLES[lane_count]``."""
    cycle = ROLL_CYCLES.get(lane_count)
    if cycle is None:
        # Out and back across whatever lanes exist
        cycle = tuple(range(lane_count)) + tuple(range(lane_count - 2, 0, -1))
    return [
        PatternStep(start_time + i * interval, cycle[i % len(cycle)])
        for i in range(count)
    ]
