"""
Rhythm Chart Generator - Onset Aligner

Regularises near-periodic onset clusters coming out of the upstream
detector so that runs of notes feel rhythmically even.

Detector jitter of a few milliseconds is invisible when listening but
very visible on a scrolling note highway: a stair pattern at 8th notes
looks ragged if every gap differs by 10 ms.  The aligner finds runs of
roughly isochronous onsets and re-spaces each run at its average
interval, anchored on the run's first onset.
"""

from typing import List, Sequence, Tuple

from loguru import logger

from src.services.chart_models import Onset

# Two consecutive gaps within this tolerance belong to the same run
GROUPING_TOLERANCE = 0.02
# A lone onset accepts a tentative second member if it is this close
TENTATIVE_PAIR_GAP = 0.5
# Any gap larger than this always closes a run
MAX_GROUP_GAP = 1.0
# Runs of at least this many onsets are re-spaced
MIN_RUN_LENGTH = 3
# Onsets this close to their predecessor are treated as duplicates
DEDUP_WINDOW = 0.005
# Sweeps stop once no onset moves by more than this
FIXED_POINT_TOLERANCE = 1e-9
MAX_SWEEPS = 32


def _collect_group(ordered: Sequence[Onset], start: int) -> List[Onset]:
    """Greedily grow a run beginning at ``ordered[start]``."""
    group = [ordered[start]]
    j = start + 1
    while j < len(ordered):
        delta = ordered[j].time - ordered[j - 1].time
        if delta > MAX_GROUP_GAP:
            break

        if len(group) > 1:
            prev_delta = group[-1].time - group[-2].time
            if abs(delta - prev_delta) < GROUPING_TOLERANCE:
                group.append(ordered[j])
                j += 1
                continue

        if len(group) == 1 and delta < TENTATIVE_PAIR_GAP:
            group.append(ordered[j])
            j += 1
            continue

        break
    return group


def _respace_group(group: List[Onset]) -> List[Onset]:
    """Re-space a run at its average inter-onset interval."""
    total_delta = sum(group[k].time - group[k - 1].time for k in range(1, len(group)))
    avg_delta = total_delta / (len(group) - 1)
    anchor = group[0].time
    return [onset.with_time(anchor + k * avg_delta) for k, onset in enumerate(group)]


def _align_pass(ordered: Sequence[Onset]) -> Tuple[List[Onset], int]:
    """One grouping + re-spacing + dedup sweep over time-sorted onsets."""
    aligned: List[Onset] = []
    runs = 0

    i = 0
    while i < len(ordered):
        group = _collect_group(ordered, i)
        if len(group) >= MIN_RUN_LENGTH:
            group = _respace_group(group)
            runs += 1
        aligned.extend(group)
        i += len(group)

    result = [
        onset
        for idx, onset in enumerate(aligned)
        if idx == 0 or onset.time > aligned[idx - 1].time + DEDUP_WINDOW
    ]
    return result, runs


def _same_times(a: Sequence[Onset], b: Sequence[Onset]) -> bool:
    return len(a) == len(b) and all(
        abs(x.time - y.time) <= FIXED_POINT_TOLERANCE for x, y in zip(a, b)
    )


def align_onsets(onsets: Sequence[Onset]) -> List[Onset]:
    """
    Quantise near-isochronous onset runs and drop near-duplicates.

    Parameters
    ----------
    onsets : sequence of Onset
        Raw detector output, in any order.

    Returns
    -------
    list of Onset
        Time-sorted onsets.  Runs of three or more roughly evenly spaced
        onsets are re-spaced exactly; shorter groups pass through
        untouched.  An onset landing within 5 ms of its predecessor is
        removed, so the result never has more members than the input.

    Re-spacing a run evens out its last gap, which can pull the next
    onset into the run on another sweep.  Sweeps repeat until nothing
    moves, so aligning the result again returns it unchanged.
    """
    if len(onsets) < 2:
        return list(onsets)

    current = sorted(onsets, key=lambda o: o.time)
    runs = 0
    for sweep in range(1, MAX_SWEEPS + 1):
        aligned, runs = _align_pass(current)
        if _same_times(aligned, current):
            break
        current = aligned
    else:
        logger.warning(
            "⚠️ Onset alignment still moving after {} sweeps, using last result",
            MAX_SWEEPS,
        )

    logger.debug(
        "🎯 Aligned {} onsets → {} ({} rhythmic runs, {} sweeps)",
        len(onsets),
        len(current),
        runs,
        sweep,
    )
    return current
