"""
Rhythm Chart Generator - Onset Aligner Tests

Tests for src/services/onset_aligner.py. Validates:
- Trivial inputs (empty, single onset) pass through
- Output is time-sorted regardless of input order
- Jittered isochronous runs are re-spaced at their average interval
- Pairs and isolated onsets are left untouched
- Gaps over one second always close a run
- Near-duplicate onsets (< 5 ms apart) are dropped
- Energies and low-frequency flags survive re-spacing
- Aligning twice gives the same result as aligning once, including runs
  that only form after a first re-spacing
"""

from __future__ import annotations

import pytest

from src.services.chart_models import Onset
from src.services.onset_aligner import DEDUP_WINDOW, align_onsets
from tests.conftest import make_onsets


def _times(onsets):
    return [o.time for o in onsets]


class TestTrivialInputs:
    """Inputs too small to group."""

    def test_empty(self):
        assert align_onsets([]) == []

    def test_single_onset_unchanged(self):
        onset = Onset(time=1.234, energy=0.5)
        assert align_onsets([onset]) == [onset]

    def test_returns_list(self):
        assert isinstance(align_onsets(tuple(make_onsets([0.0]))), list)


class TestOrdering:
    """Output order and size."""

    def test_unsorted_input_is_sorted(self):
        result = align_onsets(make_onsets([3.0, 0.0, 1.5]))
        assert _times(result) == [0.0, 1.5, 3.0]

    def test_never_grows(self, mock_onset_stream):
        result = align_onsets(mock_onset_stream)
        assert len(result) <= len(mock_onset_stream)

    def test_stream_is_sorted(self, mock_onset_stream):
        times = _times(align_onsets(mock_onset_stream))
        assert times == sorted(times)


class TestRunRespacing:
    """Near-isochronous runs snap onto an even grid."""

    def test_jittered_run_is_evened_out(self):
        raw = make_onsets([0.0, 0.251, 0.498, 0.752, 1.0])
        result = align_onsets(raw)
        assert _times(result) == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0])

    def test_run_anchored_on_first_onset(self):
        raw = make_onsets([10.0, 10.21, 10.405, 10.6])
        result = align_onsets(raw)
        assert result[0].time == 10.0
        assert _times(result) == pytest.approx([10.0, 10.2, 10.4, 10.6])

    def test_pair_passes_through(self):
        raw = make_onsets([0.0, 0.3, 5.0])
        assert _times(align_onsets(raw)) == [0.0, 0.3, 5.0]

    def test_large_gap_splits_runs(self):
        raw = make_onsets([0.0, 0.2, 0.4, 2.0, 2.2, 2.4])
        result = align_onsets(raw)
        assert _times(result) == pytest.approx([0.0, 0.2, 0.4, 2.0, 2.2, 2.4])

    def test_irregular_gap_ends_run(self):
        # 0.25, 0.25 then 0.4: the third gap is outside tolerance
        raw = make_onsets([0.0, 0.25, 0.5, 0.9])
        result = align_onsets(raw)
        assert _times(result) == pytest.approx([0.0, 0.25, 0.5, 0.9])

    def test_payload_survives_respacing(self):
        raw = [
            Onset(0.0, 0.1, False),
            Onset(0.255, 0.5, True),
            Onset(0.5, 0.9, False),
        ]
        result = align_onsets(raw)
        assert [o.energy for o in result] == [0.1, 0.5, 0.9]
        assert [o.is_low_freq for o in result] == [False, True, False]


class TestDeduplication:
    """Onsets within the dedup window of their predecessor are removed."""

    def test_near_duplicate_dropped(self):
        raw = make_onsets([1.0, 1.003, 2.0, 3.5])
        assert _times(align_onsets(raw)) == [1.0, 2.0, 3.5]

    def test_onsets_just_outside_window_kept(self):
        raw = make_onsets([1.0, 1.0 + DEDUP_WINDOW * 2, 3.0])
        assert len(align_onsets(raw)) == 3

    def test_no_neighbours_within_window(self, mock_onset_stream):
        times = _times(align_onsets(mock_onset_stream))
        for a, b in zip(times, times[1:]):
            assert b - a > DEDUP_WINDOW


class TestIdempotence:
    """Aligning already-aligned output changes nothing."""

    @pytest.mark.parametrize(
        "times",
        [
            [0.0, 0.251, 0.498, 0.752, 1.0],
            [0.0, 0.2, 0.4, 2.0, 2.2, 2.4],
            [1.0, 1.003, 2.0, 3.5],
            [0.0, 0.3, 5.0],
        ],
    )
    def test_align_twice(self, times):
        once = align_onsets(make_onsets(times))
        twice = align_onsets(once)
        assert _times(twice) == pytest.approx(_times(once))

    def test_respaced_run_absorbs_next_onset(self):
        # Evening out the first four leaves a 0.115 s gap before the last
        # gap of 0.1, which then joins the run as well.
        raw = make_onsets([0.0, 0.1, 0.215, 0.345, 0.445])
        once = align_onsets(raw)
        assert _times(once) == pytest.approx([0.0, 0.11125, 0.2225, 0.33375, 0.445])
        assert _times(align_onsets(once)) == pytest.approx(_times(once))

    def test_stream_aligns_twice_to_same_result(self, mock_onset_stream):
        once = align_onsets(mock_onset_stream)
        twice = align_onsets(once)
        assert len(twice) == len(once)
        assert _times(twice) == pytest.approx(_times(once))
