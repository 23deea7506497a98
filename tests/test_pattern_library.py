"""
Rhythm Chart Generator - Pattern Library Tests

Tests for src/services/pattern_library.py. Validates:
- Stairs step one lane per note and fold back inside the highway
- Trills alternate between exactly two lanes
- Rolls follow the out-and-back cycle for 4 and 6 lanes
- All patterns space their notes at the requested interval
"""

from __future__ import annotations

import pytest

from src.services.pattern_library import ROLL_CYCLES, PatternStep, roll, stair, trill


def _lanes(steps):
    return [s.lane for s in steps]


class TestStair:
    def test_ascending(self):
        assert _lanes(stair(0.0, 4, 0.2, 0, 1, 4)) == [0, 1, 2, 3]

    def test_descending(self):
        assert _lanes(stair(0.0, 4, 0.2, 3, -1, 4)) == [3, 2, 1, 0]

    def test_six_lane_full_sweep(self):
        assert _lanes(stair(0.0, 6, 0.1, 0, 1, 6)) == [0, 1, 2, 3, 4, 5]

    def test_overflow_right_folds_back(self):
        assert _lanes(stair(0.0, 4, 0.2, 2, 1, 4)) == [2, 3, 2, 3]

    def test_overflow_left_folds_back(self):
        assert _lanes(stair(0.0, 4, 0.2, 1, -1, 4)) == [1, 0, 1, 1]

    @pytest.mark.parametrize("lane_count", [4, 6])
    @pytest.mark.parametrize("direction", [1, -1])
    def test_long_stair_stays_in_range(self, lane_count, direction):
        steps = stair(0.0, 20, 0.1, lane_count // 2, direction, lane_count)
        assert all(0 <= lane < lane_count for lane in _lanes(steps))

    def test_timing(self):
        steps = stair(5.0, 4, 0.25, 0, 1, 4)
        assert [s.time for s in steps] == pytest.approx([5.0, 5.25, 5.5, 5.75])

    def test_single_lane_highway_rejected(self):
        with pytest.raises(ValueError):
            stair(0.0, 4, 0.2, 0, 1, 1)


class TestTrill:
    def test_alternates(self):
        assert _lanes(trill(0.0, 5, 0.1, 1, 2)) == [1, 2, 1, 2, 1]

    def test_two_lanes_only(self):
        assert set(_lanes(trill(0.0, 8, 0.1, 3, 1))) == {1, 3}

    def test_returns_pattern_steps(self):
        steps = trill(1.0, 2, 0.5, 0, 1)
        assert steps == [PatternStep(1.0, 0), PatternStep(1.5, 1)]


class TestRoll:
    def test_four_lane_cycle(self):
        assert _lanes(roll(0.0, 8, 0.1, 4)) == [0, 1, 2, 3, 2, 1, 0, 1]

    def test_six_lane_cycle(self):
        assert _lanes(roll(0.0, 10, 0.1, 6)) == list(ROLL_CYCLES[6])

    def test_short_roll_is_prefix(self):
        assert _lanes(roll(0.0, 3, 0.1, 6)) == [0, 1, 2]

    def test_other_lane_count_out_and_back(self):
        assert _lanes(roll(0.0, 8, 0.1, 5)) == [0, 1, 2, 3, 4, 3, 2, 1]

    def test_timing(self):
        steps = roll(2.0, 3, 0.125, 4)
        assert [s.time for s in steps] == pytest.approx([2.0, 2.125, 2.25])
