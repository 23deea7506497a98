"""
Rhythm Chart Generator - Ergonomic Physics

Chooses which lane(s) each chord occupies by scoring every lane subset
against a simple model of two hands on a lane controller:

    - **Movement**   — large jumps of the chord's centre cost more.
    - **Flow**       — continuing the current sweep direction is rewarded.
    - **Jacks**      — reusing a lane very quickly is expensive, and
      forbidden outright below 150 ms unless the section style allows it.
    - **Hand bias**  — sections may favour one hand or ask for alternation.
    - **Fatigue**    — a per-hand strain accumulator that decays over time
      steers notes away from an overworked hand.
    - **Edges**      — the outermost lanes are slightly harder to reach.

An ``ErgonomicPhysics`` instance is running state for exactly one
generation pass.  Create a fresh one per chart; never share it.
"""

import random
from itertools import combinations
from typing import AbstractSet, List, Optional, Sequence, Union

from loguru import logger

from src.config import JACK_FRIENDLY_STYLES
from src.services.chart_models import HandBias
from src.utils import mean

# Returned for a forbidden fast jack; any real candidate beats it
JACK_REJECT_COST = 9999.0

MOVEMENT_WEIGHT = 1.5
FLOW_BONUS = 1.0
JACK_WINDOW = 0.15  # seconds
JACK_WEIGHT = 0.3 * 5
BIAS_WEIGHT = 2.0
ALTERNATION_PENALTY = 5.0
FATIGUE_THRESHOLD = 3.0
FATIGUE_WEIGHT = 2.0
EDGE_PENALTY = 0.5

STRAIN_DECAY_PER_SECOND = 5.0
STRAIN_PER_NOTE = 1.0
FLOW_DEADBAND = 0.1
MIN_TIME_DELTA = 0.01


class ErgonomicPhysics:
    """Stateful lane-placement cost model for one chart."""

    def __init__(
        self,
        lane_count: int,
        rng: Optional[random.Random] = None,
        jack_friendly_styles: AbstractSet[str] = JACK_FRIENDLY_STYLES,
    ):
        self.lane_count = lane_count
        self.rng = rng or random.Random()
        self.jack_friendly_styles = frozenset(s.lower() for s in jack_friendly_styles)

        self.bias = HandBias.BALANCED
        self.last_lanes: List[int] = [lane_count // 2]
        self.last_time = 0.0
        self.last_flow_direction = 0
        self.left_hand_strain = 0.0
        self.right_hand_strain = 0.0
        # Cost of the most recent get_best_lanes() winner
        self.last_cost: Optional[float] = None

        # Strain is decayed once per timestamp, not once per candidate
        self._strain_clock = 0.0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def set_bias(self, bias: Union[HandBias, str]) -> None:
        self.bias = HandBias(bias)

    def is_left(self, lane: int) -> bool:
        return lane < self.lane_count / 2

    def _hand_loads(self, lanes: Sequence[int]) -> tuple:
        left = sum(1 for lane in lanes if self.is_left(lane))
        return left, len(lanes) - left

    def jacks_allowed(self, style: str) -> bool:
        return str(getattr(style, "value", style)).lower() in self.jack_friendly_styles

    # ------------------------------------------------------------------
    # State updates
    # ------------------------------------------------------------------
    def update_strain(self, now: float) -> None:
        """Decay both hands' strain linearly for the time elapsed."""
        elapsed = now - self._strain_clock
        if elapsed <= 0:
            return
        decay = elapsed * STRAIN_DECAY_PER_SECOND
        self.left_hand_strain = max(0.0, self.left_hand_strain - decay)
        self.right_hand_strain = max(0.0, self.right_hand_strain - decay)
        self._strain_clock = now

    def commit(self, lanes: Sequence[int], now: float) -> None:
        """Record *lanes* as the chord played at *now*."""
        self.update_strain(now)

        movement = mean(lanes) - mean(self.last_lanes)
        if movement > FLOW_DEADBAND:
            self.last_flow_direction = 1
        elif movement < -FLOW_DEADBAND:
            self.last_flow_direction = -1

        for lane in lanes:
            if self.is_left(lane):
                self.left_hand_strain += STRAIN_PER_NOTE
            else:
                self.right_hand_strain += STRAIN_PER_NOTE

        self.last_lanes = list(lanes)
        self.last_time = now

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------
    def get_cost(
        self, target_lanes: Sequence[int], now: float, jacks_allowed: bool
    ) -> float:
        """Ergonomic cost of playing *target_lanes* at *now*.  Lower is easier."""
        self.update_strain(now)
        time_delta = max(MIN_TIME_DELTA, now - self.last_time)
        cost = 0.0

        movement = mean(target_lanes) - mean(self.last_lanes)
        cost += abs(movement) * MOVEMENT_WEIGHT

        if (self.last_flow_direction > 0 and movement > 0) or (
            self.last_flow_direction < 0 and movement < 0
        ):
            cost -= FLOW_BONUS

        for lane in target_lanes:
            if lane in self.last_lanes:
                if time_delta < JACK_WINDOW and not jacks_allowed:
                    return JACK_REJECT_COST
                cost += JACK_WEIGHT / time_delta

        left_load, right_load = self._hand_loads(target_lanes)

        if self.bias is HandBias.LEFT_HEAVY:
            cost += right_load * BIAS_WEIGHT
        elif self.bias is HandBias.RIGHT_HEAVY:
            cost += left_load * BIAS_WEIGHT
        elif self.bias is HandBias.ALTERNATING:
            prev_left, prev_right = self._hand_loads(self.last_lanes)
            if prev_left and not prev_right and left_load:
                cost += ALTERNATION_PENALTY
            if prev_right and not prev_left and right_load:
                cost += ALTERNATION_PENALTY

        # Flat per hand in use, not scaled by how many chord notes it plays
        if self.left_hand_strain > FATIGUE_THRESHOLD and left_load:
            cost += self.left_hand_strain * FATIGUE_WEIGHT
        if self.right_hand_strain > FATIGUE_THRESHOLD and right_load:
            cost += self.right_hand_strain * FATIGUE_WEIGHT

        if 0 in target_lanes or (self.lane_count - 1) in target_lanes:
            cost += EDGE_PENALTY

        return cost

    def get_best_lanes(
        self,
        count: int,
        now: float,
        max_cost: float,
        style: str,
        enforce_ceiling: bool = False,
    ) -> List[int]:
        """
        Pick, commit and return the cheapest *count*-lane chord at *now*.

        Every ``C(lane_count, count)`` subset is scored after a shuffle so
        that ties are broken fairly.  ``max_cost`` is advisory: a winner
        above it is logged, and only rejected (empty list, nothing
        committed) when *enforce_ceiling* is set.
        """
        count = max(1, min(count, self.lane_count))
        candidates = list(combinations(range(self.lane_count), count))
        best = candidates[0]
        best_cost = float("inf")

        self.rng.shuffle(candidates)
        jacks_ok = self.jacks_allowed(style)

        for chord in candidates:
            cost = self.get_cost(chord, now, jacks_ok)
            if cost < best_cost:
                best_cost = cost
                best = chord

        self.last_cost = best_cost
        if best_cost > max_cost:
            if enforce_ceiling:
                logger.debug(
                    "🚫 Chord at {:.3f}s rejected: cost {:.2f} > ceiling {:.2f}",
                    now,
                    best_cost,
                    max_cost,
                )
                return []
            logger.debug(
                "Chord at {:.3f}s exceeds cost ceiling ({:.2f} > {:.2f})",
                now,
                best_cost,
                max_cost,
            )

        lanes = list(best)
        self.commit(lanes, now)
        return lanes
