"""
Dynamic-programming charge planner.

Solves the day backwards. For every segment and every discretised battery
level the cheapest mode is the one minimising

    immediate segment cost + best cost of the rest of the day from the level it ends on

The table is then walked forward from the real starting charge, re-simulating
each step so exact (unrounded) charge is carried between lookups.
"""
from __future__ import annotations

import logging
from datetime import date

import numpy as np

from .base import PlanOptimiser
from .discretisation import BatteryDiscretiser
from .segments import OutputsMode, TimeSegment, apply_modes, calculate_plan_cost
from .simulator import HouseSimulator
from .units import Gbp, Kwh

_LOGGER = logging.getLogger(__name__)

DEFAULT_ROUNDING_KWH = 0.5

# Evaluation order also decides ties: the first mode with the lowest cost wins.
_DP_MODES = (
    OutputsMode.DISCHARGE,
    OutputsMode.CHARGE_SOLAR_ONLY,
    OutputsMode.CHARGE_FROM_GRID_AND_SOLAR,
)
_MODE_CODES = {mode: code for code, mode in enumerate(_DP_MODES)}


class DynamicProgrammingPlanOptimiser(PlanOptimiser):
    """
    Backward induction over (segment, rounded battery level).

    Levels are multiples of `rounding_kwh` up to capacity. A successor level that
    falls outside the table (only possible when capacity is not a multiple of
    the rounding) has its tail cost estimated by assuming DISCHARGE for the rest
    of the day. That estimate is not optimal; it is an accepted approximation.

    With the same step and a capacity that is a multiple of it, the table cost at
    the starting level equals the graph planner's path cost: both solve the same
    discretised problem. Realised costs can drift apart by more than one step's
    worth when forecasts are not multiples of the step, because each plan is
    re-simulated on exact charges after being chosen on rounded ones.
    """

    name = "dynamic"

    def __init__(self, simulator: HouseSimulator, rounding_kwh: float = DEFAULT_ROUNDING_KWH):
        self.simulator = simulator
        self.discretiser = BatteryDiscretiser(rounding_kwh, simulator.battery.capacity)
        self.fallback_estimates = 0

    def create_charge_plan(self, segments: list[TimeSegment], day: date) -> list[TimeSegment]:
        if not segments:
            return segments

        cost, modes = self.find_optimal_modes(segments, segments[0].start_battery_charge_kwh)
        apply_modes(modes, segments)
        self.simulator.run_simulation(segments)

        _LOGGER.info(f"Dynamic programming planner found plan for {day}: table cost {cost}, "
                     f"simulated cost {calculate_plan_cost(segments)}, "
                     f"{self.fallback_estimates} tail estimates")
        return segments

    def find_optimal_modes(self, segments: list[TimeSegment], initial_charge: Kwh) -> tuple[Gbp, list[OutputsMode]]:
        costs, policy = self.build_table(segments)
        return self._walk_forward(segments, initial_charge, costs, policy)

    def build_table(self, segments: list[TimeSegment]) -> tuple[np.ndarray, np.ndarray]:
        """Fill the cost-to-go and best-mode tables from the last segment back to the first."""
        self.fallback_estimates = 0
        n_segments = len(segments)
        n_levels = self.discretiser.max_aligned_index + 1

        costs = np.full((n_segments, n_levels), np.inf)
        policy = np.zeros((n_segments, n_levels), dtype=np.int8)

        for segment_index in range(n_segments - 1, -1, -1):
            for level in range(n_levels):
                battery_state = self.discretiser.level(level)
                best_cost = np.inf
                best_mode = _MODE_CODES[OutputsMode.DISCHARGE]

                for mode in _DP_MODES:
                    cost = self._cost_for_mode_and_state(segments, segment_index, battery_state, mode, costs)
                    if cost < best_cost:
                        best_cost = cost
                        best_mode = _MODE_CODES[mode]

                costs[segment_index, level] = best_cost
                policy[segment_index, level] = best_mode

        if self.fallback_estimates:
            _LOGGER.debug(f"{self.fallback_estimates} successor states fell outside the table")
        return costs, policy

    def _cost_for_mode_and_state(self, segments, segment_index, battery_state, mode, costs) -> float:
        trial = self._simulate(segments[segment_index], battery_state, mode)
        immediate = trial.cost().pounds

        if segment_index == len(segments) - 1:
            return immediate

        next_level = self._table_level(trial.end_battery_charge_kwh)
        if next_level is not None:
            return immediate + costs[segment_index + 1, next_level]

        self.fallback_estimates += 1
        rounded = min(self.discretiser.round_charge(trial.end_battery_charge_kwh), self.simulator.battery.capacity)
        return immediate + self.estimate_future_cost(segments, segment_index + 1, rounded).pounds

    def estimate_future_cost(self, segments: list[TimeSegment], from_index: int, battery_state: Kwh) -> Gbp:
        """Cost of running DISCHARGE from `from_index` to the end of the day."""
        total = Gbp.zero()
        charge = battery_state
        for segment in segments[from_index:]:
            trial = self._simulate(segment, charge, OutputsMode.DISCHARGE)
            total += trial.cost()
            charge = trial.end_battery_charge_kwh
        return total

    def _walk_forward(self, segments, initial_charge, costs, policy) -> tuple[Gbp, list[OutputsMode]]:
        modes = []
        charge = initial_charge
        total_cost = Gbp.zero()

        for i, segment in enumerate(segments):
            level = self._table_level(charge)
            if level is None:
                mode = OutputsMode.DISCHARGE
            else:
                mode = _DP_MODES[policy[i, level]]
                if i == 0:
                    total_cost = Gbp(float(costs[0, level]))
            modes.append(mode)
            charge = self._simulate(segment, charge, mode).end_battery_charge_kwh

        return total_cost, modes

    def _table_level(self, charge: Kwh) -> int | None:
        level = self.discretiser.round_index(charge)
        if 0 <= level <= self.discretiser.max_aligned_index:
            return level
        return None

    def _simulate(self, segment: TimeSegment, start: Kwh, mode: OutputsMode) -> TimeSegment:
        trial = segment.clone()
        trial.start_battery_charge_kwh = start
        trial.mode = mode
        self.simulator.simulate_segment(trial)
        return trial
