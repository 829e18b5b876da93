"""
Shortest-path charge planner.

The day is a layered graph: layer i holds one node per discretised battery
level at the start of segment i, and layer N (one past the last segment) holds
the end-of-day levels. Every node has one outgoing edge per OutputsMode,
weighted by the simulated cost of running that mode for that segment. The
cheapest path from the start node to any node in the final layer is the plan.

The path cost is exact only on the discretised levels. Once the chosen modes are
re-simulated on unrounded charges the realised cost can differ from it, and that
drift grows over the day when forecasts are not multiples of the step.
"""
from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from datetime import date

import numpy as np

from .base import PlanOptimiser
from .discretisation import BatteryDiscretiser
from .errors import NoPathFoundError
from .segments import OutputsMode, TimeSegment, apply_modes, calculate_plan_cost
from .simulator import HouseSimulator

_LOGGER = logging.getLogger(__name__)

DEFAULT_BATTERY_STEP_KWH = 0.1

_MODES = tuple(OutputsMode)


@dataclass(frozen=True)
class GraphNode:
    segment: int
    battery_step: int


@dataclass(frozen=True)
class GraphEdge:
    """Simulated result of running `mode` for one segment from `from_node`."""
    from_node: GraphNode
    to_node: GraphNode
    mode: OutputsMode
    cost: float
    grid_usage: float
    wasted_solar: float

    def describe(self, step_kwh: float) -> str:
        return (f"Segment {self.from_node.segment}: "
                f"{self.from_node.battery_step * step_kwh:.1f}->"
                f"{self.to_node.battery_step * step_kwh:.1f} kWh via {self.mode.name}, "
                f"cost £{self.cost:.4f}")


class GraphBasedPlanOptimiser(PlanOptimiser):
    """Dijkstra over (segment, battery step) states."""

    name = "graph"

    def __init__(self, simulator: HouseSimulator, battery_step_kwh: float = DEFAULT_BATTERY_STEP_KWH):
        self.simulator = simulator
        self.discretiser = BatteryDiscretiser(battery_step_kwh, simulator.battery.capacity)

    def create_charge_plan(self, segments: list[TimeSegment], day: date) -> list[TimeSegment]:
        if not segments:
            return segments

        path = self.find_optimal_path(segments)
        if _LOGGER.isEnabledFor(logging.DEBUG):
            for edge in path:
                _LOGGER.debug(edge.describe(self.discretiser.step_kwh))
        apply_modes((edge.mode for edge in path), segments)

        # Re-run on exact charges; the path itself was found on rounded levels.
        self.simulator.run_simulation(segments)

        _LOGGER.info(f"Graph planner found plan for {day} with total cost {calculate_plan_cost(segments)}")
        return segments

    def find_optimal_path(self, segments: list[TimeSegment]) -> list[GraphEdge]:
        n_segments = len(segments)
        levels = self.discretiser.level_count

        distances = np.full((n_segments + 1, levels), np.inf)
        # Back-pointers: the edge that last improved each node.
        previous = np.full((n_segments + 1, levels), None, dtype=object)

        start_step = self.discretiser.clamp_index(segments[0].start_battery_charge_kwh)
        distances[0, start_step] = 0.0

        # Counter keeps heap order stable when costs tie.
        counter = itertools.count()
        queue = [(0.0, next(counter), 0, start_step)]

        _LOGGER.debug(f"Starting Dijkstra with {levels} battery levels per segment")

        while queue:
            cost, _, segment_index, battery_step = heapq.heappop(queue)
            if distances[segment_index, battery_step] < cost:
                continue
            if segment_index == n_segments:
                continue

            for edge in self.generate_transitions(GraphNode(segment_index, battery_step),
                                                  segments[segment_index]):
                new_cost = cost + edge.cost
                to_segment = edge.to_node.segment
                to_step = edge.to_node.battery_step
                if new_cost < distances[to_segment, to_step]:
                    distances[to_segment, to_step] = new_cost
                    previous[to_segment, to_step] = edge
                    heapq.heappush(queue, (new_cost, next(counter), to_segment, to_step))

        final_layer = distances[n_segments]
        best_final_step = int(np.argmin(final_layer))
        best_final_cost = final_layer[best_final_step]
        if not np.isfinite(best_final_cost):
            raise NoPathFoundError(
                f"No valid path found through the graph: no battery level is reachable "
                f"after segment {n_segments - 1}"
            )

        _LOGGER.info(f"Optimal path cost £{best_final_cost:.4f}, ending battery level "
                     f"{self.discretiser.level(best_final_step).value:.1f} kWh")

        return self._reconstruct_path(previous, n_segments, best_final_step)

    def generate_transitions(self, node: GraphNode, segment: TimeSegment) -> list[GraphEdge]:
        return [self.calculate_transition(node, segment, mode) for mode in _MODES]

    def calculate_transition(self, node: GraphNode, segment: TimeSegment, mode: OutputsMode) -> GraphEdge:
        trial = segment.clone()
        trial.start_battery_charge_kwh = self.discretiser.level(node.battery_step)
        trial.mode = mode
        self.simulator.simulate_segment(trial)

        to_node = GraphNode(node.segment + 1, self.discretiser.clamp_index(trial.end_battery_charge_kwh))
        return GraphEdge(
            from_node=node,
            to_node=to_node,
            mode=mode,
            cost=trial.cost().pounds,
            grid_usage=trial.actual_grid_usage.value,
            wasted_solar=trial.wasted_solar_generation.value,
        )

    @staticmethod
    def _reconstruct_path(previous: np.ndarray, final_segment: int, final_step: int) -> list[GraphEdge]:
        path = []
        segment_index, battery_step = final_segment, final_step
        while segment_index > 0:
            edge = previous[segment_index, battery_step]
            if edge is None:
                raise NoPathFoundError(
                    f"Path reconstruction failed at segment {segment_index}, battery step {battery_step}"
                )
            path.append(edge)
            segment_index = edge.from_node.segment
            battery_step = edge.from_node.battery_step
        path.reverse()
        return path
