"""
Battery charge planning engine.

Builds a day of half-hour segments from solar, load and price forecasts, hands
them to one of the plan optimisers and runs a final simulation so every
segment carries the battery levels, grid usage and cost of the chosen plan.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from .base import DoNothingOptimiser, PlanOptimiser
from .battery import BatteryModel
from .dynamic import DEFAULT_ROUNDING_KWH, DynamicProgrammingPlanOptimiser
from .errors import BatteryStateError, ForecastError, PlanningError
from .forecasts import LoadForecaster, PriceSupplier, SolarForecaster
from .genetic import GeneticAlgorithmPlanOptimiser, GeneticConfig
from .graph import DEFAULT_BATTERY_STEP_KWH, GraphBasedPlanOptimiser
from .segments import ALL_SEGMENTS, TimeSegment, calculate_plan_cost, clone_segments
from .simulator import HouseSimulator
from .units import Kwh

_LOGGER = logging.getLogger(__name__)


class OptimiserKind(Enum):
    """Available planning strategies."""
    GRAPH = "graph"                # Dijkstra over discretised battery levels
    DYNAMIC = "dynamic"            # Backward-induction dynamic programming
    GENETIC = "genetic"            # Genetic algorithm over whole-day mode sequences
    DO_NOTHING = "do_nothing"      # DISCHARGE all day (baseline)


@dataclass
class PlannerConfig:
    """Configuration for a planning run."""
    # Battery parameters
    battery_capacity_kwh: float = 10.0          # Usable capacity
    grid_charge_per_segment_kwh: float = 2.0    # Grid energy drawn per half-hour when grid charging
    charge_efficiency: float = 1.0              # Fraction of supplied energy that is stored

    # Strategy
    optimiser: OptimiserKind = OptimiserKind.GRAPH

    # Discretisation (independent of each other)
    graph_battery_step_kwh: float = DEFAULT_BATTERY_STEP_KWH
    dp_rounding_kwh: float = DEFAULT_ROUNDING_KWH

    # Genetic algorithm
    ga_population_size: int = 100
    ga_generations: int = 200
    ga_mutation_rate: float = 0.15
    ga_crossover_rate: float = 0.8
    ga_tournament_size: int = 5
    ga_elite_size: int = 10
    ga_max_stale_generations: int = 50
    ga_smart_mutation_rate: float = 0.1
    ga_transition_penalty: float = 0.001
    ga_seed: int | None = None

    # Wall-clock cut-off for the GA generation loop (None = generation cap only)
    time_budget_seconds: float | None = None

    def battery_model(self) -> BatteryModel:
        return BatteryModel(
            capacity=Kwh(self.battery_capacity_kwh),
            grid_charge_per_segment=Kwh(self.grid_charge_per_segment_kwh),
            charge_efficiency=self.charge_efficiency,
        )

    def genetic_config(self) -> GeneticConfig:
        return GeneticConfig(
            population_size=self.ga_population_size,
            generations=self.ga_generations,
            mutation_rate=self.ga_mutation_rate,
            crossover_rate=self.ga_crossover_rate,
            tournament_size=self.ga_tournament_size,
            elite_size=self.ga_elite_size,
            max_stale_generations=self.ga_max_stale_generations,
            smart_mutation_rate=self.ga_smart_mutation_rate,
            transition_penalty=self.ga_transition_penalty,
            seed=self.ga_seed,
            time_budget_seconds=self.time_budget_seconds,
        )


def build_optimiser(config: PlannerConfig, simulator: HouseSimulator) -> PlanOptimiser:
    """Instantiate the optimiser selected in the config."""
    kind = config.optimiser
    if kind is OptimiserKind.GRAPH:
        return GraphBasedPlanOptimiser(simulator, battery_step_kwh=config.graph_battery_step_kwh)
    if kind is OptimiserKind.DYNAMIC:
        return DynamicProgrammingPlanOptimiser(simulator, rounding_kwh=config.dp_rounding_kwh)
    if kind is OptimiserKind.GENETIC:
        return GeneticAlgorithmPlanOptimiser(simulator, config.genetic_config())
    if kind is OptimiserKind.DO_NOTHING:
        return DoNothingOptimiser()
    raise ValueError(f"Unknown optimiser: {kind!r}")


@dataclass
class PlanResult:
    """Result of a planning run."""
    success: bool
    status: str
    input_error: bool = False             # Failure caused by the forecasts or start charge

    day: date | None = None
    segments: list[TimeSegment] = field(default_factory=list)

    # Summary metrics
    total_cost: float = 0.0               # Plan cost (GBP)
    total_grid_kwh: float = 0.0           # Grid energy drawn (kWh)
    total_wasted_solar_kwh: float = 0.0   # Curtailed solar (kWh)
    end_battery_kwh: float = 0.0          # Battery level at midnight

    # Comparison metrics
    baseline_cost: float = 0.0            # Cost of DISCHARGE all day
    savings: float = 0.0                  # Savings vs baseline (GBP)

    # Solver info
    solve_time_ms: float = 0.0
    optimiser_name: str = ""

    @property
    def modes(self) -> list[str]:
        return [segment.mode.value for segment in self.segments]

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "status": self.status,
            "date": self.day.isoformat() if self.day else None,
            "schedule": [segment.to_dict(self.day) for segment in self.segments],
            "summary": {
                "total_cost": round(self.total_cost, 4),
                "total_grid_kwh": round(self.total_grid_kwh, 3),
                "total_wasted_solar_kwh": round(self.total_wasted_solar_kwh, 3),
                "end_battery_kwh": round(self.end_battery_kwh, 3),
                "baseline_cost": round(self.baseline_cost, 4),
                "savings": round(self.savings, 4),
            },
            "optimiser": {
                "name": self.optimiser_name,
                "solve_time_ms": round(self.solve_time_ms, 2),
            },
        }


class ChargePlanner:
    """
    Produces a day's battery schedule.

    Forecast lookups happen first, sequentially, and any bad value aborts the
    run before the optimiser starts; no partial plan is ever produced.
    """

    def __init__(
        self,
        solar_forecaster: SolarForecaster,
        load_forecaster: LoadForecaster,
        price_supplier: PriceSupplier,
        config: PlannerConfig | None = None,
        optimiser: PlanOptimiser | None = None,
    ):
        self.config = config or PlannerConfig()
        self.solar_forecaster = solar_forecaster
        self.load_forecaster = load_forecaster
        self.price_supplier = price_supplier
        self.battery = self.config.battery_model()
        self.simulator = HouseSimulator(self.battery)
        self.optimiser = optimiser or build_optimiser(self.config, self.simulator)

    def build_segments(self, day: date) -> list[TimeSegment]:
        """Query the forecasts for all 48 segments of the day and validate them."""
        day_of_year = day.timetuple().tm_yday
        segments = []

        for half_hour in ALL_SEGMENTS:
            solar = self.solar_forecaster.predict_solar_energy(day_of_year, half_hour)
            price = self.price_supplier.get_price(day, half_hour)
            consumption = self.load_forecaster.predict_load(day_of_year, half_hour)

            if price is None:
                raise ForecastError(f"No grid price found for {day} at segment {half_hour}")
            if solar < Kwh.zero():
                raise ForecastError(
                    f"Solar generation cannot be negative for {day} at segment {half_hour}. Value: {solar}"
                )
            if consumption < Kwh.zero():
                raise ForecastError(
                    f"Estimated consumption cannot be negative for {day} at segment {half_hour}. "
                    f"Value: {consumption}"
                )

            segments.append(TimeSegment(
                half_hour_segment=half_hour,
                expected_solar_generation=solar,
                grid_price=price,
                expected_consumption=consumption,
            ))

        return segments

    def create_charge_plan(self, day: date, start_charge: Kwh) -> list[TimeSegment]:
        """Build, optimise and simulate the plan. Raises PlanningError on bad input."""
        if start_charge < Kwh.zero() or start_charge > self.battery.capacity:
            raise BatteryStateError(
                f"Starting charge {start_charge} must be between 0 and capacity {self.battery.capacity}"
            )

        segments = self.build_segments(day)
        segments[0].start_battery_charge_kwh = start_charge
        self._log_inputs(segments)

        self.optimiser.create_charge_plan(segments, day)
        self.simulator.run_simulation(segments)
        return segments

    def plan(self, day: date, start_charge: Kwh) -> PlanResult:
        """Run a planning round and summarise it, reporting failures in the result."""
        start_solve = time.time()

        try:
            segments = self.create_charge_plan(day, start_charge)
        except PlanningError as e:
            _LOGGER.error(f"Planning failed for {day}: {e}")
            return PlanResult(
                success=False,
                status=str(e),
                input_error=isinstance(e, (ForecastError, BatteryStateError)),
                day=day,
                optimiser_name=self.optimiser.name,
            )

        solve_time_ms = (time.time() - start_solve) * 1000
        total_cost = calculate_plan_cost(segments).pounds
        baseline_cost = self.baseline_cost(segments, day)

        return PlanResult(
            success=True,
            status="optimal" if self.optimiser.name in ("graph", "dynamic") else "heuristic",
            day=day,
            segments=segments,
            total_cost=total_cost,
            total_grid_kwh=sum(s.actual_grid_usage.value for s in segments),
            total_wasted_solar_kwh=sum(s.wasted_solar_generation.value for s in segments),
            end_battery_kwh=segments[-1].end_battery_charge_kwh.value,
            baseline_cost=baseline_cost,
            savings=baseline_cost - total_cost,
            solve_time_ms=solve_time_ms,
            optimiser_name=self.optimiser.name,
        )

    def baseline_cost(self, segments: list[TimeSegment], day: date) -> float:
        """Cost of the same day with the inverter left in DISCHARGE throughout."""
        baseline = clone_segments(segments)
        DoNothingOptimiser().create_charge_plan(baseline, day)
        self.simulator.run_simulation(baseline)
        return calculate_plan_cost(baseline).pounds

    def _log_inputs(self, segments: list[TimeSegment]) -> None:
        if not _LOGGER.isEnabledFor(logging.DEBUG):
            return
        prices = [s.grid_price.price_per_kwh.pounds for s in segments]
        solar = sum(s.expected_solar_generation.value for s in segments)
        load = sum(s.expected_consumption.value for s in segments)
        _LOGGER.debug(f"Planning inputs: segments={len(segments)}, "
                      f"start_charge={segments[0].start_battery_charge_kwh}")
        _LOGGER.debug(f"  prices: min={min(prices):.3f}, max={max(prices):.3f}, "
                      f"mean={sum(prices) / len(prices):.3f}")
        _LOGGER.debug(f"  solar: sum={solar:.2f}kWh, load: sum={load:.2f}kWh")
        _LOGGER.debug(f"  battery: capacity={self.battery.capacity}, "
                      f"grid_charge={self.battery.grid_charge_per_segment}")
