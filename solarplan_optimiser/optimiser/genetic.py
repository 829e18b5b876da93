"""
Genetic-algorithm charge planner.

Each chromosome is a full day of mode codes. Fitness is the simulated plan cost
plus a small penalty for every switch between charging and discharging. The
search runs on DEAP: tournament selection, two-point crossover, uniform integer
mutation, elitism and a hall of fame, plus an occasional pattern-based "smart"
mutation and an early stop once the best fitness goes stale.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import date

import numpy as np
from deap import base, creator, tools

from .base import PlanOptimiser
from .segments import OutputsMode, TimeSegment, apply_modes, calculate_plan_cost, clone_segments
from .simulator import HouseSimulator

_LOGGER = logging.getLogger(__name__)

_MODES = tuple(OutputsMode)
_GRID = _MODES.index(OutputsMode.CHARGE_FROM_GRID_AND_SOLAR)
_SOLAR = _MODES.index(OutputsMode.CHARGE_SOLAR_ONLY)
_DISCHARGE = _MODES.index(OutputsMode.DISCHARGE)

# Greedy seeding windows, as segment indices of a 48-slot day.
_NIGHT_BEFORE = 16      # before 08:00
_NIGHT_AFTER = 42       # after 21:00
_PEAK_START = 32        # 16:00
_PEAK_END = 38          # 19:00 segment, inclusive
_NIGHT_GRID_PROBABILITY = 0.7


def _chromosome_modes(chromosome) -> list[OutputsMode]:
    return [_MODES[gene] for gene in chromosome]


def _chromosome_str(chromosome) -> str:
    codes = "".join(mode.short_code for mode in chromosome.modes)
    fitness = chromosome.fitness.values[0] if chromosome.fitness.valid else float("inf")
    return f"{codes} (Fitness: £{fitness:.4f})"


if not hasattr(creator, "PlanFitness"):
    creator.create("PlanFitness", base.Fitness, weights=(-1.0,))
if not hasattr(creator, "Chromosome"):
    creator.create(
        "Chromosome",
        list,
        fitness=creator.PlanFitness,
        modes=property(_chromosome_modes),
        __str__=_chromosome_str,
    )

# A candidate plan: one mode index per segment, with a minimising DEAP fitness.
Chromosome = creator.Chromosome


@dataclass
class GeneticConfig:
    """Tuning knobs for the genetic search."""
    population_size: int = 100
    generations: int = 200
    mutation_rate: float = 0.15
    crossover_rate: float = 0.8
    tournament_size: int = 5
    elite_size: int = 10
    max_stale_generations: int = 50
    smart_mutation_rate: float = 0.1
    transition_penalty: float = 0.001
    seed: int | None = None
    time_budget_seconds: float | None = None


class GeneticAlgorithmPlanOptimiser(PlanOptimiser):
    """Evolves whole-day mode sequences towards the cheapest simulated plan."""

    name = "genetic"

    def __init__(self, simulator: HouseSimulator, config: GeneticConfig | None = None):
        self.simulator = simulator
        self.config = config or GeneticConfig()
        self.generations_run = 0
        self.toolbox = self.setup_toolbox()

    def setup_toolbox(self) -> base.Toolbox:
        cfg = self.config
        toolbox = base.Toolbox()
        toolbox.register("attr_mode", random.randrange, len(_MODES))
        toolbox.register("mate", tools.cxTwoPoint)
        toolbox.register("mutate_genes", tools.mutUniformInt, low=0, up=len(_MODES) - 1,
                         indpb=cfg.mutation_rate)
        toolbox.register("mutate", self.mutate)
        toolbox.register("select", tools.selTournament, tournsize=cfg.tournament_size)
        toolbox.register("smart_mutate", self._smart_mutation)
        return toolbox

    def create_charge_plan(self, segments: list[TimeSegment], day: date) -> list[TimeSegment]:
        if not segments:
            return segments

        best = self.run(segments)
        apply_modes(best.modes, segments)
        self.simulator.run_simulation(segments)

        _LOGGER.info(f"GA found plan for {day} with total cost {calculate_plan_cost(segments)}")
        return segments

    def run(self, segments: list[TimeSegment]) -> Chromosome:
        cfg = self.config
        if cfg.seed is not None:
            random.seed(cfg.seed)
        self.toolbox.register("evaluate", lambda chromosome: (self.evaluate(chromosome, segments),))

        population = self.initialise_population(len(segments))
        hall_of_fame = tools.HallOfFame(1)
        stats = tools.Statistics(lambda chromosome: chromosome.fitness.values[0])
        stats.register("min", np.min)
        stats.register("avg", np.mean)

        best_fitness = float("inf")
        stale_generations = 0
        self.generations_run = 0
        started = time.monotonic()

        for generation in range(cfg.generations):
            self.evaluate_population(population)
            hall_of_fame.update(population)
            self.generations_run += 1

            record = stats.compile(population)
            _LOGGER.debug(f"Generation {generation}: min £{record['min']:.4f}, avg £{record['avg']:.4f}")

            if hall_of_fame[0].fitness.values[0] < best_fitness:
                best_fitness = hall_of_fame[0].fitness.values[0]
                stale_generations = 0
            else:
                stale_generations += 1

            if stale_generations >= cfg.max_stale_generations:
                _LOGGER.info(f"Early stopping at generation {generation}: "
                             f"no improvement for {cfg.max_stale_generations} generations")
                break

            if cfg.time_budget_seconds is not None and time.monotonic() - started > cfg.time_budget_seconds:
                _LOGGER.warning(f"GA time budget of {cfg.time_budget_seconds}s used up "
                                f"at generation {generation}")
                break

            population = self.next_generation(population)

        self.evaluate_population(population)
        hall_of_fame.update(population)
        _LOGGER.info(f"GA completed after {self.generations_run} generations "
                     f"with best fitness £{hall_of_fame[0].fitness.values[0]:.4f}")
        return hall_of_fame[0]

    def initialise_population(self, n_genes: int) -> list[Chromosome]:
        """
        A third random, a third greedy time-of-day heuristic, the rest all solar-only.

        The last chromosome is always the all-DISCHARGE baseline, so the result can
        never cost more than doing nothing.
        """
        size = self.config.population_size
        population = []
        for i in range(size):
            if i < size // 3:
                population.append(tools.initRepeat(Chromosome, self.toolbox.attr_mode, n_genes))
            elif i < 2 * size // 3:
                population.append(Chromosome(self._greedy_genes(n_genes)))
            else:
                population.append(Chromosome([_SOLAR] * n_genes))
        if population:
            population[-1] = Chromosome([_DISCHARGE] * n_genes)
        return population

    def _greedy_genes(self, n_genes: int) -> list[int]:
        genes = []
        for i in range(n_genes):
            if i < _NIGHT_BEFORE or i > _NIGHT_AFTER:
                genes.append(_GRID if random.random() < _NIGHT_GRID_PROBABILITY else _SOLAR)
            elif _PEAK_START <= i <= _PEAK_END:
                genes.append(_DISCHARGE)
            else:
                genes.append(self.toolbox.attr_mode())
        return genes

    def evaluate_population(self, population: list[Chromosome]) -> None:
        # Only chromosomes touched by crossover or mutation need simulating again.
        invalid = [chromosome for chromosome in population if not chromosome.fitness.valid]
        for chromosome, fitness in zip(invalid, map(self.toolbox.evaluate, invalid)):
            chromosome.fitness.values = fitness

    def evaluate(self, chromosome: Chromosome, segments: list[TimeSegment]) -> float:
        trial = clone_segments(segments)
        apply_modes(chromosome.modes, trial)
        self.simulator.run_simulation(trial)
        return calculate_plan_cost(trial).pounds + self.transition_penalty(chromosome)

    def transition_penalty(self, genes) -> float:
        """Penalise every switch between discharging and either charging mode."""
        discharging = np.asarray(genes) == _DISCHARGE
        switches = int(np.count_nonzero(discharging[1:] != discharging[:-1]))
        return switches * self.config.transition_penalty

    def next_generation(self, population: list[Chromosome]) -> list[Chromosome]:
        """Elites carried over unchanged, the rest bred from tournament winners."""
        cfg = self.config
        elites = list(map(self.toolbox.clone, tools.selBest(population, cfg.elite_size)))
        offspring = self.toolbox.select(population, cfg.population_size - len(elites))
        offspring = list(map(self.toolbox.clone, offspring))

        for child1, child2 in zip(offspring[::2], offspring[1::2]):
            if len(child1) >= 3 and random.random() < cfg.crossover_rate:
                self.toolbox.mate(child1, child2)
                del child1.fitness.values
                del child2.fitness.values

        for mutant in offspring:
            self.toolbox.mutate(mutant)

        return elites + offspring

    def mutate(self, chromosome: Chromosome) -> tuple[Chromosome]:
        self.toolbox.mutate_genes(chromosome)
        if len(chromosome) >= 5 and random.random() < self.config.smart_mutation_rate:
            self.toolbox.smart_mutate(chromosome)
        del chromosome.fitness.values
        return (chromosome,)

    def _smart_mutation(self, chromosome: Chromosome) -> None:
        """Overwrite three neighbouring genes with a charge-charge-discharge or solar-only run."""
        centre = random.randrange(2, len(chromosome) - 2)
        if random.random() < 0.5:
            pattern = [_GRID, _GRID, _DISCHARGE]
        else:
            pattern = [_SOLAR, _SOLAR, _SOLAR]
        chromosome[centre - 1:centre + 2] = pattern
