from __future__ import annotations

from typing import Any, Mapping, Sequence

from loguru import logger

from evosandbox.evolution.engine.config import GAConfig, normalize_config
from evosandbox.evolution.engine.metrics import (
    EngineMetrics,
    compute_average_fitness,
    compute_diversity,
    sort_by_fitness_desc,
)
from evosandbox.evolution.models import (
    Chromosome,
    EngineState,
    HistoryEntry,
    Individual,
    bound_for,
)
from evosandbox.evolution.mutation import crossover, gaussian_mutation
from evosandbox.evolution.strategies import ParentSelector, build_parent_selector
from evosandbox.exceptions import EvolutionError
from evosandbox.fitness.strategy import FitnessBuild, build_fitness
from evosandbox.utils.prng import Mulberry32

__all__ = ["EvolutionEngine"]


class EvolutionEngine:
    """
    Generational GA over real-valued chromosomes:
    - One PRNG per instance; every random draw goes through it, in a fixed order.
    - Callers drive it one generation at a time with step().
    """

    def __init__(self, config: GAConfig | Mapping[str, Any] | None = None):
        self.metrics = EngineMetrics()
        self._id_counter = 0
        self.reset(config)

    def reset(
        self, config: GAConfig | Mapping[str, Any] | None = None
    ) -> tuple[EngineState, str | None]:
        """Rebuild everything from *config* and evaluate generation 0.

        Returns the new state and the custom-fitness error message, if the
        expression was rejected and the default preset used instead.
        """
        self.config = normalize_config(config)
        self.fitness: FitnessBuild = build_fitness(self.config)
        self.selector: ParentSelector = build_parent_selector(self.config)
        self.rng = Mulberry32(self.config.seed)
        self._id_counter = 0

        population = [self._individual(self._random_genes()) for _ in range(self.config.population_size)]
        self.state = self._record(population, generation=0, running=False, previous=None)
        self.metrics.record_reset(len(population), fell_back=self.fitness.error is not None)

        logger.info(
            "[EvolutionEngine] Reset | seed={}, population={}, fitness={}, selection={}, crossover={}",
            self.config.seed,
            self.config.population_size,
            self.fitness.strategy,
            self.config.selection.value,
            self.config.crossover.value,
        )
        return self.state, self.fitness.error

    def step(self) -> EngineState:
        """Advance one generation; a no-op that clears ``running`` once the cap is reached."""
        if self.is_finished():
            self.state = self.state.model_copy(update={"running": False})
            return self.state
        try:
            self.state = self._step()
        except Exception as exc:
            raise EvolutionError(f"Evolution step failed: {exc}") from exc
        return self.state

    def _step(self) -> EngineState:
        cfg = self.config
        ranked = sort_by_fitness_desc(self.state.population)
        offspring: list[Individual] = []

        for elite in ranked[: min(cfg.elitism, len(ranked))]:
            offspring.append(self._individual(elite.genes, (elite.id,)))

        while len(offspring) < cfg.population_size:
            parent_a = self.selector(ranked, self.rng)
            parent_b = self.selector(ranked, self.rng)
            if self.rng.next() < cfg.crossover_rate:
                genes = crossover(parent_a.genes, parent_b.genes, cfg.crossover, self.rng)
            else:
                fitter = parent_a if parent_a.fitness >= parent_b.fitness else parent_b
                genes = tuple(fitter.genes)
            genes = gaussian_mutation(
                genes, self.fitness.bounds, cfg.mutation_rate, cfg.mutation_std_dev, self.rng
            )
            offspring.append(self._individual(genes, (parent_a.id, parent_b.id)))

        state = self._record(
            offspring[: cfg.population_size],
            generation=self.state.generation + 1,
            running=self.state.running,
            previous=self.state,
        )
        self.metrics.record_generation(len(state.population))

        latest = state.history[-1]
        logger.debug(
            "[EvolutionEngine] Generation {} | best={:.4f}, avg={:.4f}, diversity={:.4f}",
            latest.generation,
            latest.best_fitness,
            latest.average_fitness,
            latest.diversity,
        )
        return state

    def set_running(self, running: bool) -> EngineState:
        self.state = self.state.model_copy(update={"running": bool(running)})
        return self.state

    def get_state(self) -> EngineState:
        return self.state

    def get_config(self) -> GAConfig:
        return self.config

    @property
    def fitness_error(self) -> str | None:
        """Message from the last rejected custom fitness; cleared by the next reset."""
        return self.fitness.error

    def is_finished(self) -> bool:
        return self.state.generation >= self.config.max_generations

    def _individual(
        self, genes: Sequence[float], parents: tuple[str, ...] | None = None
    ) -> Individual:
        self._id_counter += 1
        return Individual(
            id=f"i{self._id_counter}",
            genes=tuple(genes),
            fitness=self.fitness.fn(genes),
            parents=parents,
        )

    def _random_genes(self) -> Chromosome:
        bounds = self.fitness.bounds
        genes = []
        for i in range(self.config.chromosome_length):
            bound = bound_for(bounds, i)
            genes.append(self.rng.next_in_range(bound.min, bound.max))
        return tuple(genes)

    @staticmethod
    def _record(
        population: list[Individual],
        generation: int,
        running: bool,
        previous: EngineState | None,
    ) -> EngineState:
        ranked = sort_by_fitness_desc(population)
        best = ranked[0] if ranked else None
        entry = HistoryEntry(
            generation=generation,
            best_fitness=best.fitness if best else 0.0,
            average_fitness=compute_average_fitness(population),
            diversity=compute_diversity(population),
        )
        history = [entry] if previous is None else [*previous.history, entry]

        best_so_far = previous.best_so_far if previous else None
        if best is not None and (best_so_far is None or best.fitness >= best_so_far.fitness):
            best_so_far = best

        return EngineState(
            generation=generation,
            population=population,
            best_so_far=best_so_far,
            history=history,
            running=running,
        )

    def __repr__(self) -> str:
        return (
            f"EvolutionEngine(generation={self.state.generation}, "
            f"seed={self.config.seed}, running={self.state.running})"
        )
