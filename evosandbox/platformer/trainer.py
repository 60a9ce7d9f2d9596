from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Sequence

from loguru import logger

from evosandbox.evolution.engine.metrics import sort_by_fitness_desc
from evosandbox.evolution.models import Bound, Chromosome
from evosandbox.evolution.mutation import gaussian_mutation, uniform_crossover
from evosandbox.evolution.strategies import TournamentParentSelector
from evosandbox.exceptions import EvolutionError
from evosandbox.platformer.level import DEFAULT_LEVEL
from evosandbox.platformer.models import (
    PlatformerConfig,
    PlatformerIndividual,
    PlatformerLevel,
    TrainerHistoryEntry,
    TrainerState,
    normalize_platformer_config,
)
from evosandbox.platformer.simulation import simulate
from evosandbox.utils.prng import Mulberry32

__all__ = ["GENE_BOUNDS", "HISTORY_LIMIT", "PlatformerTrainer"]

GENE_BOUNDS: tuple[Bound, ...] = (Bound(min=-1.0, max=1.0),)
HISTORY_LIMIT = 200


class PlatformerTrainer:
    """
    Evolves open-loop control policies for the platformer agent.

    Each generation evaluates the bred population through the simulator, then
    immediately breeds the next one, so ``state.evaluated`` always holds the
    latest scored generation.
    """

    def __init__(
        self,
        config: PlatformerConfig | Mapping[str, Any] | None = None,
        level: PlatformerLevel = DEFAULT_LEVEL,
    ):
        self.level = level
        self.config = normalize_platformer_config(config)
        self.reset()

    def reset(
        self,
        config: PlatformerConfig | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> TrainerState:
        """Start over from generation 0.

        With no *config* the current configuration is kept; *overrides* are
        applied on top either way.
        """
        base = normalize_platformer_config(config) if config is not None else self.config
        self.config = base.with_updates(**overrides) if overrides else base
        self.rng = Mulberry32(self.config.seed)
        self.selector = TournamentParentSelector(self.config.tournament_size)

        genomes = [self._random_genome() for _ in range(self.config.population_size)]
        evaluated = self._evaluate(genomes, generation=0)
        entry = self._stats(evaluated, generation=0)
        self._population = self._breed(evaluated)
        self.state = TrainerState(
            generation=0,
            evaluated=evaluated,
            best_ever=sort_by_fitness_desc(evaluated)[0],
            history=(entry,),
            running=False,
        )
        logger.info(
            "[PlatformerTrainer] Reset | seed={}, population={}, steps={}, best={:.2f}",
            self.config.seed,
            self.config.population_size,
            self.config.steps,
            entry.best_fitness,
        )
        return self.state

    def step(self) -> TrainerState:
        if self.is_finished():
            return self.pause()
        try:
            self.state = self._step()
        except Exception as exc:
            raise EvolutionError(f"Platformer step failed: {exc}") from exc
        return self.state

    def _step(self) -> TrainerState:
        generation = self.state.generation + 1
        evaluated = self._evaluate(self._population, generation)
        entry = self._stats(evaluated, generation)
        self._population = self._breed(evaluated)

        best = sort_by_fitness_desc(evaluated)[0]
        best_ever = self.state.best_ever
        if best_ever is None or best.fitness > best_ever.fitness:
            best_ever = best

        logger.debug(
            "[PlatformerTrainer] Generation {} | best={:.2f}, avg={:.2f}, reached={}",
            generation,
            entry.best_fitness,
            entry.average_fitness,
            entry.reached,
        )
        return TrainerState(
            generation=generation,
            evaluated=evaluated,
            best_ever=best_ever,
            history=(*self.state.history[-(HISTORY_LIMIT - 1):], entry),
            running=self.state.running,
        )

    def run(self) -> TrainerState:
        """Mark the trainer as running; generations are driven externally."""
        self.state = replace(self.state, running=True)
        return self.state

    def pause(self) -> TrainerState:
        self.state = replace(self.state, running=False)
        return self.state

    def set_running(self, running: bool) -> TrainerState:
        return self.run() if running else self.pause()

    def get_state(self) -> TrainerState:
        return self.state

    def get_config(self) -> PlatformerConfig:
        return self.config

    def is_finished(self) -> bool:
        cap = self.config.max_generations
        return cap is not None and self.state.generation >= cap

    def _random_genome(self) -> Chromosome:
        return tuple(self.rng.next_in_range(-1.0, 1.0) for _ in range(self.config.genome_length))

    def _evaluate(
        self, genomes: Sequence[Chromosome], generation: int
    ) -> tuple[PlatformerIndividual, ...]:
        evaluated = []
        for index, genes in enumerate(genomes):
            result = simulate(genes, self.config, self.level)
            evaluated.append(
                PlatformerIndividual(
                    id=f"g{generation}-{index}",
                    genes=tuple(genes),
                    fitness=result.fitness,
                    reached_goal=result.reached_goal,
                    fell=result.fell,
                    trajectory=result.trajectory,
                    steps_taken=result.steps_taken,
                )
            )
        return tuple(evaluated)

    def _breed(self, evaluated: Sequence[PlatformerIndividual]) -> list[Chromosome]:
        cfg = self.config
        ranked = sort_by_fitness_desc(evaluated)
        genomes: list[Chromosome] = [ind.genes for ind in ranked[: cfg.elite_count]]

        while len(genomes) < cfg.population_size:
            parent_a = self.selector(ranked, self.rng)
            parent_b = self.selector(ranked, self.rng)
            if self.rng.next() < cfg.crossover_rate:
                genes = uniform_crossover(parent_a.genes, parent_b.genes, self.rng)
            else:
                genes = parent_a.genes
            genomes.append(
                gaussian_mutation(genes, GENE_BOUNDS, cfg.mutation_rate, cfg.mutation_std_dev, self.rng)
            )
        return genomes

    @staticmethod
    def _stats(evaluated: Sequence[PlatformerIndividual], generation: int) -> TrainerHistoryEntry:
        if not evaluated:
            return TrainerHistoryEntry(generation=generation, best_fitness=0, average_fitness=0, reached=0)
        return TrainerHistoryEntry(
            generation=generation,
            best_fitness=max(ind.fitness for ind in evaluated),
            average_fitness=sum(ind.fitness for ind in evaluated) / len(evaluated),
            reached=sum(1 for ind in evaluated if ind.reached_goal),
        )

    def __repr__(self) -> str:
        return (
            f"PlatformerTrainer(generation={self.state.generation}, "
            f"seed={self.config.seed}, running={self.state.running})"
        )
