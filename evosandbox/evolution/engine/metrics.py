from __future__ import annotations

from typing import Sequence

import numpy as np
from pydantic import BaseModel, Field

from evosandbox.evolution.models import Individual

__all__ = [
    "EngineMetrics",
    "compute_average_fitness",
    "compute_diversity",
    "sort_by_fitness_desc",
]


class EngineMetrics(BaseModel):
    """Running counters for one engine instance."""

    generations_run: int = Field(default=0, description="Generations stepped since construction")
    evaluations: int = Field(default=0, description="Fitness evaluations performed")
    resets: int = Field(default=0, description="Number of reset() calls")
    fitness_fallbacks: int = Field(
        default=0, description="Resets where a custom fitness was replaced by the default preset"
    )

    def record_generation(self, evaluated: int) -> None:
        self.generations_run += 1
        self.evaluations += evaluated

    def record_reset(self, evaluated: int, fell_back: bool) -> None:
        self.resets += 1
        self.evaluations += evaluated
        if fell_back:
            self.fitness_fallbacks += 1

    def to_dict(self) -> dict[str, int]:
        return self.model_dump()


def compute_average_fitness(population: Sequence[Individual]) -> float:
    if not population:
        return 0.0
    return float(np.mean([ind.fitness for ind in population]))


def compute_diversity(population: Sequence[Individual]) -> float:
    """Root of the mean per-gene population variance."""
    if not population or not population[0].genes:
        return 0.0
    genes = np.asarray([ind.genes for ind in population], dtype=float)
    return float(np.sqrt(genes.var(axis=0).mean()))


def sort_by_fitness_desc(population: Sequence[Individual]) -> list[Individual]:
    """Stable sort, best first; equal fitness keeps population order."""
    return sorted(population, key=lambda ind: ind.fitness, reverse=True)
