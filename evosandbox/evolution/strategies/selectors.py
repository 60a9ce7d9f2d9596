from __future__ import annotations

from abc import ABC, abstractmethod
from bisect import bisect_left
from itertools import accumulate
from typing import TYPE_CHECKING, Protocol, Sequence

from evosandbox.evolution.models import SelectionMethod
from evosandbox.utils.prng import Mulberry32

if TYPE_CHECKING:
    from evosandbox.evolution.engine.config import GAConfig

__all__ = [
    "ParentSelector",
    "RouletteParentSelector",
    "TournamentParentSelector",
    "build_parent_selector",
    "roulette_wheel",
]

ROULETTE_EPSILON = 1e-6


class Scored(Protocol):
    @property
    def fitness(self) -> float: ...


def roulette_wheel(population: Sequence[Scored]) -> tuple[list[float], float]:
    """Cumulative weights over ``fitness + offset`` and their total.

    The offset lifts a negative minimum just above zero so every weight is
    non-negative.
    """
    min_fitness = min(ind.fitness for ind in population)
    offset = abs(min_fitness) + ROULETTE_EPSILON if min_fitness < 0 else 0.0
    cumulative = list(accumulate(ind.fitness + offset for ind in population))
    return cumulative, cumulative[-1]


class ParentSelector(ABC):
    """Picks one parent from a (sorted) population using the run's PRNG."""

    @abstractmethod
    def select(self, population: Sequence[Scored], rng: Mulberry32) -> Scored:
        pass

    def __call__(self, population: Sequence[Scored], rng: Mulberry32) -> Scored:
        if not population:
            raise ValueError("Cannot select a parent from an empty population")
        return self.select(population, rng)


class RouletteParentSelector(ParentSelector):
    """Fitness-proportional selection."""

    def select(self, population: Sequence[Scored], rng: Mulberry32) -> Scored:
        cumulative, total = roulette_wheel(population)
        if total <= 0:
            return population[rng.next_int(len(population))]
        target = rng.next() * total
        index = bisect_left(cumulative, target)
        return population[min(index, len(population) - 1)]


class TournamentParentSelector(ParentSelector):
    """Best of ``tournament_size`` uniform draws with replacement; ties keep the first."""

    def __init__(self, tournament_size: int = 3):
        self.tournament_size = tournament_size

    def select(self, population: Sequence[Scored], rng: Mulberry32) -> Scored:
        n = len(population)
        size = max(2, min(self.tournament_size, n))
        best = population[rng.next_int(n)]
        for _ in range(1, size):
            challenger = population[rng.next_int(n)]
            if challenger.fitness > best.fitness:
                best = challenger
        return best


def build_parent_selector(config: GAConfig) -> ParentSelector:
    if config.selection == SelectionMethod.TOURNAMENT:
        return TournamentParentSelector(config.tournament_size)
    return RouletteParentSelector()
