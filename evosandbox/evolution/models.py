from __future__ import annotations

from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "Bound",
    "Chromosome",
    "CrossoverMethod",
    "DEFAULT_BOUND",
    "EngineState",
    "HistoryEntry",
    "Individual",
    "SelectionMethod",
    "bound_for",
    "clamp",
    "clamp_to_bounds",
]

Chromosome = tuple[float, ...]


class SelectionMethod(str, Enum):
    ROULETTE = "roulette"
    TOURNAMENT = "tournament"


class CrossoverMethod(str, Enum):
    SINGLE = "single"
    UNIFORM = "uniform"


class Bound(BaseModel):
    """Closed gene interval; values are clamped into it, never wrapped."""

    min: float
    max: float

    model_config = ConfigDict(frozen=True)

    def clamp(self, value: float) -> float:
        return clamp(value, self.min, self.max)


DEFAULT_BOUND = Bound(min=-10.0, max=10.0)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def bound_for(bounds: Sequence[Bound], index: int) -> Bound:
    """Bound for gene *index*; the last bound repeats past the end of the list."""
    if index < len(bounds):
        return bounds[index]
    if bounds:
        return bounds[-1]
    return DEFAULT_BOUND


def clamp_to_bounds(genes: Sequence[float], bounds: Sequence[Bound]) -> Chromosome:
    return tuple(bound_for(bounds, i).clamp(value) for i, value in enumerate(genes))


class Individual(BaseModel):
    """A chromosome together with its fitness and lineage."""

    id: str = Field(description="Run-scoped identifier, never reused within a run")
    genes: Chromosome = Field(description="Immutable gene sequence")
    fitness: float = Field(description="Evaluator output for exactly these genes")
    parents: tuple[str, ...] | None = Field(
        default=None, description="Parent ids; None for the initial population"
    )

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @field_validator("genes", mode="before")
    @classmethod
    def _as_tuple(cls, v):
        return tuple(v)


class HistoryEntry(BaseModel):
    generation: int = Field(ge=0)
    best_fitness: float
    average_fitness: float
    diversity: float = Field(ge=0)

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class EngineState(BaseModel):
    """Snapshot of an engine at a generation boundary."""

    generation: int = 0
    population: list[Individual] = Field(default_factory=list)
    best_so_far: Individual | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    running: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @property
    def best(self) -> Individual | None:
        """Best individual of the current generation."""
        if not self.population:
            return None
        return max(self.population, key=lambda ind: ind.fitness)
