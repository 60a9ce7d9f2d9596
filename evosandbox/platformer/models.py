from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Mapping

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from evosandbox.evolution.models import clamp
from evosandbox.exceptions import ConfigurationError
from evosandbox.utils.coerce import finite_number, js_round, pick
from evosandbox.utils.prng import MASK_32

__all__ = [
    "Goal",
    "PLATFORMER_PRESETS",
    "PlatformSegment",
    "PlatformerConfig",
    "PlatformerFrame",
    "PlatformerIndividual",
    "PlatformerLevel",
    "SimulationResult",
    "TrainerHistoryEntry",
    "TrainerState",
    "normalize_platformer_config",
    "platformer_preset",
]

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PlatformSegment(BaseModel):
    """Flat one-way platform spanning ``[start, end]`` at height ``y``."""

    start: float
    end: float
    y: float

    model_config = _CAMEL

    def contains(self, x: float) -> bool:
        return self.start <= x <= self.end


class Goal(BaseModel):
    x: float
    y: float
    radius: float = Field(gt=0)

    model_config = _CAMEL


class PlatformerLevel(BaseModel):
    width: float
    height: float
    floor_y: float = 0.0
    fall_limit: float
    goal: Goal
    segments: tuple[PlatformSegment, ...]

    model_config = _CAMEL


# Numeric fields: (lower, upper, integer?)
_RANGES: dict[str, tuple[float, float, bool]] = {
    "population_size": (10, 10_000, True),
    "steps": (40, 260, True),
    "mutation_rate": (0.01, 0.6, False),
    "mutation_std_dev": (0.05, 0.8, False),
    "crossover_rate": (0.1, 1.0, False),
    "dt": (0.01, 0.5, False),
    "max_speed": (2, 50, False),
    "ground_accel": (4, 32, False),
    "air_accel": (1, 20, False),
    "friction": (0.6, 0.99, False),
    "jump_velocity": (4, 16, False),
    "gravity": (0, 100, False),
    "direction_cost": (0, 1, False),
    "momentum_build_rate": (0, 3, False),
    "momentum_decay": (0, 3, False),
    "momentum_jump_boost": (0, 2, False),
    "momentum_max": (0.5, 10, False),
    "strafe_threshold": (0, 1, False),
}


class PlatformerConfig(BaseModel):
    """Trainer and physics settings for the platformer domain.

    ``ground_accel`` is also accepted as ``maxAccel``/``max_accel``.
    """

    population_size: int = 60
    steps: int = Field(default=160, description="Timesteps per episode; genome length is 2 * steps")
    mutation_rate: float = 0.08
    mutation_std_dev: float = 0.3
    crossover_rate: float = 0.7
    elite_count: int = 4
    tournament_size: int = 3
    dt: float = 0.1
    max_speed: float = 12.0
    ground_accel: float = 18.0
    air_accel: float = 8.0
    friction: float = 0.9
    jump_velocity: float = 9.0
    gravity: float = 24.0
    direction_cost: float = 0.02
    momentum_build_rate: float = 0.8
    momentum_decay: float = 0.6
    momentum_jump_boost: float = 0.6
    momentum_max: float = 3.0
    strafe_threshold: float = 0.2
    seed: int = Field(default=1337, ge=0, le=MASK_32)
    max_generations: int | None = Field(default=None, ge=1)

    model_config = _CAMEL

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        for legacy in ("max_accel", "maxAccel"):
            if legacy in data and "ground_accel" not in data and "groundAccel" not in data:
                data["ground_accel"] = data.pop(legacy)

        defaults = {name: f.get_default() for name, f in cls.model_fields.items()}
        healed: dict[str, Any] = {}
        for name, (lo, hi, integral) in _RANGES.items():
            value = finite_number(pick(data, name, defaults[name]), defaults[name])
            if integral:
                value = js_round(value)
            healed[name] = clamp(value, lo, hi)

        population = healed["population_size"]
        healed["elite_count"] = int(
            clamp(js_round(finite_number(pick(data, "elite_count"), defaults["elite_count"])), 0, population - 1)
        )
        healed["tournament_size"] = int(
            clamp(
                js_round(finite_number(pick(data, "tournament_size"), defaults["tournament_size"])),
                2,
                population,
            )
        )
        healed["seed"] = math.floor(finite_number(pick(data, "seed"), defaults["seed"])) & MASK_32

        cap = pick(data, "max_generations")
        if cap is None:
            healed["max_generations"] = None
        else:
            healed["max_generations"] = max(1, js_round(finite_number(cap, 1)))

        unknown = set(data) - set(cls.model_fields) - {to_camel(n) for n in cls.model_fields}
        if unknown:
            logger.warning("[PlatformerConfig] Ignoring unknown keys: {}", sorted(unknown))
        return healed

    @property
    def genome_length(self) -> int:
        return 2 * self.steps

    def with_updates(self, **updates: Any) -> PlatformerConfig:
        return normalize_platformer_config({**self.model_dump(), **updates})


def normalize_platformer_config(
    data: PlatformerConfig | Mapping[str, Any] | None = None,
) -> PlatformerConfig:
    """
    Raises:
        ConfigurationError: *data* is neither a PlatformerConfig nor a mapping.
    """
    if data is None:
        return PlatformerConfig()
    if isinstance(data, PlatformerConfig):
        return data
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"Platformer configuration must be a mapping, got {type(data).__name__}"
        )
    return PlatformerConfig.model_validate(dict(data))


PLATFORMER_PRESETS: dict[str, dict[str, Any]] = {
    "default": {},
    "fast": {
        "population_size": 40,
        "steps": 120,
        "mutation_rate": 0.12,
        "mutation_std_dev": 0.35,
        "elite_count": 3,
    },
    "explore": {
        "population_size": 120,
        "steps": 200,
        "mutation_rate": 0.2,
        "mutation_std_dev": 0.5,
        "crossover_rate": 0.6,
        "elite_count": 2,
    },
}


def platformer_preset(name: str, **overrides: Any) -> PlatformerConfig:
    """Named preset with *overrides* applied on top.

    Raises:
        ConfigurationError: unknown preset name.
    """
    try:
        base = PLATFORMER_PRESETS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown platformer preset {name!r}; choose from {sorted(PLATFORMER_PRESETS)}"
        ) from None
    return normalize_platformer_config({**base, **overrides})


@dataclass(slots=True, frozen=True)
class PlatformerFrame:
    x: float
    y: float
    vx: float
    vy: float
    grounded: bool
    step_index: int


@dataclass(slots=True, frozen=True)
class SimulationResult:
    fitness: float
    reached_goal: bool
    fell: bool
    trajectory: tuple[PlatformerFrame, ...]
    steps_taken: int


@dataclass(slots=True, frozen=True)
class PlatformerIndividual:
    """An evaluated control policy; ``id`` is ``g<generation>-<index>``."""

    id: str
    genes: tuple[float, ...]
    fitness: float = 0.0
    reached_goal: bool = False
    fell: bool = False
    trajectory: tuple[PlatformerFrame, ...] = ()
    steps_taken: int = 0


class TrainerHistoryEntry(BaseModel):
    generation: int = Field(ge=0)
    best_fitness: float
    average_fitness: float
    reached: int = Field(ge=0, description="Individuals that reached the goal")

    model_config = _CAMEL


@dataclass(slots=True, frozen=True)
class TrainerState:
    generation: int
    evaluated: tuple[PlatformerIndividual, ...]
    best_ever: PlatformerIndividual | None
    history: tuple[TrainerHistoryEntry, ...]
    running: bool = False

    @property
    def best(self) -> PlatformerIndividual | None:
        """Best individual of the latest evaluated generation."""
        return max(self.evaluated, key=lambda ind: ind.fitness, default=None)
