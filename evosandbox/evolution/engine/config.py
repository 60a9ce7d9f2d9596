from __future__ import annotations

from enum import Enum
import math
from typing import Any, Mapping

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from evosandbox.evolution.models import (
    DEFAULT_BOUND,
    Bound,
    CrossoverMethod,
    SelectionMethod,
)
from evosandbox.exceptions import ConfigurationError
from evosandbox.fitness.presets import DEFAULT_PRESET_ID, FitnessPresetId, get_preset
from evosandbox.utils.coerce import finite_number, js_round, pick
from evosandbox.utils.prng import MASK_32

__all__ = [
    "CrossoverMethod",
    "GAConfig",
    "SelectionMethod",
    "normalize_bounds",
    "normalize_config",
]

MIN_POPULATION = 10
MAX_POPULATION = 1000
CUSTOM_FITNESS = "custom"


def _choice(value: Any, enum: type[Enum], default: Enum, field: str) -> str:
    if isinstance(value, enum):
        return value.value
    try:
        return enum(str(value).lower()).value
    except ValueError:
        logger.warning("[GAConfig] Unknown {} {!r}, using {}", field, value, default.value)
        return default.value


def _parse_bound(entry: Any) -> tuple[float, float]:
    if isinstance(entry, Bound):
        lo, hi = entry.min, entry.max
    elif isinstance(entry, Mapping):
        lo, hi = entry.get("min"), entry.get("max")
    elif isinstance(entry, (list, tuple)) and len(entry) == 2:
        lo, hi = entry
    else:
        lo, hi = DEFAULT_BOUND.min, DEFAULT_BOUND.max
    return finite_number(lo, DEFAULT_BOUND.min), finite_number(hi, DEFAULT_BOUND.max)


def normalize_bounds(raw: Any, length: int, fallback: tuple[Bound, ...]) -> list[dict[str, float]]:
    """Heal *raw* bounds so every entry has ``min < max`` and there are *length* of them.

    Inverted or empty intervals become ``[min(lo, hi) - 0.1, max(lo, hi)]``, or
    the next float below ``max`` where 0.1 is lost to rounding;
    missing entries repeat the last bound.
    """
    entries = list(raw) if isinstance(raw, (list, tuple)) else []
    if not entries:
        entries = list(fallback)

    healed: list[dict[str, float]] = []
    for entry in entries:
        lo, hi = _parse_bound(entry)
        if lo >= hi:
            lo, hi = min(lo, hi) - 0.1, max(lo, hi)
            if lo >= hi:
                # 0.1 vanishes below the float spacing of large magnitudes.
                lo = math.nextafter(hi, -math.inf)
                if not math.isfinite(lo):
                    lo, hi = hi, math.nextafter(hi, math.inf)
        healed.append({"min": lo, "max": hi})

    last = healed[-1] if healed else {"min": DEFAULT_BOUND.min, "max": DEFAULT_BOUND.max}
    if len(healed) >= length:
        return healed[:length]
    return healed + [dict(last) for _ in range(length - len(healed))]


class GAConfig(BaseModel):
    """Run configuration for the numeric optimization engine.

    Every numeric field is rounded and clamped into its valid range before the
    model is built, so an instance is always safe to hand to the engine.
    """

    population_size: int = Field(default=120, ge=MIN_POPULATION, le=MAX_POPULATION)
    chromosome_length: int = Field(default=2, ge=1)
    selection: SelectionMethod = SelectionMethod.ROULETTE
    tournament_size: int = Field(default=3, ge=2)
    crossover: CrossoverMethod = CrossoverMethod.SINGLE
    crossover_rate: float = Field(default=0.8, ge=0, le=1)
    mutation_rate: float = Field(default=0.1, ge=0, le=1)
    mutation_std_dev: float = Field(default=0.2, ge=0)
    elitism: int = Field(default=2, ge=0)
    bounds: list[Bound] = Field(default_factory=list)
    fitness_fn_name: str = Field(
        default=DEFAULT_PRESET_ID.value,
        description="Preset id (preset1..preset5) or 'custom'",
    )
    custom_fitness_code: str | None = Field(
        default="sin(x) * cos(y) + 0.5 * sin(2 * x)",
        description="Expression used when fitness_fn_name is 'custom'",
    )
    seed: int = Field(default=1337, ge=0, le=MASK_32)
    max_generations: int = Field(default=400, ge=1)

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        defaults = {
            name: field.get_default(call_default_factory=True)
            for name, field in cls.model_fields.items()
        }

        def number(name: str) -> float:
            return finite_number(pick(data, name, defaults[name]), defaults[name])

        def choice(name: str, enum: type[Enum]) -> str:
            return _choice(pick(data, name, defaults[name]), enum, defaults[name], name)

        chromosome_length = max(1, js_round(number("chromosome_length")))
        population_size = min(
            MAX_POPULATION, max(MIN_POPULATION, js_round(number("population_size")))
        )

        raw_name = pick(data, "fitness_fn_name", defaults["fitness_fn_name"])
        fitness_fn_name = str(getattr(raw_name, "value", raw_name))
        if (
            fitness_fn_name != CUSTOM_FITNESS
            and fitness_fn_name not in FitnessPresetId._value2member_map_
        ):
            logger.warning(
                "[GAConfig] Unknown fitness {!r}, using {}",
                fitness_fn_name,
                DEFAULT_PRESET_ID.value,
            )
            fitness_fn_name = DEFAULT_PRESET_ID.value
        preset_id = (
            DEFAULT_PRESET_ID
            if fitness_fn_name == CUSTOM_FITNESS
            else FitnessPresetId(fitness_fn_name)
        )
        custom_code = pick(data, "custom_fitness_code", defaults["custom_fitness_code"])

        return {
            "population_size": population_size,
            "chromosome_length": chromosome_length,
            "selection": choice("selection", SelectionMethod),
            "tournament_size": max(
                2, min(population_size, js_round(number("tournament_size")))
            ),
            "crossover": choice("crossover", CrossoverMethod),
            "crossover_rate": min(1.0, max(0.0, number("crossover_rate"))),
            "mutation_rate": min(1.0, max(0.0, number("mutation_rate"))),
            "mutation_std_dev": max(0.0, number("mutation_std_dev")),
            "elitism": max(0, min(population_size - 1, js_round(number("elitism")))),
            "bounds": normalize_bounds(
                pick(data, "bounds"),
                chromosome_length,
                get_preset(preset_id).suggested_bounds,
            ),
            "fitness_fn_name": fitness_fn_name,
            "custom_fitness_code": None if custom_code is None else str(custom_code),
            "seed": math.floor(number("seed")) & MASK_32,
            "max_generations": max(1, js_round(number("max_generations"))),
        }

    def with_updates(self, **updates: Any) -> GAConfig:
        """Normalized copy with *updates* applied."""
        return normalize_config({**self.model_dump(), **updates})

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def normalize_config(data: GAConfig | Mapping[str, Any] | None = None) -> GAConfig:
    """Build a healed :class:`GAConfig` from a config or a plain mapping.

    Raises:
        ConfigurationError: *data* is neither a GAConfig nor a mapping.
    """
    if data is None:
        return GAConfig()
    if isinstance(data, GAConfig):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")
    return GAConfig.model_validate(dict(data))
