"""Named run configurations and the config edits the CLI exposes.

Every helper returns a new, normalized :class:`GAConfig`; nothing here mutates
its input.
"""

from __future__ import annotations

import math
import secrets
from typing import Any, Callable

from loguru import logger

from evosandbox.evolution.engine.config import CUSTOM_FITNESS, GAConfig, normalize_bounds
from evosandbox.evolution.engine.core import EvolutionEngine
from evosandbox.evolution.models import EngineState
from evosandbox.exceptions import ConfigurationError
from evosandbox.fitness.presets import DEFAULT_PRESET_ID, FitnessPresetId, get_preset
from evosandbox.utils.coerce import js_round

__all__ = [
    "BOUND_GAP",
    "CONFIG_PRESETS",
    "apply_config_preset",
    "apply_fitness_preset",
    "create_default_config",
    "random_seed",
    "reseed",
    "with_bound",
    "with_chromosome_length",
    "with_custom_fitness",
]

BOUND_GAP = 1e-6


def create_default_config() -> GAConfig:
    preset = get_preset(DEFAULT_PRESET_ID)
    return GAConfig(
        chromosome_length=preset.suggested_length,
        bounds=list(preset.suggested_bounds),
        fitness_fn_name=DEFAULT_PRESET_ID.value,
    )


def _fast(config: GAConfig) -> dict[str, Any]:
    return {
        "population_size": max(10, min(120, js_round(config.population_size * 0.6))),
        "mutation_rate": 0.18,
        "mutation_std_dev": 0.35,
        "max_generations": 120,
    }


def _balanced(config: GAConfig) -> dict[str, Any]:
    return {
        "population_size": 160,
        "selection": "roulette",
        "crossover": "uniform",
        "crossover_rate": 0.75,
        "mutation_rate": 0.12,
        "mutation_std_dev": 0.25,
        "elitism": 4,
        "max_generations": 250,
    }


def _explore(config: GAConfig) -> dict[str, Any]:
    return {
        "population_size": 320,
        "selection": "tournament",
        "tournament_size": 5,
        "crossover": "single",
        "crossover_rate": 0.88,
        "mutation_rate": 0.08,
        "mutation_std_dev": 0.4,
        "elitism": 6,
        "max_generations": 500,
    }


# id -> (description, updates derived from the current config)
CONFIG_PRESETS: dict[str, tuple[str, Callable[[GAConfig], dict[str, Any]]]] = {
    "fast": ("Small population for quick feedback (~60 gens).", _fast),
    "balanced": ("Moderate exploration with roulette selection.", _balanced),
    "explore": ("Large population with tournament pressure for deep search.", _explore),
}


def apply_config_preset(config: GAConfig, preset_id: str) -> GAConfig:
    """
    Raises:
        ConfigurationError: unknown preset id.
    """
    try:
        _, updates = CONFIG_PRESETS[preset_id]
    except KeyError:
        raise ConfigurationError(
            f"Unknown config preset {preset_id!r}; choose from {sorted(CONFIG_PRESETS)}"
        ) from None
    return config.with_updates(**updates(config))


def apply_fitness_preset(config: GAConfig, preset_id: FitnessPresetId | str) -> GAConfig:
    """Switch to a fitness preset and adopt its chromosome length and bounds.

    ``"custom"`` only flips the fitness selector; length and bounds are kept.
    """
    name = getattr(preset_id, "value", preset_id)
    if name == CUSTOM_FITNESS:
        return config.with_updates(fitness_fn_name=CUSTOM_FITNESS)
    preset = get_preset(name)
    return config.with_updates(
        fitness_fn_name=preset.id.value,
        chromosome_length=preset.suggested_length,
        bounds=normalize_bounds(list(preset.suggested_bounds), preset.suggested_length, ()),
    )


def with_custom_fitness(config: GAConfig, source: str) -> GAConfig:
    return config.with_updates(fitness_fn_name=CUSTOM_FITNESS, custom_fitness_code=source)


def with_chromosome_length(config: GAConfig, length: float) -> GAConfig:
    """Resize the chromosome; bounds restart from the active preset's suggestion."""
    actual = max(1, js_round(length))
    preset_id = DEFAULT_PRESET_ID if config.fitness_fn_name == CUSTOM_FITNESS else config.fitness_fn_name
    suggested = list(get_preset(preset_id).suggested_bounds)
    return config.with_updates(
        chromosome_length=actual,
        bounds=normalize_bounds(suggested, actual, ()),
    )


def with_bound(config: GAConfig, index: int, lo: float, hi: float) -> GAConfig:
    """Replace the bound of gene *index*, nudging it apart so ``min < max``.

    Non-finite limits or an index outside the chromosome leave *config* as is.
    """
    if not (math.isfinite(lo) and math.isfinite(hi)):
        logger.warning("[Config] Ignoring non-finite bound ({}, {}) for gene {}", lo, hi, index)
        return config
    if not 0 <= index < len(config.bounds):
        logger.warning("[Config] Gene index {} outside chromosome of length {}", index, len(config.bounds))
        return config
    bounds = [bound.model_dump() for bound in config.bounds]
    bounds[index] = {"min": min(lo, hi - BOUND_GAP), "max": max(hi, lo + BOUND_GAP)}
    return config.with_updates(bounds=bounds)


def random_seed() -> int:
    """Fresh 32-bit seed from the OS entropy pool."""
    return secrets.randbits(32)


def reseed(engine: EvolutionEngine) -> tuple[EngineState, str | None]:
    """Reset *engine* with its current config under a fresh random seed."""
    seed = random_seed()
    logger.info("[Config] Reseeding with {}", seed)
    return engine.reset(engine.get_config().with_updates(seed=seed))
