from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import math
from typing import TYPE_CHECKING, Sequence

from loguru import logger

from evosandbox.evolution.models import Bound, clamp_to_bounds
from evosandbox.exceptions import FitnessCompilationError
from evosandbox.fitness.expression import compile_expression
from evosandbox.fitness.presets import (
    DEFAULT_PRESET_ID,
    FitnessFunction,
    FitnessPresetId,
    get_preset,
)

if TYPE_CHECKING:
    from evosandbox.evolution.engine.config import GAConfig

__all__ = [
    "BuiltinPreset",
    "CompiledExpression",
    "FitnessBuild",
    "FitnessStrategy",
    "SENTINEL_FITNESS",
    "build_fitness",
    "strategy_for",
]

CUSTOM_FITNESS = "custom"
SENTINEL_FITNESS: float = -1e5


class FitnessStrategy(ABC):
    """Source of the raw scoring function for one configuration."""

    @abstractmethod
    def compile(self, chromosome_length: int) -> FitnessFunction:
        """Return the raw scoring function.

        Raises:
            FitnessCompilationError: the strategy cannot produce a usable function.
        """

    @abstractmethod
    def default_bounds(self) -> tuple[Bound, ...]:
        """Bounds used when the configuration carries none."""


class BuiltinPreset(FitnessStrategy):
    def __init__(self, preset_id: FitnessPresetId | str = DEFAULT_PRESET_ID):
        self.preset = get_preset(preset_id)

    def compile(self, chromosome_length: int) -> FitnessFunction:
        return _guarded(self.preset.evaluate)

    def default_bounds(self) -> tuple[Bound, ...]:
        return self.preset.suggested_bounds

    def __repr__(self) -> str:
        return f"BuiltinPreset({self.preset.id.value})"


class CompiledExpression(FitnessStrategy):
    """User expression compiled once and probed on an all-zero chromosome."""

    def __init__(self, source: str | None):
        self.source = source or ""

    def compile(self, chromosome_length: int) -> FitnessFunction:
        fn = compile_expression(self.source)
        probe = [0.0] * max(1, chromosome_length)
        try:
            sample = fn(probe)
        except (ArithmeticError, ValueError, TypeError, IndexError, RecursionError) as exc:
            raise FitnessCompilationError(f"Custom fitness failed on probe: {exc}") from exc
        if not math.isfinite(sample):
            raise FitnessCompilationError("Custom fitness returned an invalid number.")
        return _guarded(fn)

    def default_bounds(self) -> tuple[Bound, ...]:
        return get_preset(DEFAULT_PRESET_ID).suggested_bounds

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


def _guarded(fn: FitnessFunction) -> FitnessFunction:
    """Score ``SENTINEL_FITNESS`` instead of raising or returning a non-finite value."""

    def evaluate(genes: Sequence[float]) -> float:
        try:
            value = fn(genes)
        except (ArithmeticError, ValueError, TypeError, IndexError, RecursionError) as exc:
            logger.debug("[Fitness] Evaluation failed: {}", exc)
            return SENTINEL_FITNESS
        if not math.isfinite(value):
            return SENTINEL_FITNESS
        return value

    return evaluate


@dataclass(frozen=True)
class FitnessBuild:
    """Ready-to-use fitness function plus the bounds it clamps to."""

    fn: FitnessFunction
    bounds: tuple[Bound, ...]
    strategy: FitnessStrategy
    error: str | None = None


def strategy_for(config: GAConfig) -> FitnessStrategy:
    if config.fitness_fn_name == CUSTOM_FITNESS:
        return CompiledExpression(config.custom_fitness_code)
    return BuiltinPreset(config.fitness_fn_name)


def build_fitness(config: GAConfig) -> FitnessBuild:
    """Build the fitness function for *config*, falling back to the default preset.

    A custom expression that fails to compile or probe never leaves the caller
    without a function: the default preset is used and the failure message is
    returned in ``error``.
    """
    strategy = strategy_for(config)
    error: str | None = None
    try:
        raw = strategy.compile(config.chromosome_length)
    except FitnessCompilationError as exc:
        error = str(exc)
        logger.warning("[Fitness] {} rejected, using {}: {}", strategy, DEFAULT_PRESET_ID.value, error)
        raw = _guarded(get_preset(DEFAULT_PRESET_ID).evaluate)

    bounds = tuple(config.bounds) if config.bounds else strategy.default_bounds()

    def evaluate(genes: Sequence[float]) -> float:
        return raw(clamp_to_bounds(genes, bounds))

    return FitnessBuild(fn=evaluate, bounds=bounds, strategy=strategy, error=error)
