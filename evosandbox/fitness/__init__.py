from evosandbox.fitness.presets import FITNESS_PRESETS, FitnessPresetId, get_preset
from evosandbox.fitness.strategy import (
    SENTINEL_FITNESS,
    BuiltinPreset,
    CompiledExpression,
    FitnessBuild,
    FitnessStrategy,
    build_fitness,
)

__all__ = [
    "FITNESS_PRESETS",
    "SENTINEL_FITNESS",
    "BuiltinPreset",
    "CompiledExpression",
    "FitnessBuild",
    "FitnessPresetId",
    "FitnessStrategy",
    "build_fitness",
    "get_preset",
]
