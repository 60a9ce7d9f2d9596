from evosandbox.evolution.engine.config import (
    CrossoverMethod,
    GAConfig,
    SelectionMethod,
    normalize_config,
)
from evosandbox.evolution.engine.core import EvolutionEngine
from evosandbox.evolution.engine.metrics import EngineMetrics

__all__ = [
    "CrossoverMethod",
    "EngineMetrics",
    "EvolutionEngine",
    "GAConfig",
    "SelectionMethod",
    "normalize_config",
]
