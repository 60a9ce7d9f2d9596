from evosandbox.platformer.level import DEFAULT_LEVEL, resolve_collisions, supporting_segment
from evosandbox.platformer.models import (
    PlatformerConfig,
    PlatformerLevel,
    SimulationResult,
    TrainerState,
    platformer_preset,
)
from evosandbox.platformer.simulation import simulate
from evosandbox.platformer.trainer import PlatformerTrainer

__all__ = [
    "DEFAULT_LEVEL",
    "PlatformerConfig",
    "PlatformerLevel",
    "PlatformerTrainer",
    "SimulationResult",
    "TrainerState",
    "platformer_preset",
    "resolve_collisions",
    "simulate",
    "supporting_segment",
]
