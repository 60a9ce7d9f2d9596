from evosandbox.config.presets import (
    CONFIG_PRESETS,
    apply_config_preset,
    apply_fitness_preset,
    create_default_config,
    with_bound,
    with_chromosome_length,
)

__all__ = [
    "CONFIG_PRESETS",
    "apply_config_preset",
    "apply_fitness_preset",
    "create_default_config",
    "with_bound",
    "with_chromosome_length",
]
