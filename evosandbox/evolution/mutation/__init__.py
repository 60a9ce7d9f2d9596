from evosandbox.evolution.mutation.crossover import (
    crossover,
    cut_and_splice,
    single_point_crossover,
    uniform_crossover,
)
from evosandbox.evolution.mutation.gaussian import gaussian_mutation

__all__ = [
    "crossover",
    "cut_and_splice",
    "gaussian_mutation",
    "single_point_crossover",
    "uniform_crossover",
]
