from __future__ import annotations

from typing import Sequence

from evosandbox.evolution.models import Bound, Chromosome, bound_for
from evosandbox.utils.prng import Mulberry32

__all__ = ["gaussian_mutation"]


def gaussian_mutation(
    genes: Sequence[float],
    bounds: Sequence[Bound],
    mutation_rate: float,
    std_dev: float,
    rng: Mulberry32,
) -> Chromosome:
    """Perturb each gene with probability *mutation_rate* by N(0, std_dev).

    Every gene is clamped to its bound whether or not it was perturbed.
    """
    mutated = []
    for i, value in enumerate(genes):
        bound = bound_for(bounds, i)
        if rng.next() < mutation_rate:
            value = value + rng.next_gaussian(0.0, std_dev)
        mutated.append(bound.clamp(value))
    return tuple(mutated)
