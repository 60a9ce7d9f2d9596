from __future__ import annotations

from typing import Sequence

from evosandbox.evolution.models import Chromosome, CrossoverMethod
from evosandbox.utils.prng import Mulberry32

__all__ = ["crossover", "cut_and_splice", "single_point_crossover", "uniform_crossover"]


def cut_and_splice(parent_a: Sequence[float], parent_b: Sequence[float], point: int) -> Chromosome:
    """``parent_a[:point] + parent_b[point:]``."""
    return tuple(parent_a[:point]) + tuple(parent_b[point:])


def single_point_crossover(
    parent_a: Sequence[float], parent_b: Sequence[float], rng: Mulberry32
) -> Chromosome:
    """Splice at a cut point drawn uniformly from ``[1, len - 1]``.

    Mismatched or too-short parents return a copy of *parent_a* without
    consuming the PRNG.
    """
    if len(parent_a) != len(parent_b) or len(parent_a) < 2:
        return tuple(parent_a)
    point = rng.next_int(len(parent_a) - 1) + 1
    return cut_and_splice(parent_a, parent_b, point)


def uniform_crossover(
    parent_a: Sequence[float], parent_b: Sequence[float], rng: Mulberry32
) -> Chromosome:
    """Fair coin per gene over the shared prefix; any tail comes from *parent_a*."""
    length = min(len(parent_a), len(parent_b))
    genes = [a if rng.next() < 0.5 else b for a, b in zip(parent_a[:length], parent_b[:length])]
    genes.extend(parent_a[length:])
    return tuple(genes)


def crossover(
    parent_a: Sequence[float],
    parent_b: Sequence[float],
    method: CrossoverMethod | str,
    rng: Mulberry32,
) -> Chromosome:
    if CrossoverMethod(method) == CrossoverMethod.SINGLE:
        return single_point_crossover(parent_a, parent_b, rng)
    return uniform_crossover(parent_a, parent_b, rng)
