"""Shared fixtures for the evosandbox test suite."""

import math
import sys

import pytest
from loguru import logger

from evosandbox.evolution.engine import EvolutionEngine, GAConfig, normalize_config
from evosandbox.evolution.models import Individual
from evosandbox.platformer.models import PlatformerConfig


@pytest.fixture(autouse=True)
def _quiet_logger():
    """Keep loguru on the real stderr at WARNING between tests.

    The CLI re-points loguru at whatever stream click's runner installs; that
    stream is closed once the runner returns.
    """
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def scenario_config() -> GAConfig:
    """seed=1337, 10 individuals, two genes on [-pi, pi], preset1, one generation."""
    return normalize_config(
        {
            "seed": 1337,
            "population_size": 10,
            "chromosome_length": 2,
            "bounds": [[-math.pi, math.pi], [-math.pi, math.pi]],
            "fitness_fn_name": "preset1",
            "max_generations": 1,
        }
    )


@pytest.fixture
def small_config() -> GAConfig:
    return normalize_config(
        {
            "seed": 42,
            "population_size": 20,
            "chromosome_length": 2,
            "elitism": 2,
            "fitness_fn_name": "preset2",
            "max_generations": 30,
        }
    )


@pytest.fixture
def engine(small_config) -> EvolutionEngine:
    return EvolutionEngine(small_config)


@pytest.fixture
def make_population():
    """Build individuals from a list of fitness values."""

    def _make(fitnesses, length=2):
        return [
            Individual(id=f"t{i}", genes=[float(i)] * length, fitness=f)
            for i, f in enumerate(fitnesses)
        ]

    return _make


@pytest.fixture
def platformer_config() -> PlatformerConfig:
    return PlatformerConfig(population_size=10, steps=40, seed=7, max_generations=3)
