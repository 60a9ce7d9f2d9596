"""Built-in closed-form fitness surfaces (all maximised).

| id      | name                    | genes | suggested bounds |
|---------|-------------------------|-------|------------------|
| preset1 | Sinusoidal Ridge (2D)   | 2     | [-pi, pi]^2      |
| preset2 | Offset Bowl (2D)        | 2     | [-6, 6]^2        |
| preset3 | Inverted Rastrigin (3D) | 3     | [-5.12, 5.12]^3  |
| preset4 | Himmelblau Peaks (2D)   | 2     | [-6, 6]^2        |
| preset5 | Offset Plateau (4D)     | 4     | [-4, 4]^4        |

Genes beyond the chromosome length read as zero.
"""

from __future__ import annotations

from enum import Enum
import math
from typing import Callable, Sequence

from pydantic import BaseModel, ConfigDict

from evosandbox.evolution.models import Bound

__all__ = [
    "FitnessFunction",
    "FitnessPresetId",
    "FitnessPreset",
    "FITNESS_PRESETS",
    "DEFAULT_PRESET_ID",
    "get_preset",
]

FitnessFunction = Callable[[Sequence[float]], float]


class FitnessPresetId(str, Enum):
    PRESET1 = "preset1"
    PRESET2 = "preset2"
    PRESET3 = "preset3"
    PRESET4 = "preset4"
    PRESET5 = "preset5"


def _genes(genes: Sequence[float], n: int) -> list[float]:
    values = list(genes[:n])
    return values + [0.0] * (n - len(values))


def sinusoidal_ridge(genes: Sequence[float]) -> float:
    x, y = _genes(genes, 2)
    return math.sin(x) * math.cos(y) + 0.5 * math.sin(2 * x)


def offset_bowl(genes: Sequence[float]) -> float:
    x, y = _genes(genes, 2)
    bowl = -((x - 1) ** 2 + (y + 2) ** 2)
    waves = 0.6 * math.sin(3 * x) + 0.4 * math.cos(2 * y)
    return bowl + waves


def inverted_rastrigin(genes: Sequence[float]) -> float:
    values = _genes(genes, 3)
    terms = sum(v**2 - 10 * math.cos(2 * math.pi * v) for v in values)
    return 60 - (30 + terms)


def himmelblau_peaks(genes: Sequence[float]) -> float:
    x, y = _genes(genes, 2)
    term1 = (x**2 + y - 11) ** 2
    term2 = (x + y**2 - 7) ** 2
    return 300 - (term1 + term2)


def offset_plateau(genes: Sequence[float]) -> float:
    x, y, z, w = _genes(genes, 4)
    bowl = -0.7 * ((x - 1.5) ** 2 + (y + 0.75) ** 2 + (z - 0.25) ** 2 + (w + 1.25) ** 2)
    terraces = (
        0.6 * math.sin(2 * x)
        + 0.5 * math.cos(3 * y)
        + 0.4 * math.sin(2.5 * z)
        + 0.4 * math.cos(1.5 * w)
    )
    plateau = -0.2 * (abs(x) + abs(y) + abs(z) + abs(w))
    return 12 + bowl + terraces + plateau


class FitnessPreset(BaseModel):
    id: FitnessPresetId
    name: str
    description: str
    suggested_bounds: tuple[Bound, ...]
    suggested_length: int
    evaluate: FitnessFunction

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def _square(lo: float, hi: float, n: int) -> tuple[Bound, ...]:
    return tuple(Bound(min=lo, max=hi) for _ in range(n))


FITNESS_PRESETS: dict[FitnessPresetId, FitnessPreset] = {
    FitnessPresetId.PRESET1: FitnessPreset(
        id=FitnessPresetId.PRESET1,
        name="Sinusoidal Ridge (2D)",
        description="Maximise sin(x) * cos(y) + 0.5 * sin(2x) over [-pi, pi]^2.",
        suggested_bounds=_square(-math.pi, math.pi, 2),
        suggested_length=2,
        evaluate=sinusoidal_ridge,
    ),
    FitnessPresetId.PRESET2: FitnessPreset(
        id=FitnessPresetId.PRESET2,
        name="Offset Bowl (2D)",
        description="Maximise a multi-peak bowl around (1, -2).",
        suggested_bounds=_square(-6, 6, 2),
        suggested_length=2,
        evaluate=offset_bowl,
    ),
    FitnessPresetId.PRESET3: FitnessPreset(
        id=FitnessPresetId.PRESET3,
        name="Inverted Rastrigin (3D)",
        description="Multi-peak surface with a global optimum at the origin.",
        suggested_bounds=_square(-5.12, 5.12, 3),
        suggested_length=3,
        evaluate=inverted_rastrigin,
    ),
    FitnessPresetId.PRESET4: FitnessPreset(
        id=FitnessPresetId.PRESET4,
        name="Himmelblau Peaks (2D)",
        description="Himmelblau surface inverted for maximisation, four symmetric peaks.",
        suggested_bounds=_square(-6, 6, 2),
        suggested_length=2,
        evaluate=himmelblau_peaks,
    ),
    FitnessPresetId.PRESET5: FitnessPreset(
        id=FitnessPresetId.PRESET5,
        name="Offset Plateau (4D)",
        description="Plateau with gentle ridges and absolute-value penalties.",
        suggested_bounds=_square(-4, 4, 4),
        suggested_length=4,
        evaluate=offset_plateau,
    ),
}

DEFAULT_PRESET_ID = FitnessPresetId.PRESET1


def get_preset(preset_id: FitnessPresetId | str) -> FitnessPreset:
    return FITNESS_PRESETS[FitnessPresetId(preset_id)]
