"""Run snapshots: ``{config, lastGenerations, bestIndividual}`` as JSON.

A snapshot records how to reproduce a run rather than the run itself. Restoring
resets the engine from the saved config and replays generations until it reaches
the last recorded one, which is exact because the engine is deterministic.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from evosandbox.evolution.engine.config import GAConfig, normalize_config
from evosandbox.evolution.engine.core import EvolutionEngine
from evosandbox.evolution.models import EngineState, HistoryEntry, Individual
from evosandbox.exceptions import ImportValidationError
from evosandbox.utils.coerce import finite_number, pick

__all__ = [
    "DEFAULT_WINDOW",
    "MAX_CHROMOSOME_LENGTH",
    "RunSnapshot",
    "build_snapshot",
    "dump_snapshot",
    "parse_snapshot",
    "restore_snapshot",
]

DEFAULT_WINDOW = 50
# Larger imported chromosomes are refused rather than expanded gene by gene.
MAX_CHROMOSOME_LENGTH = 100_000

# Compact history keys written by older exports.
_LEGACY_HISTORY_KEYS = {
    "gen": "generation",
    "best": "best_fitness",
    "avg": "average_fitness",
}


class RunSnapshot(BaseModel):
    config: GAConfig
    last_generations: list[HistoryEntry] = Field(default_factory=list)
    best_individual: Individual | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @property
    def target_generation(self) -> int:
        return self.last_generations[-1].generation if self.last_generations else 0


def build_snapshot(engine: EvolutionEngine, window: int = DEFAULT_WINDOW) -> RunSnapshot:
    """Snapshot of *engine* keeping the last *window* history entries."""
    state = engine.get_state()
    history = state.history[-window:] if window > 0 else []
    return RunSnapshot(
        config=engine.get_config(),
        last_generations=list(history),
        best_individual=state.best_so_far,
    )


def dump_snapshot(snapshot: RunSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True, indent=2)


def _history_entry(raw: Any) -> HistoryEntry | None:
    if not isinstance(raw, Mapping):
        return None
    data = {_LEGACY_HISTORY_KEYS.get(key, key): value for key, value in raw.items()}
    try:
        return HistoryEntry.model_validate(data)
    except ValidationError:
        return None


def _individual(raw: Any) -> Individual | None:
    if not isinstance(raw, Mapping):
        return None
    try:
        return Individual.model_validate(raw)
    except ValidationError as exc:
        logger.warning("[Snapshot] Dropping malformed best individual: {}", exc.errors()[0]["msg"])
        return None


def parse_snapshot(payload: str | bytes | Mapping[str, Any]) -> RunSnapshot:
    """Validate a snapshot document and heal its config.

    Malformed history entries and a malformed best individual are dropped;
    only a missing or non-object config, or an absurd chromosome length,
    rejects the whole payload.

    Raises:
        ImportValidationError: not JSON, not a JSON object, no usable config, or a
            chromosome longer than ``MAX_CHROMOSOME_LENGTH``.
    """
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise ImportValidationError(f"Snapshot is not valid JSON: {exc}") from exc
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise ImportValidationError("File is not a JSON object.")
    raw_config = data.get("config")
    if not isinstance(raw_config, Mapping):
        raise ImportValidationError("Missing config in export file.")
    length = finite_number(pick(raw_config, "chromosome_length", 0), 0)
    if length > MAX_CHROMOSOME_LENGTH:
        raise ImportValidationError(
            f"Chromosome length {length:g} exceeds the supported maximum of {MAX_CHROMOSOME_LENGTH}."
        )

    raw_history = data.get("lastGenerations", data.get("last_generations"))
    entries = [_history_entry(item) for item in raw_history] if isinstance(raw_history, list) else []
    history = [entry for entry in entries if entry is not None]
    if len(history) != len(entries):
        logger.warning("[Snapshot] Dropped {} malformed history entries", len(entries) - len(history))

    best = _individual(data.get("bestIndividual", data.get("best_individual")))
    return RunSnapshot(
        config=normalize_config(raw_config),
        last_generations=history,
        best_individual=best,
    )


def restore_snapshot(engine: EvolutionEngine, snapshot: RunSnapshot) -> tuple[EngineState, str | None]:
    """Reset *engine* from *snapshot* and replay up to its last recorded generation.

    The engine is left paused. Returns the final state and any fitness error
    from the reset.
    """
    _, error = engine.reset(snapshot.config)
    target = min(snapshot.target_generation, snapshot.config.max_generations)
    while engine.get_state().generation < target:
        engine.step()
    state = engine.set_running(False)
    logger.info("[Snapshot] Restored run at generation {}", state.generation)
    return state, error
