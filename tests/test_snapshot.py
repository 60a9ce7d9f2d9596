"""Tests for snapshot export, validation and deterministic restore."""

import json

import pytest

from evosandbox.evolution.engine import EvolutionEngine
from evosandbox.exceptions import ImportValidationError
from evosandbox.snapshot import (
    DEFAULT_WINDOW,
    MAX_CHROMOSOME_LENGTH,
    RunSnapshot,
    build_snapshot,
    dump_snapshot,
    parse_snapshot,
    restore_snapshot,
)


@pytest.fixture
def stepped_engine(small_config):
    engine = EvolutionEngine(small_config)
    for _ in range(6):
        engine.step()
    return engine


class TestBuild:
    def test_keeps_window_of_history(self, stepped_engine):
        snapshot = build_snapshot(stepped_engine, window=3)
        assert [h.generation for h in snapshot.last_generations] == [4, 5, 6]
        assert snapshot.target_generation == 6

    def test_default_window_covers_short_runs(self, stepped_engine):
        assert DEFAULT_WINDOW >= 7
        assert len(build_snapshot(stepped_engine).last_generations) == 7

    def test_records_best_and_config(self, stepped_engine):
        snapshot = build_snapshot(stepped_engine)
        assert snapshot.config == stepped_engine.get_config()
        assert snapshot.best_individual == stepped_engine.get_state().best_so_far

    def test_json_uses_camel_case(self, stepped_engine):
        data = json.loads(dump_snapshot(build_snapshot(stepped_engine)))
        assert set(data) == {"config", "lastGenerations", "bestIndividual"}
        assert "populationSize" in data["config"]
        assert "bestFitness" in data["lastGenerations"][0]


class TestParse:
    def test_round_trip(self, stepped_engine):
        snapshot = build_snapshot(stepped_engine)
        assert parse_snapshot(dump_snapshot(snapshot)) == snapshot

    def test_accepts_bytes_and_mappings(self, stepped_engine):
        text = dump_snapshot(build_snapshot(stepped_engine))
        assert parse_snapshot(text.encode()) == parse_snapshot(json.loads(text))

    @pytest.mark.parametrize(
        "payload, message",
        [
            ("{not json", "not valid JSON"),
            ("[1, 2, 3]", "File is not a JSON object."),
            ('"text"', "File is not a JSON object."),
            ('{"lastGenerations": []}', "Missing config in export file."),
            ('{"config": 5}', "Missing config in export file."),
        ],
    )
    def test_rejections(self, payload, message):
        with pytest.raises(ImportValidationError, match=message):
            parse_snapshot(payload)

    @pytest.mark.parametrize("length", [1e12, "1e12", MAX_CHROMOSOME_LENGTH + 1])
    def test_oversized_chromosome_rejected(self, length):
        payload = json.dumps({"config": {"chromosomeLength": length}})
        with pytest.raises(ImportValidationError, match="exceeds the supported maximum"):
            parse_snapshot(payload)

    def test_largest_chromosome_accepted(self):
        snapshot = parse_snapshot({"config": {"chromosome_length": MAX_CHROMOSOME_LENGTH, "bounds": [[0, 1]]}})
        assert snapshot.config.chromosome_length == MAX_CHROMOSOME_LENGTH

    def test_config_is_healed(self):
        snapshot = parse_snapshot({"config": {"populationSize": 3, "selection": "bogus"}})
        assert snapshot.config.population_size == 10
        assert snapshot.config.selection.value == "roulette"
        assert snapshot.last_generations == []
        assert snapshot.best_individual is None

    def test_malformed_entries_dropped(self):
        snapshot = parse_snapshot(
            {
                "config": {},
                "lastGenerations": [
                    {"generation": 1, "bestFitness": 2.0, "averageFitness": 1.0, "diversity": 0.5},
                    {"generation": "x"},
                    7,
                ],
                "bestIndividual": {"id": "i3"},
            }
        )
        assert [h.generation for h in snapshot.last_generations] == [1]
        assert snapshot.best_individual is None

    def test_legacy_history_keys(self):
        snapshot = parse_snapshot(
            {"config": {}, "lastGenerations": [{"gen": 4, "best": 1.5, "avg": 0.5, "diversity": 0.1}]}
        )
        entry = snapshot.last_generations[0]
        assert (entry.generation, entry.best_fitness, entry.average_fitness) == (4, 1.5, 0.5)

    def test_failed_parse_leaves_engine_alone(self, stepped_engine):
        before = stepped_engine.get_state()
        with pytest.raises(ImportValidationError):
            parse_snapshot("nope")
        assert stepped_engine.get_state() is before


class TestRestore:
    def test_replays_to_recorded_generation(self, stepped_engine):
        snapshot = parse_snapshot(dump_snapshot(build_snapshot(stepped_engine)))
        fresh = EvolutionEngine()
        state, error = restore_snapshot(fresh, snapshot)
        assert error is None
        assert state.generation == 6
        assert state.running is False
        assert state.best_so_far == snapshot.best_individual
        assert state.population == stepped_engine.get_state().population

    def test_target_clamped_to_cap(self):
        snapshot = RunSnapshot.model_validate(
            {
                "config": {"populationSize": 10, "maxGenerations": 2},
                "lastGenerations": [
                    {"generation": 9, "bestFitness": 1.0, "averageFitness": 0.5, "diversity": 0.1}
                ],
            }
        )
        state, _ = restore_snapshot(EvolutionEngine(), snapshot)
        assert state.generation == 2

    def test_empty_history_restores_generation_zero(self):
        snapshot = parse_snapshot({"config": {"populationSize": 10}})
        state, _ = restore_snapshot(EvolutionEngine(), snapshot)
        assert state.generation == 0

    def test_custom_fitness_error_reported(self):
        snapshot = parse_snapshot(
            {"config": {"fitnessFnName": "custom", "customFitnessCode": "exec('1')", "populationSize": 10}}
        )
        _, error = restore_snapshot(EvolutionEngine(), snapshot)
        assert error
