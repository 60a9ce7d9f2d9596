"""Tests for fitness presets, the custom-expression compiler and strategy selection."""

import math

import pytest

from evosandbox.evolution.engine import normalize_config
from evosandbox.exceptions import FitnessCompilationError, UnsafeExpressionError
from evosandbox.fitness import (
    FITNESS_PRESETS,
    SENTINEL_FITNESS,
    BuiltinPreset,
    CompiledExpression,
    FitnessPresetId,
    build_fitness,
    get_preset,
)
from evosandbox.fitness.expression import compile_expression, normalize_source


class TestPresets:
    def test_all_presets_registered(self):
        assert set(FITNESS_PRESETS) == set(FitnessPresetId)

    def test_sinusoidal_ridge(self):
        fn = get_preset("preset1").evaluate
        assert fn([0.0, 0.0]) == 0.0
        assert fn([math.pi / 2, 0.0]) == pytest.approx(1.0)

    def test_offset_bowl_centre(self):
        fn = get_preset("preset2").evaluate
        assert fn([1.0, -2.0]) == pytest.approx(0.6 * math.sin(3) + 0.4 * math.cos(-4))

    def test_inverted_rastrigin_origin(self):
        assert get_preset("preset3").evaluate([0.0, 0.0, 0.0]) == pytest.approx(60.0)

    def test_himmelblau_peak(self):
        assert get_preset("preset4").evaluate([3.0, 2.0]) == pytest.approx(300.0)

    def test_offset_plateau_is_finite(self):
        assert math.isfinite(get_preset("preset5").evaluate([1.5, -0.75, 0.25, -1.25]))

    def test_missing_genes_read_zero(self):
        fn = get_preset("preset3").evaluate
        assert fn([0.0]) == fn([0.0, 0.0, 0.0])

    def test_suggested_bounds_match_length(self):
        for preset in FITNESS_PRESETS.values():
            assert len(preset.suggested_bounds) == preset.suggested_length

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            get_preset("preset9")


class TestExpressionCompiler:
    def test_named_genes(self):
        fn = compile_expression("sin(x) * cos(y) + 0.5 * sin(2 * x)")
        assert fn([1.0, 2.0]) == pytest.approx(math.sin(1) * math.cos(2) + 0.5 * math.sin(2))

    def test_return_and_semicolon_accepted(self):
        assert normalize_source("  return x * 2;  ") == "x * 2"
        assert compile_expression("return x * 2;")([3.0]) == 6.0

    def test_math_namespace(self):
        fn = compile_expression("Math.sin(x) + math.cos(y) + Math.PI")
        assert fn([0.0, 0.0]) == pytest.approx(1.0 + math.pi)

    def test_genes_subscript(self):
        assert compile_expression("genes[0] + genes[4]")([1.0, 0, 0, 0, 5.0]) == 6.0

    def test_missing_named_genes_are_zero(self):
        assert compile_expression("x + y + z + w")([2.0]) == 2.0

    def test_integer_literals_become_floats(self):
        assert compile_expression("7 / 2")([]) == 3.5

    def test_conditionals_and_comparisons(self):
        fn = compile_expression("x if x > 0 and y < 1 else -x")
        assert fn([2.0, 0.0]) == 2.0
        assert fn([-2.0, 0.0]) == 2.0

    def test_empty_source(self):
        with pytest.raises(FitnessCompilationError, match="Provide custom fitness code"):
            compile_expression("   ;")

    def test_syntax_error(self):
        with pytest.raises(FitnessCompilationError, match="SyntaxError"):
            compile_expression("(x + ")

    @pytest.mark.parametrize("depth", [3000, 100_000])
    def test_deeply_nested_sum_rejected(self, depth):
        with pytest.raises(FitnessCompilationError):
            compile_expression(" + ".join(["x"] * depth))

    @pytest.mark.parametrize(
        "source",
        [
            "__import__('os')",
            "x.__class__",
            "open('f')",
            "[x for x in genes]",
            "lambda: 1",
            "'text'",
            "foo + 1",
            "Math.system",
            "sin(x=1)",
            "y[0]",
        ],
    )
    def test_rejects_unsafe_constructs(self, source):
        with pytest.raises(UnsafeExpressionError):
            compile_expression(source)


class TestStrategies:
    def test_builtin_preset_bounds(self):
        strategy = BuiltinPreset("preset3")
        assert len(strategy.default_bounds()) == 3
        genes = [0.5, -1.0, 2.0]
        assert strategy.compile(3)(genes) == get_preset("preset3").evaluate(genes)

    def test_builtin_overflow_scores_sentinel(self):
        fn = BuiltinPreset("preset4").compile(2)
        assert fn([1e100, 1e100]) == SENTINEL_FITNESS

    def test_probe_rejects_exception(self):
        with pytest.raises(FitnessCompilationError):
            CompiledExpression("1 / x").compile(2)

    @pytest.mark.parametrize("source", ["log(x)", "exp(1000)", "genes[9]"])
    def test_probe_rejects_invalid_output(self, source):
        with pytest.raises(FitnessCompilationError):
            CompiledExpression(source).compile(2)

    def test_runtime_failure_scores_sentinel(self):
        fn = CompiledExpression("1 / (x - 1)").compile(2)
        assert fn([0.0, 0.0]) == -1.0
        assert fn([1.0, 0.0]) == SENTINEL_FITNESS


class TestBuildFitness:
    def test_preset_clamps_to_bounds(self):
        build = build_fitness(normalize_config({"fitness_fn_name": "preset1"}))
        assert build.error is None
        assert build.fn([100.0, 0.0]) == pytest.approx(get_preset("preset1").evaluate([math.pi, 0.0]))

    def test_custom_expression(self):
        config = normalize_config({"fitness_fn_name": "custom", "custom_fitness_code": "-(x * x)"})
        build = build_fitness(config)
        assert build.error is None
        assert isinstance(build.strategy, CompiledExpression)
        assert build.fn([2.0, 0.0]) == -4.0

    @pytest.mark.parametrize("code", ["", None, "x +", "__import__('os')", "1 / x"])
    def test_bad_custom_falls_back_to_preset1(self, code):
        config = normalize_config({"fitness_fn_name": "custom", "custom_fitness_code": code})
        build = build_fitness(config)
        assert build.error
        genes = [0.4, -1.2]
        assert build.fn(genes) == get_preset("preset1").evaluate(genes)

    def test_overlong_custom_expression_falls_back(self):
        code = " + ".join(["x"] * 3000)
        build = build_fitness(normalize_config({"fitness_fn_name": "custom", "custom_fitness_code": code}))
        assert build.error
        genes = [0.4, -1.2]
        assert build.fn(genes) == get_preset("preset1").evaluate(genes)

    def test_overflowing_preset_scores_sentinel(self):
        config = normalize_config({"fitness_fn_name": "preset4", "bounds": [[-1e100, 1e100]]})
        build = build_fitness(config)
        assert build.error is None
        assert build.fn([1e100, -1e100]) == SENTINEL_FITNESS
        assert build.fn([3.0, 2.0]) == pytest.approx(300.0)

    def test_empty_custom_message(self):
        config = normalize_config({"fitness_fn_name": "custom", "custom_fitness_code": ""})
        assert build_fitness(config).error == "Provide custom fitness code or select a preset."
