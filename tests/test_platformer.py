"""Tests for the platformer level geometry, physics and scoring."""

import math

import pytest

from evosandbox.exceptions import ConfigurationError
from evosandbox.platformer import (
    DEFAULT_LEVEL,
    PlatformerConfig,
    PlatformerLevel,
    platformer_preset,
    resolve_collisions,
    simulate,
    supporting_segment,
)
from evosandbox.platformer.level import COLLISION_EPSILON
from evosandbox.platformer.models import PLATFORMER_PRESETS, normalize_platformer_config
from evosandbox.platformer.simulation import FALL_PENALTY, INVALID_FITNESS, score

SHORT_LEVEL = PlatformerLevel(
    width=20,
    height=10,
    fall_limit=-12,
    goal={"x": 5, "y": 0, "radius": 1},
    segments=[{"start": -5, "end": 20, "y": 0}],
)


def _run_right(steps):
    return [1.0, -1.0] * steps


class TestSupport:
    @pytest.mark.parametrize("x, expected_y", [(0.0, 0), (30.0, 0), (34.0, 0), (70.0, -1), (110.0, -2)])
    def test_segment_under_x(self, x, expected_y):
        assert supporting_segment(x, DEFAULT_LEVEL).y == expected_y

    @pytest.mark.parametrize("x", [31.0, 62.0, 98.0, -6.0, 121.0])
    def test_gaps_have_no_support(self, x):
        assert supporting_segment(x, DEFAULT_LEVEL) is None


class TestCollisions:
    def test_landing_from_above(self):
        hit = resolve_collisions(1.0, 0.5, 1.2, -0.3, -3.0, DEFAULT_LEVEL)
        assert (hit.y, hit.vy, hit.grounded, hit.hit_wall) == (0, 0.0, True, False)
        assert hit.x == 1.2

    def test_rising_through_platform_is_free(self):
        hit = resolve_collisions(70.0, -3.0, 70.0, -2.5, 5.0, DEFAULT_LEVEL)
        assert (hit.y, hit.vy, hit.grounded, hit.hit_wall) == (-2.5, 5.0, False, False)

    def test_no_landing_while_rising(self):
        hit = resolve_collisions(1.0, 0.5, 1.0, -0.1, 2.0, DEFAULT_LEVEL)
        assert not hit.grounded
        assert hit.y == -0.1

    def test_wall_when_entering_from_left_below(self):
        hit = resolve_collisions(63.0, -3.0, 64.5, -3.2, -2.0, DEFAULT_LEVEL)
        assert hit.hit_wall
        assert hit.x == pytest.approx(64.0 - COLLISION_EPSILON)
        assert hit.y == -3.2

    def test_wall_when_entering_from_right_below(self):
        hit = resolve_collisions(95.0, -3.0, 93.5, -3.2, -2.0, DEFAULT_LEVEL)
        assert hit.hit_wall
        assert hit.x == pytest.approx(94.0 + COLLISION_EPSILON)

    def test_free_fall_over_gap(self):
        hit = resolve_collisions(31.0, -1.0, 32.0, -2.0, -5.0, DEFAULT_LEVEL)
        assert (hit.x, hit.y, hit.vy, hit.grounded, hit.hit_wall) == (32.0, -2.0, -5.0, False, False)

    def test_walking_down_a_step(self):
        hit = resolve_collisions(63.9, -0.5, 64.1, -1.2, -2.4, DEFAULT_LEVEL)
        assert hit.grounded
        assert hit.y == -1


class TestSimulate:
    def test_idle_genome_stays_put(self):
        config = PlatformerConfig(steps=40)
        result = simulate([0.0] * config.genome_length, config)
        assert not result.fell
        assert not result.reached_goal
        assert result.steps_taken == 40
        assert len(result.trajectory) == 41
        assert result.fitness == pytest.approx(-0.05 * 40)
        assert all(frame.y == 0 and frame.grounded for frame in result.trajectory[1:])

    def test_empty_genome_idles(self):
        config = PlatformerConfig(steps=40)
        assert simulate([], config).fitness == pytest.approx(-0.05 * 40)

    def test_first_frame_is_spawn(self):
        frame = simulate([], PlatformerConfig(steps=40)).trajectory[0]
        assert (frame.x, frame.y, frame.step_index, frame.grounded) == (0.0, 0.0, 0, True)

    def test_running_right_falls_in_first_gap(self):
        config = PlatformerConfig()
        result = simulate(_run_right(config.steps), config)
        last = result.trajectory[-1]
        assert result.fell
        assert not result.reached_goal
        assert result.steps_taken < config.steps
        assert last.y < DEFAULT_LEVEL.fall_limit
        assert 30 < last.x < 34
        progress = last.x / DEFAULT_LEVEL.goal.x * 100
        assert result.fitness < progress - FALL_PENALTY

    def test_plain_jump_height(self):
        config = PlatformerConfig(steps=40)
        frame = simulate([0.0, 1.0], config).trajectory[1]
        assert frame.y == pytest.approx(0.66)
        assert not frame.grounded

    def test_reversal_charges_higher_jump(self):
        config = PlatformerConfig(steps=40)
        genes = [1.0, -1.0, -1.0, -1.0, 0.0, 1.0]
        frame = simulate(genes, config).trajectory[3]
        assert frame.y == pytest.approx(0.7044)

    def test_genes_are_clamped(self):
        config = PlatformerConfig(steps=40)
        a = simulate([5.0, 3.0], config).trajectory[1]
        b = simulate([1.0, 1.0], config).trajectory[1]
        assert (a.x, a.y) == (b.x, b.y)

    def test_goal_ends_episode_with_bonus(self):
        config = PlatformerConfig(steps=40)
        result = simulate(_run_right(config.steps), config, SHORT_LEVEL)
        assert result.reached_goal
        assert not result.fell
        assert result.steps_taken < config.steps
        assert result.trajectory[-1].x >= 5
        assert result.fitness > 200

    def test_deterministic(self):
        config = PlatformerConfig(steps=60)
        genes = [math.sin(i) for i in range(config.genome_length)]
        assert simulate(genes, config) == simulate(genes, config)


class TestScore:
    def test_non_finite_is_invalid(self):
        config = PlatformerConfig()
        assert score(10.0, 0.0, 5, math.inf, False, False, config, DEFAULT_LEVEL) == INVALID_FITNESS

    def test_progress_capped_at_goal(self):
        config = PlatformerConfig()
        far = score(500.0, 0.0, 0, 0.0, False, False, config, DEFAULT_LEVEL)
        assert far == pytest.approx(100.0)

    def test_height_bonus(self):
        config = PlatformerConfig()
        assert score(0.0, 3.0, 0, 0.0, False, False, config, DEFAULT_LEVEL) == pytest.approx(4.5)

    def test_goal_rewards_saved_steps(self):
        config = PlatformerConfig(steps=100)
        early = score(110.0, -2.0, 40, 0.0, True, False, config, DEFAULT_LEVEL)
        late = score(110.0, -2.0, 90, 0.0, True, False, config, DEFAULT_LEVEL)
        assert early > late


class TestPlatformerConfig:
    def test_defaults(self):
        config = PlatformerConfig()
        assert (config.population_size, config.steps, config.elite_count) == (60, 160, 4)
        assert config.max_generations is None
        assert config.genome_length == 320

    def test_ranges_clamp(self):
        config = PlatformerConfig(steps=5, friction=2.0, mutation_rate=0.0, population_size=3.6)
        assert config.steps == 40
        assert config.friction == 0.99
        assert config.mutation_rate == 0.01
        assert config.population_size == 10

    def test_dependent_limits(self):
        config = PlatformerConfig(population_size=10, elite_count=40, tournament_size=1)
        assert config.elite_count == 9
        assert config.tournament_size == 2

    def test_legacy_accel_key(self):
        assert normalize_platformer_config({"maxAccel": 25}).ground_accel == 25
        assert normalize_platformer_config({"max_accel": 25, "groundAccel": 10}).ground_accel == 10

    def test_camel_case_and_seed(self):
        config = normalize_platformer_config({"populationSize": 30, "seed": -1, "maxGenerations": 0})
        assert config.population_size == 30
        assert config.seed == 2**32 - 1
        assert config.max_generations == 1

    def test_with_updates(self):
        assert PlatformerConfig().with_updates(steps=80).genome_length == 160

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            normalize_platformer_config("fast")

    @pytest.mark.parametrize("name", sorted(PLATFORMER_PRESETS))
    def test_presets_build(self, name):
        assert isinstance(platformer_preset(name), PlatformerConfig)

    def test_preset_overrides(self):
        config = platformer_preset("fast", seed=3)
        assert (config.population_size, config.steps, config.seed) == (40, 120, 3)

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError):
            platformer_preset("speedrun")
