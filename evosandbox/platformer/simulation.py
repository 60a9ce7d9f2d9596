from __future__ import annotations

import math
from typing import Sequence

from evosandbox.evolution.models import clamp
from evosandbox.platformer.level import DEFAULT_LEVEL, resolve_collisions
from evosandbox.platformer.models import (
    PlatformerConfig,
    PlatformerFrame,
    PlatformerLevel,
    SimulationResult,
)

__all__ = ["FALL_PENALTY", "GOAL_BONUS", "INVALID_FITNESS", "score", "simulate"]

GOAL_BONUS = 120.0
FALL_PENALTY = 40.0
STEP_COST = 0.05
SAVED_STEP_BONUS = 0.4
INVALID_FITNESS = -100.0

# Airborne friction is this much closer to 1 than the grounded factor.
AIR_FRICTION_RELIEF = 0.05
# Momentum bleeds this much faster while airborne.
AIR_MOMENTUM_DECAY = 1.35
# Minimum |vx| or |ax| for a strafe to count as moving.
MOVING_THRESHOLD = 0.25


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def simulate(
    genes: Sequence[float],
    config: PlatformerConfig,
    level: PlatformerLevel = DEFAULT_LEVEL,
) -> SimulationResult:
    """Play the open-loop policy *genes* on *level* and score it.

    Gene ``2i`` is the horizontal input and ``2i + 1`` the jump input for
    step ``i``; both are clamped to ``[-1, 1]``. A missing horizontal input
    reads as 0 and a missing jump input as -1, so a short genome idles.
    """
    x, y = 0.0, level.floor_y
    vx = vy = 0.0
    grounded = True
    reached_goal = fell = False
    total_dv = 0.0
    charge = 0.0
    last_strafe = 0

    trajectory = [PlatformerFrame(x, y, vx, vy, grounded, 0)]

    for step in range(config.steps):
        h = clamp(genes[2 * step] if 2 * step < len(genes) else 0.0, -1.0, 1.0)
        j = clamp(genes[2 * step + 1] if 2 * step + 1 < len(genes) else -1.0, -1.0, 1.0)
        strafe = _sign(h) if abs(h) >= config.strafe_threshold else 0

        ax = h * (config.ground_accel if grounded else config.air_accel)
        prev_vx = vx
        friction = config.friction if grounded else min(1.0, config.friction + AIR_FRICTION_RELIEF)
        vx = clamp((prev_vx + ax * config.dt) * friction, -config.max_speed, config.max_speed)
        total_dv += abs(vx - prev_vx)

        if grounded:
            charge = max(0.0, charge - config.momentum_decay * config.dt)
            moving = abs(prev_vx) > MOVING_THRESHOLD or abs(ax) > MOVING_THRESHOLD
            if strafe and moving:
                if last_strafe and strafe != last_strafe:
                    charge = min(config.momentum_max, charge + config.momentum_build_rate)
                last_strafe = strafe
            elif not strafe:
                last_strafe = 0
        else:
            charge = max(0.0, charge - config.momentum_decay * config.dt * AIR_MOMENTUM_DECAY)

        if grounded and j > 0.5:
            vy = config.jump_velocity + min(config.momentum_max, charge) * config.momentum_jump_boost
            charge = 0.0
            grounded = False
            last_strafe = 0

        vy -= config.gravity * config.dt

        hit = resolve_collisions(x, y, x + vx * config.dt, y + vy * config.dt, vy, level)
        x, y, vy, grounded = hit.x, hit.y, hit.vy, hit.grounded
        if hit.hit_wall:
            vx = 0.0
            charge = max(0.0, charge - config.momentum_build_rate * 0.5)

        if y < level.fall_limit:
            fell = True
            trajectory.append(PlatformerFrame(x, y, vx, vy, False, step + 1))
            break

        trajectory.append(PlatformerFrame(x, y, vx, vy, grounded, step + 1))

        if x >= level.goal.x and abs(y - level.goal.y) <= level.goal.radius:
            reached_goal = True
            break

    steps_taken = len(trajectory) - 1
    fitness = score(x, y, steps_taken, total_dv, reached_goal, fell, config, level)
    return SimulationResult(
        fitness=fitness,
        reached_goal=reached_goal,
        fell=fell,
        trajectory=tuple(trajectory),
        steps_taken=steps_taken,
    )


def score(
    x: float,
    y: float,
    steps_taken: int,
    total_dv: float,
    reached_goal: bool,
    fell: bool,
    config: PlatformerConfig,
    level: PlatformerLevel,
) -> float:
    """Progress plus height bonus minus time and twitchiness, with goal/fall adjustments."""
    goal = level.goal
    progress = min(goal.x, max(0.0, x)) / goal.x * 100
    height_bonus = max(0.0, min(goal.y + 6, y)) * 1.5
    fitness = progress + height_bonus - steps_taken * STEP_COST - total_dv * config.direction_cost
    if reached_goal:
        fitness += GOAL_BONUS + max(0, config.steps - steps_taken) * SAVED_STEP_BONUS
    if fell:
        fitness -= FALL_PENALTY
    return fitness if math.isfinite(fitness) else INVALID_FITNESS
