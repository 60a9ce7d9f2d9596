"""Static level geometry and the collision routine used by the simulator.

Platforms are flat and one-way: the agent lands on them from above, walks off
their edges and passes beneath them. Moving sideways into a platform that sits
higher than the agent is treated as hitting a wall.
"""

from __future__ import annotations

from dataclasses import dataclass

from evosandbox.platformer.models import Goal, PlatformerLevel, PlatformSegment

__all__ = [
    "COLLISION_EPSILON",
    "CollisionResult",
    "DEFAULT_LEVEL",
    "resolve_collisions",
    "supporting_segment",
]

COLLISION_EPSILON = 1e-3

DEFAULT_LEVEL = PlatformerLevel(
    width=120,
    height=32,
    floor_y=0,
    fall_limit=-12,
    goal=Goal(x=110, y=-2, radius=1),
    segments=(
        PlatformSegment(start=-5, end=30, y=0),
        PlatformSegment(start=34, end=60, y=0),
        PlatformSegment(start=64, end=82, y=-1),
        PlatformSegment(start=86, end=94, y=0),
        PlatformSegment(start=103, end=120, y=-2),
    ),
)


@dataclass(slots=True, frozen=True)
class CollisionResult:
    x: float
    y: float
    vy: float
    grounded: bool
    hit_wall: bool


def supporting_segment(x: float, level: PlatformerLevel) -> PlatformSegment | None:
    """First segment whose x-range contains *x*."""
    for segment in level.segments:
        if segment.contains(x):
            return segment
    return None


def resolve_collisions(
    prev_x: float,
    prev_y: float,
    next_x: float,
    next_y: float,
    vy: float,
    level: PlatformerLevel,
) -> CollisionResult:
    eps = COLLISION_EPSILON
    x, y = next_x, next_y
    grounded = False
    hit_wall = False

    prev_support = supporting_segment(prev_x, level)
    support = supporting_segment(next_x, level)
    if support is None:
        return CollisionResult(x=x, y=y, vy=vy, grounded=False, hit_wall=False)

    # Landing: crossed the surface from above while falling.
    if prev_y >= support.y >= next_y and vy <= 0:
        y, vy, grounded = support.y, 0.0, True

    if y < support.y - eps:
        moving_right = next_x > prev_x + eps
        moving_left = next_x < prev_x - eps
        if moving_right and prev_x < support.start <= next_x:
            x, hit_wall = support.start - eps, True
        elif moving_left and prev_x > support.end >= next_x:
            x, hit_wall = support.end + eps, True
        elif (
            prev_support is not None
            and prev_support is not support
            and support.y > min(prev_y, y) + eps
        ):
            if moving_right:
                x = support.start - eps
            elif moving_left:
                x = support.end + eps
            hit_wall = True

    return CollisionResult(x=x, y=y, vy=vy, grounded=grounded, hit_wall=hit_wall)
