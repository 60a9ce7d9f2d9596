from evosandbox.evolution.strategies.selectors import (
    ParentSelector,
    RouletteParentSelector,
    TournamentParentSelector,
    build_parent_selector,
    roulette_wheel,
)

__all__ = [
    "ParentSelector",
    "RouletteParentSelector",
    "TournamentParentSelector",
    "build_parent_selector",
    "roulette_wheel",
]
