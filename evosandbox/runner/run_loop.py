from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Callable, Protocol

from loguru import logger

__all__ = ["RunLoop", "Steppable"]


class Steppable(Protocol):
    """Anything driven one generation at a time: the engine or the trainer."""

    def step(self) -> Any: ...

    def get_state(self) -> Any: ...

    def set_running(self, running: bool) -> Any: ...

    def is_finished(self) -> bool: ...


class RunLoop:
    """
    Cooperative scheduler for a steppable run:
    - A tick runs only while the target reports ``running``.
    - At the generation cap the target is paused and the loop exits.
    - Every step completes before control is yielded; pausing only stops future ticks.
    """

    def __init__(
        self,
        target: Steppable,
        *,
        interval: float = 0.0,
        on_step: Callable[[Any], None] | None = None,
    ) -> None:
        self.target = target
        self.interval = interval
        self.on_step = on_step
        self.ticks = 0
        self._task: asyncio.Task | None = None

    async def run(self, max_ticks: int | None = None) -> Any:
        """Tick until paused, finished, or *max_ticks* steps have been taken."""
        name = type(self.target).__name__
        taken = 0
        while self.target.get_state().running:
            if self.target.is_finished():
                logger.info("[RunLoop] {} reached its generation cap, pausing", name)
                self.target.set_running(False)
                break
            if max_ticks is not None and taken >= max_ticks:
                break

            state = self.target.step()
            self.ticks += 1
            taken += 1
            if self.on_step is not None:
                self.on_step(state)

            await asyncio.sleep(self.interval)
        return self.target.get_state()

    def start(self) -> asyncio.Task:
        """Set the target running and schedule :meth:`run` on the current event loop."""
        if self._task and not self._task.done():
            return self._task
        self.target.set_running(True)
        self._task = asyncio.create_task(self.run(), name="evosandbox-run-loop")
        logger.info("[RunLoop] Started {}", type(self.target).__name__)
        return self._task

    def pause(self) -> None:
        self.target.set_running(False)

    async def stop(self) -> Any:
        """Pause the target and wait for the in-flight tick to finish."""
        self.pause()
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            logger.info("[RunLoop] Stopped after {} tick(s)", self.ticks)
        return self.target.get_state()

    @property
    def task(self) -> asyncio.Task | None:
        return self._task
