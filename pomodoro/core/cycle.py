from __future__ import annotations

import logging
from typing import Iterable

from pomodoro.core.timer import TimerEngine, TimerMode


logger = logging.getLogger(__name__)


def next_mode(current: TimerMode) -> TimerMode:
    if current == TimerMode.FOCUS:
        return TimerMode.SHORT_BREAK
    return TimerMode.FOCUS


class CycleController:
    """Auto-cycle policy layered over a TimerEngine.

    Alternates focus and short break. Modes listed in ``skip_modes`` (long
    break by default) end the chain instead of advancing it.
    """

    def __init__(
        self,
        engine: TimerEngine,
        skip_modes: Iterable[TimerMode] = (TimerMode.LONG_BREAK,),
    ) -> None:
        self._engine = engine
        self._skip_modes = frozenset(skip_modes)

    @property
    def engine(self) -> TimerEngine:
        return self._engine

    def should_advance(self, completed_mode: TimerMode, auto_cycle: bool) -> bool:
        return auto_cycle and completed_mode not in self._skip_modes

    def advance(self, now: float | None = None) -> TimerMode:
        new_mode = next_mode(self._engine.mode)
        self._engine.change_mode(new_mode)
        if new_mode == TimerMode.FOCUS:
            self._engine.increment_cycle()
        self._engine.start(now)
        logger.debug("Auto-cycle advanced to %s (cycle %d)", new_mode.value, self._engine.cycle_count)
        return new_mode
