from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class TimerMode(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


@dataclass(frozen=True)
class TimerSettings:
    focus: int = 25 * 60
    short_break: int = 5 * 60
    long_break: int = 15 * 60

    def duration_for(self, mode: TimerMode) -> int:
        if mode == TimerMode.FOCUS:
            return self.focus
        if mode == TimerMode.SHORT_BREAK:
            return self.short_break
        return self.long_break

    def to_dict(self) -> dict[str, int]:
        return {
            TimerMode.FOCUS.value: self.focus,
            TimerMode.SHORT_BREAK.value: self.short_break,
            TimerMode.LONG_BREAK.value: self.long_break,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimerSettings:
        return cls(
            focus=data[TimerMode.FOCUS.value],
            short_break=data[TimerMode.SHORT_BREAK.value],
            long_break=data[TimerMode.LONG_BREAK.value],
        )


@dataclass(frozen=True)
class TimerSnapshot:
    mode: TimerMode
    remaining_seconds: int
    total_seconds: int
    progress: float
    is_running: bool
    is_completed: bool
    cycle_count: int


@dataclass(frozen=True)
class CompletionEvent:
    mode: TimerMode
    duration_seconds: int


class TimerEngine:
    """Drift-free countdown engine detached from UI framework.

    Remaining time is derived from the anchor captured at start/resume, never
    decremented per tick, so missed or late ticks do not accumulate error.
    The caller owns the repeating driver that calls ``tick()`` and must stop
    it whenever the engine leaves the running state.
    """

    def __init__(
        self,
        settings: TimerSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or TimerSettings()
        self._clock = clock
        self._mode = TimerMode.FOCUS
        self._remaining_seconds = self._settings.focus
        self._baseline_seconds = self._remaining_seconds
        self._anchor: float | None = None
        self._is_running = False
        self._is_completed = False
        self._cycle_count = 0
        self._pending_completion: CompletionEvent | None = None

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def is_completed(self) -> bool:
        return self._is_completed

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def total_seconds(self) -> int:
        return self._settings.duration_for(self._mode)

    @property
    def progress(self) -> float:
        total = self.total_seconds
        if total <= 0:
            return 0.0
        return max(0.0, min(1.0, self._remaining_seconds / total))

    def start(self, now: float | None = None) -> None:
        if self._is_running:
            return
        if now is None:
            now = self._clock()
        self._is_completed = False
        self._pending_completion = None
        self._anchor = now
        self._baseline_seconds = self._remaining_seconds
        self._is_running = True

    def tick(self, now: float | None = None) -> TimerSnapshot:
        if not self._is_running or self._anchor is None:
            return self.snapshot()
        if now is None:
            now = self._clock()

        elapsed = max(0, math.floor(now - self._anchor))
        self._remaining_seconds = max(0, self._baseline_seconds - elapsed)
        if self._remaining_seconds == 0:
            self._is_running = False
            self._is_completed = True
            self._anchor = None
            self._baseline_seconds = 0
            self._pending_completion = CompletionEvent(
                mode=self._mode,
                duration_seconds=self.total_seconds,
            )
        return self.snapshot()

    def pause(self) -> None:
        if not self._is_running:
            return
        self._is_running = False
        self._baseline_seconds = self._remaining_seconds
        self._anchor = None

    def reset(self) -> None:
        self._stop()
        self._remaining_seconds = self.total_seconds
        self._baseline_seconds = self._remaining_seconds

    def change_mode(self, mode: TimerMode) -> None:
        self._stop()
        self._mode = TimerMode(mode)
        self._remaining_seconds = self.total_seconds
        self._baseline_seconds = self._remaining_seconds

    def update_settings(self, settings: TimerSettings) -> None:
        self._settings = settings
        if self._is_running:
            return
        self._remaining_seconds = self.total_seconds
        self._baseline_seconds = self._remaining_seconds

    def increment_cycle(self) -> None:
        self._cycle_count += 1

    def take_completion(self) -> CompletionEvent | None:
        event = self._pending_completion
        self._pending_completion = None
        if event is not None:
            self._is_completed = False
        return event

    def acknowledge_completion(self) -> None:
        self._is_completed = False
        self._pending_completion = None

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            mode=self._mode,
            remaining_seconds=self._remaining_seconds,
            total_seconds=self.total_seconds,
            progress=self.progress,
            is_running=self._is_running,
            is_completed=self._is_completed,
            cycle_count=self._cycle_count,
        )

    def _stop(self) -> None:
        self._is_running = False
        self._is_completed = False
        self._pending_completion = None
        self._anchor = None
