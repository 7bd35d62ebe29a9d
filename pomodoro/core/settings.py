from __future__ import annotations

"""Validation boundary for user-supplied timer durations.

The engine trusts whatever settings it is given; ranges are enforced here,
before a value is persisted or handed to the engine.
"""

from pomodoro.core.timer import TimerSettings


MIN_MINUTES = 1
MAX_MINUTES = 120


class SettingsError(ValueError):
    pass


def _check_minutes(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SettingsError(f"{name} must be a whole number of minutes")
    if not MIN_MINUTES <= value <= MAX_MINUTES:
        raise SettingsError(f"{name} must be between {MIN_MINUTES} and {MAX_MINUTES} minutes")
    return value


def settings_from_minutes(focus: int, short_break: int, long_break: int) -> TimerSettings:
    return TimerSettings(
        focus=_check_minutes("focus", focus) * 60,
        short_break=_check_minutes("short_break", short_break) * 60,
        long_break=_check_minutes("long_break", long_break) * 60,
    )


def validate_settings(settings: TimerSettings) -> TimerSettings:
    """Return ``settings`` unchanged if every duration lies within 1-120 minutes."""
    for name in ("focus", "short_break", "long_break"):
        seconds = getattr(settings, name)
        if isinstance(seconds, bool) or not isinstance(seconds, int):
            raise SettingsError(f"{name} must be an integer number of seconds")
        if not MIN_MINUTES * 60 <= seconds <= MAX_MINUTES * 60:
            raise SettingsError(f"{name} must be between {MIN_MINUTES} and {MAX_MINUTES} minutes")
    return settings
