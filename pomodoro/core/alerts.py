from __future__ import annotations

import logging
from typing import Protocol

from pomodoro.core.timer import TimerMode


logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Pomodoro Timer"
NOTIFICATION_TAG = "pomodoro-timer"

COMPLETION_MESSAGES = {
    TimerMode.FOCUS: "Focus session finished!",
    TimerMode.SHORT_BREAK: "Short break is over!",
    TimerMode.LONG_BREAK: "Long break is over!",
}


class Notifier(Protocol):
    def notify(self, title: str, body: str, tag: str) -> None: ...


class SoundPlayer(Protocol):
    def play_alarm(self) -> None: ...


class LogNotifier:
    """Desktop-notification stand-in that writes to the log."""

    def notify(self, title: str, body: str, tag: str) -> None:
        logger.info("[%s] %s: %s", tag, title, body)


class SilentSoundPlayer:
    def play_alarm(self) -> None:
        logger.debug("Alarm cue suppressed")
