from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from pomodoro.core.alerts import (
    COMPLETION_MESSAGES,
    NOTIFICATION_TAG,
    NOTIFICATION_TITLE,
    LogNotifier,
    Notifier,
    SilentSoundPlayer,
    SoundPlayer,
)
from pomodoro.core.cycle import CycleController
from pomodoro.core.settings import SettingsError, validate_settings
from pomodoro.core.timer import CompletionEvent, TimerEngine, TimerMode, TimerSettings, TimerSnapshot
from pomodoro.data.ledger import SessionLedger, StudySession, StudyStats
from pomodoro.data.store import PersistentStore


logger = logging.getLogger(__name__)

SETTINGS_KEY = "pomodoroSettings"
AUTO_CYCLE_KEY = "pomodoroAutoCycle"

TICK_INTERVAL_MS = 100
AUTO_CYCLE_DELAY_MS = 1000


class AppState(QObject):
    """Host that drives the engine and bridges completions to the ledger.

    Owns the repeating tick driver: it runs only while the engine is running
    and is stopped on every transition out of the running state.
    """

    state_changed = pyqtSignal()
    settings_changed = pyqtSignal(object)
    auto_cycle_changed = pyqtSignal(bool)
    timer_completed = pyqtSignal(object)
    session_recorded = pyqtSignal(object)
    cycle_finished = pyqtSignal()

    def __init__(
        self,
        engine: TimerEngine | None = None,
        notifier: Notifier | None = None,
        sound: SoundPlayer | None = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        auto_cycle_delay_ms: int = AUTO_CYCLE_DELAY_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.engine = engine or TimerEngine()
        self.cycle = CycleController(self.engine)
        self.notifier: Notifier = notifier or LogNotifier()
        self.sound: SoundPlayer = sound or SilentSoundPlayer()
        self.settings: TimerSettings = self.engine.settings
        self.auto_cycle: bool = False
        self.ledger: SessionLedger | None = None
        self._store: PersistentStore | None = None
        self._auto_cycle_delay_ms = auto_cycle_delay_ms
        self._advance_pending = False

        self.tick_timer = QTimer(self)
        self.tick_timer.setInterval(tick_interval_ms)
        self.tick_timer.timeout.connect(self._on_tick)

    def load_from_storage(self, store: PersistentStore, ledger: SessionLedger | None = None) -> None:
        self._store = store
        raw_settings = store.load(SETTINGS_KEY, TimerSettings().to_dict())
        try:
            self.settings = validate_settings(TimerSettings.from_dict(raw_settings))
        except SettingsError as exc:
            logger.warning("Stored settings rejected, using defaults: %s", exc)
            self.settings = TimerSettings()
        self.auto_cycle = bool(store.load(AUTO_CYCLE_KEY, False))
        self.ledger = ledger or SessionLedger(store)
        self.engine.update_settings(self.settings)
        self.settings_changed.emit(self.settings)
        self.auto_cycle_changed.emit(self.auto_cycle)
        self.state_changed.emit()

    def snapshot(self) -> TimerSnapshot:
        return self.engine.snapshot()

    def start(self) -> None:
        if self.engine.is_running:
            return
        if self._advance_pending:
            self._advance_cycle()
            return
        self.engine.start()
        self.tick_timer.start()
        self.state_changed.emit()

    def pause(self) -> None:
        if not self.engine.is_running:
            return
        self.tick_timer.stop()
        self.engine.pause()
        self.state_changed.emit()

    def reset(self) -> None:
        self._advance_pending = False
        self.tick_timer.stop()
        self.engine.reset()
        self.state_changed.emit()

    def change_mode(self, mode: TimerMode) -> None:
        self._advance_pending = False
        self.tick_timer.stop()
        self.engine.change_mode(mode)
        self.state_changed.emit()

    def save_settings(self, settings: TimerSettings) -> None:
        validate_settings(settings)
        self.settings = settings
        if self._store:
            self._store.save(SETTINGS_KEY, settings.to_dict())
        self.engine.update_settings(settings)
        self.settings_changed.emit(settings)
        self.state_changed.emit()

    def set_auto_cycle(self, enabled: bool) -> None:
        self.auto_cycle = bool(enabled)
        if self._store:
            self._store.save(AUTO_CYCLE_KEY, self.auto_cycle)
        self.auto_cycle_changed.emit(self.auto_cycle)
        self.state_changed.emit()

    def stats(self) -> StudyStats:
        if not self.ledger:
            return StudyStats()
        return self.ledger.stats()

    def today_sessions(self) -> list[StudySession]:
        if not self.ledger:
            return []
        return self.ledger.today_sessions()

    def clear_history(self) -> None:
        if self.ledger:
            self.ledger.clear()
        self.state_changed.emit()

    def _on_tick(self) -> None:
        self.engine.tick()
        event = self.engine.take_completion()
        if event is not None:
            self._handle_completion(event)
            return
        self.state_changed.emit()

    def _handle_completion(self, event: CompletionEvent) -> None:
        self.tick_timer.stop()
        logger.info("%s countdown completed", event.mode.value)
        if self.ledger:
            session = self.ledger.record(event.mode, event.duration_seconds)
            self.session_recorded.emit(session)
        self.sound.play_alarm()
        self.notifier.notify(NOTIFICATION_TITLE, COMPLETION_MESSAGES[event.mode], NOTIFICATION_TAG)
        self.timer_completed.emit(event)

        if self.cycle.should_advance(event.mode, self.auto_cycle):
            self._advance_pending = True
            if self._auto_cycle_delay_ms > 0:
                QTimer.singleShot(self._auto_cycle_delay_ms, self._advance_cycle)
            else:
                self._advance_cycle()
            return

        self.engine.reset()
        self.state_changed.emit()
        self.cycle_finished.emit()

    def _advance_cycle(self) -> None:
        if not self._advance_pending:
            return
        self._advance_pending = False
        self.cycle.advance()
        self.tick_timer.start()
        self.state_changed.emit()
