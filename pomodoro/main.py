from __future__ import annotations

"""Headless entry point for the Pomodoro engine.

Wires the SQLite store, the session ledger and the host together, starts a
countdown in the persisted mode settings and runs the Qt event loop until the
cycle ends (immediately after one countdown unless auto-cycle is enabled).
"""

import logging
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication

from pomodoro.core.app_state import AppState
from pomodoro.core.logger import configure_logging
from pomodoro.data.storage import Storage
from pomodoro.data.store import PersistentStore


logger = logging.getLogger(__name__)


def default_db_path() -> Path:
    """Returns the default SQLite file location in the working directory."""
    return Path.cwd() / "pomodoro.db"


def build_app_state(db_path: Path) -> AppState:
    storage = Storage(db_path)
    storage.init_db()

    app_state = AppState()
    app_state.load_from_storage(PersistentStore(storage))
    return app_state


def main() -> int:
    """Creates the application dependencies and runs the event loop."""
    configure_logging()
    app = QCoreApplication(sys.argv)

    app_state = build_app_state(default_db_path())
    app_state.cycle_finished.connect(app.quit)
    app_state.session_recorded.connect(lambda session: logger.info("Stats: %s", app_state.stats()))

    app_state.start()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
