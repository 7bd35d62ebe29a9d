import logging

from pomodoro.core.logger import configure_logging
from pomodoro.core.timer import TimerSettings
from pomodoro.main import build_app_state, default_db_path


def test_default_db_path_is_in_working_directory(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert default_db_path() == tmp_path / "pomodoro.db"


def test_build_app_state_creates_database(tmp_path, qapp) -> None:
    db = tmp_path / "data" / "pomodoro.db"

    state = build_app_state(db)

    assert db.exists()
    assert state.settings == TimerSettings()
    assert state.ledger is not None
    assert state.ledger.sessions == ()


def test_configure_logging_is_idempotent(tmp_path) -> None:
    logger = logging.getLogger("pomodoro")
    previous = list(logger.handlers)
    for handler in previous:
        logger.removeHandler(handler)
    try:
        first = configure_logging(tmp_path)
        second = configure_logging(tmp_path)
        first.info("hello")
        for handler in first.handlers:
            handler.flush()

        assert first is second
        assert len(first.handlers) == 1
        assert "hello" in (tmp_path / "pomodoro.log").read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        for handler in previous:
            logger.addHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
