import json
import sqlite3

import pytest

from pomodoro.data.storage import Storage
from pomodoro.data.store import PersistentStore, conforms, safe_key, sanitize


DEFAULT_SETTINGS = {"focus": 1500, "shortBreak": 300, "longBreak": 900}


@pytest.fixture
def storage(tmp_path) -> Storage:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    return storage


class FlakyStorage(Storage):
    def __init__(self, db_path) -> None:
        super().__init__(db_path)
        self.fail = False

    def read(self, key: str) -> str | None:
        if self.fail:
            raise sqlite3.OperationalError("database is locked")
        return super().read(key)

    def write(self, key: str, text: str) -> None:
        if self.fail:
            raise sqlite3.OperationalError("database or disk is full")
        super().write(key, text)


def test_round_trip_matches_saved_value(storage) -> None:
    store = PersistentStore(storage)
    value = {"focus": 3000, "shortBreak": 600, "longBreak": 1200, "note": "deep work"}

    assert store.save("pomodoroSettings", value) is True

    assert PersistentStore(storage).load("pomodoroSettings", DEFAULT_SETTINGS) == value


def test_missing_key_returns_default(storage) -> None:
    store = PersistentStore(storage)

    assert store.load("pomodoroAutoCycle", False) is False
    assert store.load("pomodoroSessions", []) == []


def test_load_returns_copy_of_default(storage) -> None:
    store = PersistentStore(storage)
    default: list = []

    loaded = store.load("pomodoroSessions", default)
    loaded.append("x")

    assert default == []


def test_shape_mismatch_returns_default_and_erases(storage) -> None:
    storage.write("pomodoroSettings", json.dumps({"focus": 1500, "shortBreak": 300}))
    store = PersistentStore(storage)

    assert store.load("pomodoroSettings", DEFAULT_SETTINGS) == DEFAULT_SETTINGS
    assert storage.read("pomodoroSettings") is None
    assert PersistentStore(storage).load("pomodoroSettings", DEFAULT_SETTINGS) == DEFAULT_SETTINGS


def test_type_mismatch_returns_default(storage) -> None:
    storage.write("pomodoroAutoCycle", json.dumps(1))
    storage.write("pomodoroSessions", json.dumps({"0": {}}))
    store = PersistentStore(storage)

    assert store.load("pomodoroAutoCycle", False) is False
    assert store.load("pomodoroSessions", []) == []


def test_undecodable_json_is_discarded(storage) -> None:
    storage.write("pomodoroSessions", "[{not json")
    store = PersistentStore(storage)

    assert store.load("pomodoroSessions", []) == []
    assert storage.read("pomodoroSessions") is None


def test_null_payload_is_corrupted(storage) -> None:
    storage.write("pomodoroAutoCycle", "null")

    assert PersistentStore(storage).load("pomodoroAutoCycle", True) is True
    assert storage.read("pomodoroAutoCycle") is None


def test_loaded_values_are_sanitized(storage) -> None:
    payload = {
        "focus": 1500,
        "shortBreak": 300,
        "longBreak": 900,
        "label": "read<script>alert(1)</script> notes",
        "__proto__": {"polluted": True},
    }
    storage.write("pomodoroSettings", json.dumps(payload))

    loaded = PersistentStore(storage).load("pomodoroSettings", DEFAULT_SETTINGS)

    assert loaded["label"] == "read notes"
    assert "__proto__" not in loaded


def test_save_sanitizes_before_persisting(storage) -> None:
    store = PersistentStore(storage)
    store.load("pomodoroSessions", [])

    store.save("pomodoroSessions", [{"id": "<SCRIPT src=x></SCRIPT>abc", "constructor": "x"}])

    assert json.loads(storage.read("pomodoroSessions")) == [{"id": "abc"}]


def test_save_rejects_shape_change_and_keeps_previous(storage) -> None:
    store = PersistentStore(storage)
    store.load("pomodoroSettings", DEFAULT_SETTINGS)
    store.save("pomodoroSettings", {"focus": 600, "shortBreak": 60, "longBreak": 600})

    assert store.save("pomodoroSettings", {"focus": 600}) is False
    assert store.save("pomodoroSettings", "600") is False

    stored = json.loads(storage.read("pomodoroSettings"))
    assert stored == {"focus": 600, "shortBreak": 60, "longBreak": 600}


def test_save_rejects_denylisted_required_key(storage) -> None:
    store = PersistentStore(storage)
    store.load("odd", {"prototype": 1})

    assert store.save("odd", {"prototype": 2}) is False


def test_transient_read_failure_keeps_memory_value(tmp_path) -> None:
    storage = FlakyStorage(tmp_path / "app.db")
    storage.init_db()
    store = PersistentStore(storage)
    store.save("pomodoroAutoCycle", True)

    storage.fail = True

    assert store.load("pomodoroAutoCycle", False) is True
    assert store.load("never-saved", "fallback") == "fallback"


def test_transient_write_failure_is_not_raised(tmp_path) -> None:
    storage = FlakyStorage(tmp_path / "app.db")
    storage.init_db()
    store = PersistentStore(storage)
    store.load("pomodoroAutoCycle", False)
    storage.fail = True

    assert store.save("pomodoroAutoCycle", True) is True
    assert store.load("pomodoroAutoCycle", False) is True

    storage.fail = False
    assert storage.read("pomodoroAutoCycle") is None


def test_key_is_restricted_to_safe_charset(storage) -> None:
    store = PersistentStore(storage)

    store.save("pomodoro Settings;DROP", {"a": 1})

    assert storage.keys() == ["pomodoroSettingsDROP"]
    assert safe_key("a-b_c.d/e") == "a-b_cde"
    with pytest.raises(ValueError):
        safe_key("../;")


def test_conforms_rules() -> None:
    assert conforms({"a": 1, "b": 2}, {"a": 0}) is True
    assert conforms({"b": 2}, {"a": 0}) is False
    assert conforms([1, "x"], []) is True
    assert conforms(True, False) is True
    assert conforms(1, False) is False
    assert conforms(True, 0) is False
    assert conforms(1.5, 0) is True
    assert conforms(None, None) is False
    assert conforms([], {}) is False


def test_sanitize_recurses_through_containers() -> None:
    value = {"outer": [{"prototype": 1, "keep": "<script>x</script>ok"}], "n": 3}

    assert sanitize(value) == {"outer": [{"keep": "ok"}], "n": 3}


def test_empty_stored_text_counts_as_absent(storage, caplog) -> None:
    storage.write("pomodoroAutoCycle", "")

    with caplog.at_level("WARNING", logger="pomodoro.data.store"):
        assert PersistentStore(storage).load("pomodoroAutoCycle", True) is True

    assert caplog.records == []
