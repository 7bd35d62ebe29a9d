from __future__ import annotations

"""Validated JSON values on top of a string key-value medium.

Every failure degrades to a safe value instead of raising: unreadable or
mis-shaped entries are erased and replaced by the caller's default, and an
unavailable medium leaves the in-memory value in place.
"""

import copy
import json
import logging
import re
import sqlite3
from typing import Any, Protocol, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

DENIED_KEYS = frozenset({"__proto__", "constructor", "prototype"})

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_KEY_RE = re.compile(r"[^a-zA-Z0-9_-]")

# Errors raised by the medium itself; anything else is a programming error.
_IO_ERRORS = (sqlite3.Error, OSError)


class KeyValueBackend(Protocol):
    def read(self, key: str) -> str | None: ...

    def write(self, key: str, text: str) -> None: ...

    def delete(self, key: str) -> None: ...


def safe_key(key: str) -> str:
    cleaned = _KEY_RE.sub("", key)
    if not cleaned:
        raise ValueError(f"Storage key {key!r} has no usable characters")
    return cleaned


def json_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def conforms(value: Any, reference: Any) -> bool:
    """Check that ``value`` has the same JSON kind as ``reference``.

    Objects must also carry every key of the reference object; extra keys are
    allowed. Array items are not inspected.
    """
    if value is None:
        return False
    if json_kind(value) != json_kind(reference):
        return False
    if isinstance(reference, dict):
        return all(key in value for key in reference)
    return True


def sanitize(value: Any) -> Any:
    if isinstance(value, str):
        return _SCRIPT_RE.sub("", value)
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize(item) for key, item in value.items() if key not in DENIED_KEYS}
    return value


class PersistentStore:
    def __init__(self, backend: KeyValueBackend) -> None:
        self._backend = backend
        self._values: dict[str, Any] = {}

    def load(self, key: str, initial: T) -> T:
        key = safe_key(key)
        try:
            raw = self._backend.read(key)
        except _IO_ERRORS as exc:
            logger.warning("Error reading stored key %r: %s", key, exc)
            return copy.deepcopy(self._values.get(key, initial))

        if not raw:
            return copy.deepcopy(self._values.setdefault(key, copy.deepcopy(initial)))

        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Corrupted data for stored key %r, using default: %s", key, exc)
            return self._discard(key, initial)

        if not conforms(parsed, initial):
            logger.warning("Invalid data structure for stored key %r, using default", key)
            return self._discard(key, initial)

        value = sanitize(parsed)
        self._values[key] = value
        return copy.deepcopy(value)

    def save(self, key: str, value: Any) -> bool:
        """Persist ``value`` under ``key``; return False if it was rejected."""
        key = safe_key(key)
        cleaned = sanitize(value)
        reference = self._values.get(key)
        if reference is not None and not conforms(cleaned, reference):
            logger.warning("Attempted to store invalid data for %r", key)
            return False
        if reference is None and cleaned is None:
            logger.warning("Attempted to store invalid data for %r", key)
            return False

        try:
            payload = json.dumps(cleaned)
        except (TypeError, ValueError) as exc:
            logger.warning("Value for %r is not serializable: %s", key, exc)
            return False

        self._values[key] = cleaned
        try:
            self._backend.write(key, payload)
        except _IO_ERRORS as exc:
            logger.warning("Error writing stored key %r, keeping in-memory value: %s", key, exc)
        return True

    def remove(self, key: str) -> None:
        key = safe_key(key)
        self._values.pop(key, None)
        try:
            self._backend.delete(key)
        except _IO_ERRORS as exc:
            logger.warning("Error removing stored key %r: %s", key, exc)

    def _discard(self, key: str, initial: T) -> T:
        self._values[key] = copy.deepcopy(initial)
        try:
            self._backend.delete(key)
        except _IO_ERRORS as exc:
            logger.warning("Error clearing corrupted key %r: %s", key, exc)
        return copy.deepcopy(initial)
