from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable

from pomodoro.core.timer import TimerMode
from pomodoro.data.store import PersistentStore


logger = logging.getLogger(__name__)

SESSIONS_KEY = "pomodoroSessions"


def local_now() -> datetime:
    return datetime.now().astimezone()


def _as_local_naive(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def week_start(today: date) -> datetime:
    """Monday 00:00 of the ISO week containing ``today``."""
    monday = today - timedelta(days=today.weekday())
    return datetime(monday.year, monday.month, monday.day)


@dataclass(frozen=True)
class StudySession:
    id: str
    date: str
    mode: TimerMode
    duration: int
    completed_at: str

    @property
    def completed_datetime(self) -> datetime:
        return datetime.fromisoformat(self.completed_at.replace("Z", "+00:00"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "mode": self.mode.value,
            "duration": self.duration,
            "completedAt": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> StudySession:
        if not isinstance(data, dict):
            raise ValueError("session record must be an object")
        session_id = data.get("id")
        day = data.get("date")
        duration = data.get("duration")
        completed_at = data.get("completedAt")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("session id must be a non-empty string")
        if not isinstance(day, str):
            raise ValueError("session date must be a string")
        date.fromisoformat(day)
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            raise ValueError("session duration must be a non-negative integer")
        if not isinstance(completed_at, str):
            raise ValueError("session completedAt must be a string")
        datetime.fromisoformat(completed_at.replace("Z", "+00:00"))
        return cls(
            id=session_id,
            date=day,
            mode=TimerMode(data.get("mode")),
            duration=duration,
            completed_at=completed_at,
        )


@dataclass(frozen=True)
class StudyStats:
    today_focus_time: int = 0
    today_sessions: int = 0
    week_focus_time: int = 0
    week_sessions: int = 0
    total_focus_time: int = 0
    total_sessions: int = 0


class SessionLedger:
    """Append-only record of completed countdowns and the focus statistics over it."""

    def __init__(self, store: PersistentStore, clock: Callable[[], datetime] = local_now) -> None:
        self._store = store
        self._clock = clock
        self._sessions: list[StudySession] = self._load()

    @property
    def sessions(self) -> tuple[StudySession, ...]:
        return tuple(self._sessions)

    def _load(self) -> list[StudySession]:
        sessions: list[StudySession] = []
        for raw in self._store.load(SESSIONS_KEY, []):
            try:
                sessions.append(StudySession.from_dict(raw))
            except (ValueError, TypeError) as exc:
                logger.warning("Dropping malformed session record: %s", exc)
        return sessions

    def _persist(self) -> None:
        self._store.save(SESSIONS_KEY, [session.to_dict() for session in self._sessions])

    def record(self, mode: TimerMode, duration_seconds: int) -> StudySession:
        now = self._clock()
        session = StudySession(
            id=f"{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
            date=_as_local_naive(now).date().isoformat(),
            mode=TimerMode(mode),
            duration=int(duration_seconds),
            completed_at=now.isoformat(timespec="seconds"),
        )
        self._sessions.append(session)
        self._persist()
        logger.info("Recorded %s session of %ds", session.mode.value, session.duration)
        return session

    def stats(self, now: datetime | None = None) -> StudyStats:
        now = _as_local_naive(now or self._clock())
        today = now.date().isoformat()
        monday = week_start(now.date())

        today_time = today_count = 0
        week_time = week_count = 0
        total_time = total_count = 0
        for session in self._sessions:
            if session.mode != TimerMode.FOCUS:
                continue
            total_time += session.duration
            total_count += 1
            if session.date == today:
                today_time += session.duration
                today_count += 1
            if _as_local_naive(session.completed_datetime) >= monday:
                week_time += session.duration
                week_count += 1

        return StudyStats(
            today_focus_time=today_time,
            today_sessions=today_count,
            week_focus_time=week_time,
            week_sessions=week_count,
            total_focus_time=total_time,
            total_sessions=total_count,
        )

    def today_sessions(self, now: datetime | None = None) -> list[StudySession]:
        today = _as_local_naive(now or self._clock()).date().isoformat()
        return [session for session in self._sessions if session.date == today]

    def clear(self) -> None:
        self._sessions = []
        self._persist()
        logger.info("Cleared session history")
