"""
Session timer state machine.

    idle --start--> running --pause--> paused --resume--> running
      ^                |                  |
      +------stop------+-------stop-------+

The timer never reads the clock itself: every transition takes ``now`` so the
same code serves HTTP requests, state recovery and tests. State is persisted
as a JSON payload (see ``to_stored`` / ``restore``) so a running timer
survives reloads and server restarts.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from timeapp.errors import TimerStateError
from timeapp.timeutils import ensure_utc

logger = logging.getLogger(__name__)

DEV_TAG = "_Development"
MAX_TIMER_AGE = timedelta(hours=24)


def _seconds_between(later: datetime, earlier: datetime) -> int:
    return math.floor((later - earlier).total_seconds())


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


@dataclass
class CompletedSession:
    """What a stopped timer hands over to be saved as a session."""

    start_time: datetime
    end_time: datetime
    duration_seconds: int
    name: Optional[str]
    tags: Optional[list[str]]


@dataclass
class SessionTimer:
    is_running: bool = False
    is_paused: bool = False
    start_time: Optional[datetime] = None
    paused_duration: int = 0
    pause_start_time: Optional[datetime] = None
    session_name: str = ""
    session_tags: list[str] = field(default_factory=list)

    # --- transitions ---

    def start(self, now: datetime, custom_start: Optional[datetime] = None, default_name: str = "") -> None:
        if self.is_running:
            raise TimerStateError("Timer is already running")
        now = ensure_utc(now)
        start = ensure_utc(custom_start) if custom_start else now
        # A start time in the future is clamped to now
        if start > now:
            start = now
        self.is_running = True
        self.is_paused = False
        self.start_time = start
        self.paused_duration = 0
        self.pause_start_time = None
        if not self.session_name and default_name:
            self.session_name = default_name
        logger.info("Timer started at %s", start.isoformat())

    def pause(self, now: datetime) -> None:
        if not self.is_running or self.is_paused:
            raise TimerStateError("Timer is not running")
        self.is_paused = True
        self.pause_start_time = ensure_utc(now)

    def resume(self, now: datetime) -> None:
        if not self.is_running or not self.is_paused or self.pause_start_time is None:
            raise TimerStateError("Timer is not paused")
        self.paused_duration += _seconds_between(ensure_utc(now), self.pause_start_time)
        self.is_paused = False
        self.pause_start_time = None

    def stop(self, now: datetime, development: bool = False) -> CompletedSession:
        """Finish the running session and return it; name and tags are kept for the next one."""
        if not self.is_running or self.start_time is None:
            raise TimerStateError("Timer is not running")
        end_time = ensure_utc(now)

        total_paused = self.paused_duration
        if self.is_paused and self.pause_start_time is not None:
            total_paused += _seconds_between(end_time, self.pause_start_time)
        duration = math.floor((end_time - self.start_time).total_seconds() - total_paused)

        tags = list(self.session_tags)
        if development and DEV_TAG not in tags:
            tags.append(DEV_TAG)

        completed = CompletedSession(
            start_time=self.start_time,
            end_time=end_time,
            duration_seconds=duration,
            name=self.session_name or None,
            tags=tags or None,
        )
        self.reset()
        logger.info("Timer stopped after %ss", duration)
        return completed

    def reset(self) -> None:
        self.is_running = False
        self.is_paused = False
        self.start_time = None
        self.paused_duration = 0
        self.pause_start_time = None

    def update_name(self, name: str) -> None:
        self.session_name = name

    def update_tags(self, tags: list[str]) -> None:
        self.session_tags = list(tags)

    # --- derived ---

    def elapsed(self, now: datetime) -> int:
        """Seconds of tracked (unpaused) time at ``now``."""
        if not self.is_running or self.start_time is None:
            return 0
        now = ensure_utc(now)
        paused = self.paused_duration
        if self.is_paused and self.pause_start_time is not None:
            paused += _seconds_between(now, self.pause_start_time)
        return max(0, math.floor((now - self.start_time).total_seconds() - paused))

    # --- persistence ---

    def to_stored(self) -> dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "isPaused": self.is_paused,
            "startTime": _iso(self.start_time),
            "pausedDuration": self.paused_duration,
            "pauseStartTime": _iso(self.pause_start_time),
            "currentSessionName": self.session_name,
            "currentSessionTags": list(self.session_tags),
        }

    @classmethod
    def restore(
        cls, stored: Optional[dict[str, Any]], now: datetime, max_age: timedelta = MAX_TIMER_AGE
    ) -> "SessionTimer":
        """
        Rebuild a timer from a stored payload.

        Name and tags always survive. Running state is only restored when it
        has a start time no older than ``max_age``; otherwise a fresh timer is
        returned. A payload that cannot be read is logged and discarded.
        """
        if not stored:
            return cls()
        try:
            base = cls(
                session_name=str(stored.get("currentSessionName") or ""),
                session_tags=[str(t) for t in stored.get("currentSessionTags") or []],
            )
            if not stored.get("isRunning"):
                return base

            start_time = _parse_iso(stored.get("startTime"))
            if start_time is None:
                return cls()
            if ensure_utc(now) - start_time > max_age:
                logger.info("Discarding stale timer started at %s", start_time.isoformat())
                return cls()

            base.is_running = True
            base.is_paused = bool(stored.get("isPaused"))
            base.start_time = start_time
            base.paused_duration = int(stored.get("pausedDuration") or 0)
            base.pause_start_time = _parse_iso(stored.get("pauseStartTime"))
            if base.is_paused and base.pause_start_time is None:
                # Paused without a pause start cannot be resumed; treat as running
                base.is_paused = False
            return base
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Failed to restore timer state: %s", e)
            return cls()
