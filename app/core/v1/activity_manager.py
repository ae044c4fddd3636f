"""Inactivity tracking for authenticated sessions."""

import threading
import time
from typing import Any, Callable, Dict, Optional

from app.core.v1.exceptions import SessionExpiredException
from app.core.v1.log_manager import LogManager
from app.settings.v1.general import SETTINGS


STATE_ACTIVE = "active"
STATE_WARNING = "warning"
STATE_EXPIRED = "expired"

SESSION_EXPIRED_MESSAGE = "Tu sesión ha expirado. Por favor, inicia sesión nuevamente"


class ActivityTracker:
    """
    Tracks the last activity of each session and closes idle ones.

    A session goes ``active`` -> ``warning`` when fewer than
    ``warning_seconds`` remain before the timeout, and ``expired`` once the
    timeout elapses. Activity resets the countdown unless the session has
    already expired. Expired sessions stay expired until they are ended or
    their token expires, whichever comes first.
    """

    def __init__(
        self,
        timeout_seconds: Optional[int] = None,
        warning_seconds: Optional[int] = None,
        enabled: Optional[bool] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time
    ):
        self.logger = LogManager(__name__)
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else SETTINGS.SESSION_TIMEOUT_SECONDS
        self.warning_seconds = warning_seconds if warning_seconds is not None else SETTINGS.INACTIVITY_WARNING_SECONDS
        self.enabled = enabled if enabled is not None else SETTINGS.SESSION_TIMEOUT_ENABLED
        self._clock = clock
        self._wall_clock = wall_clock
        self._last_activity: Dict[str, float] = {}
        # session_id -> token expiry (epoch seconds), None when unknown
        self._token_expiry: Dict[str, Optional[float]] = {}
        self._expired: Dict[str, Optional[float]] = {}
        self._lock = threading.Lock()

    def _remaining(self, session_id: str, now: float) -> float:
        return self.timeout_seconds - (now - self._last_activity[session_id])

    def _state_for(self, remaining: float) -> str:
        if remaining <= 0:
            return STATE_EXPIRED
        if remaining <= self.warning_seconds:
            return STATE_WARNING
        return STATE_ACTIVE

    def _expire(self, session_id: str, now: float):
        self._last_activity.pop(session_id, None)
        self._expired[session_id] = self._token_expiry.pop(session_id, None)
        self.logger.info("Session expired due to inactivity", session_id=session_id)

    def _remember_expiry(self, session_id: str, expires_at: Optional[float]):
        if expires_at is not None:
            self._token_expiry[session_id] = float(expires_at)

    def _snapshot(self, state: str, remaining: float) -> Dict[str, Any]:
        return {
            "state": state,
            "seconds_remaining": max(int(remaining), 0),
            "timeout_seconds": self.timeout_seconds,
            "warning_seconds": self.warning_seconds,
        }

    def start(self, session_id: str, expires_at: Optional[float] = None) -> Dict[str, Any]:
        """Begin tracking a fresh session (e.g. right after login).

        Args:
            session_id: Session key taken from the access token.
            expires_at: Token expiry as epoch seconds, when known.
        """
        with self._lock:
            self._expired.pop(session_id, None)
            self._last_activity[session_id] = self._clock()
            self._remember_expiry(session_id, expires_at)
        return self._snapshot(STATE_ACTIVE, self.timeout_seconds)

    def touch(self, session_id: str, expires_at: Optional[float] = None) -> Dict[str, Any]:
        """Record activity for a session.

        Sessions seen for the first time start tracking now.

        Raises:
            SessionExpiredException: If the session already timed out.
        """
        if not self.enabled:
            return self._snapshot(STATE_ACTIVE, self.timeout_seconds)

        with self._lock:
            now = self._clock()
            if session_id in self._expired:
                raise SessionExpiredException(SESSION_EXPIRED_MESSAGE)

            self._remember_expiry(session_id, expires_at)
            if session_id in self._last_activity and self._remaining(session_id, now) <= 0:
                self._expire(session_id, now)
                raise SessionExpiredException(SESSION_EXPIRED_MESSAGE)

            self._last_activity[session_id] = now
        return self._snapshot(STATE_ACTIVE, self.timeout_seconds)

    def status(self, session_id: str) -> Dict[str, Any]:
        """Report the state of a session without counting it as activity."""
        if not self.enabled:
            return self._snapshot(STATE_ACTIVE, self.timeout_seconds)

        with self._lock:
            now = self._clock()
            if session_id in self._expired:
                return self._snapshot(STATE_EXPIRED, 0)
            if session_id not in self._last_activity:
                self._last_activity[session_id] = now
                return self._snapshot(STATE_ACTIVE, self.timeout_seconds)

            remaining = self._remaining(session_id, now)
            state = self._state_for(remaining)
            if state == STATE_EXPIRED:
                self._expire(session_id, now)
            return self._snapshot(state, remaining)

    def end(self, session_id: str):
        """Forget a session (logout)."""
        with self._lock:
            self._last_activity.pop(session_id, None)
            self._token_expiry.pop(session_id, None)
            self._expired.pop(session_id, None)

    def purge_expired(self) -> int:
        """Expire idle sessions and forget markers whose token has expired.

        Markers without a known token expiry are kept until the session is
        ended.

        Returns:
            int: Number of sessions expired or forgotten.
        """
        with self._lock:
            now = self._clock()
            stale = [sid for sid in self._last_activity if self._remaining(sid, now) <= 0]
            for sid in stale:
                self._expire(sid, now)
            wall_now = self._wall_clock()
            dead_tokens = [
                sid for sid, expires_at in self._expired.items()
                if expires_at is not None and wall_now >= expires_at
            ]
            for sid in dead_tokens:
                self._expired.pop(sid, None)
        return len(stale) + len(dead_tokens)


# Initialize global activity tracker
activity_tracker = ActivityTracker()
