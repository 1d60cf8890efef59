"""Session registry with sliding inactivity expiry."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class SessionHandle(Protocol):
    """Long-lived connection bound to a session."""

    def close(self) -> None:
        """Release the connection; must be idempotent."""
        ...


class SessionEntry:
    """
    Registry slot for one session.

    Parameters
    ----------
    handle : SessionHandle
        Connection handle stored for the session
    deadline : float
        Clock value at which the session expires
    timer : asyncio.TimerHandle | None
        Pending eviction callback, if a loop was running

    """

    __slots__ = ("deadline", "handle", "timer")

    def __init__(self, handle: SessionHandle, deadline: float, timer: asyncio.TimerHandle | None) -> None:
        self.handle = handle
        self.deadline = deadline
        self.timer = timer

    def cancel_timer(self) -> None:
        """Cancel the pending eviction callback."""
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class SessionRegistry:
    """
    Map of session id to connection handle with per-session inactivity timers.

    Every ``create`` and successful ``lookup`` cancels the session's timer
    and schedules a new one ``session_timeout`` seconds ahead, so expiry is a
    sliding window. Eviction removes the entry, then calls the handle's
    ``close`` hook.

    Parameters
    ----------
    session_timeout : float
        Inactivity timeout in seconds
    clock : Callable[[], float]
        Monotonic clock used for deadlines

    """

    DEFAULT_SESSION_TIMEOUT = 30 * 60

    def __init__(
        self,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if session_timeout <= 0:
            msg = f"session_timeout must be positive, got {session_timeout}"
            raise ValueError(msg)
        self.session_timeout = session_timeout
        self._clock = clock
        self._sessions: dict[str, SessionEntry] = {}
        logger.info("Session registry initialized (timeout=%ss)", session_timeout)

    def create(self, session_id: str, handle: SessionHandle) -> None:
        """
        Register a handle under a session id and start its inactivity timer.

        An existing entry for the same id is replaced; its handle is closed
        if it differs from the new one.

        Parameters
        ----------
        session_id : str
            Session identifier
        handle : SessionHandle
            Connection handle for the session

        Raises
        ------
        ValueError
            If the session id is empty

        """
        if not session_id:
            msg = "session_id must be a non-empty string"
            raise ValueError(msg)

        previous = self._sessions.pop(session_id, None)
        if previous is not None:
            previous.cancel_timer()
            if previous.handle is not handle:
                self._close_handle(session_id, previous.handle)

        self._sessions[session_id] = SessionEntry(
            handle=handle,
            deadline=self._clock() + self.session_timeout,
            timer=self._schedule_expiry(session_id),
        )
        logger.debug("Session added: %s", session_id)

    def lookup(self, session_id: str) -> SessionHandle | None:
        """
        Return the handle for a session and refresh its inactivity timer.

        Parameters
        ----------
        session_id : str
            Session identifier

        Returns
        -------
        SessionHandle | None
            The handle, or None if the session is unknown or expired

        """
        entry = self._sessions.get(session_id)
        if entry is None:
            return None

        if self._clock() >= entry.deadline:
            # Timer has not run yet, but the window is already over.
            logger.debug("Session expired on lookup: %s", session_id)
            self.remove(session_id)
            return None

        entry.cancel_timer()
        entry.deadline = self._clock() + self.session_timeout
        entry.timer = self._schedule_expiry(session_id)
        return entry.handle

    def remove(self, session_id: str) -> None:
        """
        Remove a session, cancel its timer and close its handle.

        Removing an unknown id is a no-op.

        Parameters
        ----------
        session_id : str
            Session identifier

        """
        entry = self._sessions.pop(session_id, None)
        if entry is None:
            return
        entry.cancel_timer()
        logger.debug("Session removed: %s", session_id)
        self._close_handle(session_id, entry.handle)

    def count(self) -> int:
        """Number of active sessions."""
        return len(self._sessions)

    def list_ids(self) -> list[str]:
        """Ids of all active sessions."""
        return list(self._sessions)

    def clear(self) -> None:
        """Cancel every timer, then drop and close all sessions."""
        for entry in self._sessions.values():
            entry.cancel_timer()
        sessions, self._sessions = self._sessions, {}
        for session_id, entry in sessions.items():
            self._close_handle(session_id, entry.handle)
        logger.info("All sessions cleared (%d closed)", len(sessions))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def _schedule_expiry(self, session_id: str) -> asyncio.TimerHandle | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside an event loop, expiry is enforced on lookup only.
            return None
        return loop.call_later(self.session_timeout, self._expire, session_id)

    def _expire(self, session_id: str) -> None:
        logger.debug("Session expired after inactivity: %s", session_id)
        self.remove(session_id)

    def _close_handle(self, session_id: str, handle: SessionHandle) -> None:
        try:
            handle.close()
        except Exception as e:
            logger.warning("Error closing session %s: %s", session_id, e)
