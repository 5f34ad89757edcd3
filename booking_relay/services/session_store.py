"""In-process conversation state, one record per client identity."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from booking_relay.logging_config import get_logger

logger = get_logger("session_store")


class BookingChannel(str, Enum):
    NONE = "none"
    EMAIL = "email"
    PHONE = "phone"


@dataclass
class Session:
    greeted: bool = False
    booking_method: BookingChannel = BookingChannel.NONE
    declined: bool = False
    last_provided: BookingChannel = BookingChannel.NONE
    closed: bool = False

    def restart(self) -> None:
        """Start a fresh sub-conversation; greeted stays as it is."""
        self.booking_method = BookingChannel.NONE
        self.declined = False
        self.last_provided = BookingChannel.NONE

    def provide(self, channel: BookingChannel, *, chosen: bool) -> None:
        self.last_provided = channel
        if chosen:
            self.booking_method = channel
        self.declined = False


class SessionStore:
    """Sessions keyed by identity, each guarded by its own lock.

    Handlers run in a thread pool, so a request holds its identity's lock
    for the whole read-modify-write of the session.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, identity: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = threading.Lock()
                self._locks[identity] = lock
            return lock

    @contextmanager
    def session(self, identity: str) -> Iterator[Session]:
        """Yield the session for identity, creating it on first use."""
        with self._lock_for(identity):
            with self._guard:
                current = self._sessions.get(identity)
                if current is None:
                    current = Session()
                    self._sessions[identity] = current
                    logger.info("Session created", extra={"context": {"identity": identity}})
            yield current

    def get(self, identity: str) -> Session | None:
        with self._guard:
            return self._sessions.get(identity)

    def reset(self) -> int:
        """Drop every session. Returns how many were cleared."""
        with self._guard:
            count = len(self._sessions)
            self._sessions.clear()
            self._locks.clear()
        logger.info("Sessions reset", extra={"context": {"cleared": count}})
        return count

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)
