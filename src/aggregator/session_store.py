#!/usr/bin/env python3
"""
Session store for authenticated sources.

Holds at most one Session per domain and makes sure only one login per domain
is ever in flight: concurrent callers wait for the running login instead of
starting their own.
"""

import asyncio
import logging
import threading
from typing import Awaitable, Callable, Dict, List, Optional

from .models.session import Session

logger = logging.getLogger(__name__)

LoginCallable = Callable[[], Awaitable[Session]]


def _consume_exception(task: 'asyncio.Task') -> None:
    # Waiters may all have been cancelled; keep asyncio from warning about it
    if not task.cancelled():
        task.exception()


class SessionStore:
    """
    Domain-keyed session registry.

    Reads are lock-free lookups; every mutation takes the store lock. Sessions
    never expire on their own, they are only replaced after `invalidate`.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._lock = threading.RLock()

    def get(self, domain: str) -> Optional[Session]:
        """Return the current valid session for a domain, if any."""
        session = self._sessions.get(domain)
        if session is not None and session.valid:
            return session
        return None

    def put(self, domain: str, session: Session) -> None:
        """Store a session, replacing any previous one for the domain."""
        if session.domain and session.domain != domain:
            raise ValueError(f"Session for {session.domain} cannot be stored under {domain}")

        with self._lock:
            previous = self._sessions.get(domain)
            if previous is not None and previous is not session:
                previous.valid = False
            self._sessions[domain] = session
        logger.debug(f"Stored session for {domain}")

    def invalidate(self, domain: str, session: Optional[Session] = None) -> bool:
        """
        Drop the session for a domain.

        Args:
            domain: Domain to invalidate
            session: When given, only invalidate if this is still the current
                session (another task may already have logged in again)

        Returns:
            True if a session was invalidated
        """
        with self._lock:
            current = self._sessions.get(domain)
            if current is None:
                return False
            if session is not None and current is not session:
                return False

            current.valid = False
            del self._sessions[domain]

        logger.info(f"Invalidated session for {domain}")
        return True

    async def get_or_login(self, domain: str, login: LoginCallable) -> Session:
        """
        Return the session for a domain, logging in if there is none.

        Concurrent callers for the same domain share a single login call and
        all observe its result, including its exception.
        """
        session = self.get(domain)
        if session is not None:
            return session

        with self._lock:
            session = self.get(domain)
            if session is not None:
                return session

            task = self._inflight.get(domain)
            if task is None:
                logger.info(f"Logging in to {domain}")
                task = asyncio.ensure_future(self._run_login(domain, login))
                task.add_done_callback(_consume_exception)
                self._inflight[domain] = task
            else:
                logger.debug(f"Waiting for in-flight login to {domain}")

        # Shielded so one cancelled waiter does not abort the shared login
        return await asyncio.shield(task)

    async def _run_login(self, domain: str, login: LoginCallable) -> Session:
        try:
            session = await login()
            self.put(domain, session)
            return session
        finally:
            with self._lock:
                self._inflight.pop(domain, None)

    def login_in_progress(self, domain: str) -> bool:
        return domain in self._inflight

    def domains(self) -> List[str]:
        """Domains that currently hold a valid session."""
        with self._lock:
            return sorted(domain for domain, session in self._sessions.items() if session.valid)

    def clear(self) -> None:
        with self._lock:
            for session in self._sessions.values():
                session.valid = False
            self._sessions.clear()
