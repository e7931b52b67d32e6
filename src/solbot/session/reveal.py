"""Self-retracting display of secret material.

A reveal shows a secret to the user and schedules a single background task
that retracts it after a fixed delay. Each user has at most one pending
reveal; further requests are rejected until the retraction has run.

The retraction task is independent of the request that created it. On
shutdown, pending tasks are cancelled without retracting, so secrets
already on screen stay visible.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from solbot.session.errors import AlreadyPending
from solbot.utils.locks import KeyedLock

logger = logging.getLogger(__name__)

RevealFn = Callable[[str], Awaitable[Any]]
RetractFn = Callable[[Any], Awaitable[Any]]


@dataclass
class RevealSession:
    """A secret currently visible to a user."""

    user_id: int
    created_at: float
    expires_at: float
    handle: Any = None
    task: Optional[asyncio.Task] = None


class ExpiringRevealTracker:
    """Tracks at most one pending reveal per user."""

    def __init__(
        self,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._locks = locks or KeyedLock(name="reveal")
        self._clock = clock
        self._sessions: dict[int, RevealSession] = {}

    async def try_start(
        self,
        user_id: int,
        payload: str,
        reveal_fn: RevealFn,
        retract_fn: RetractFn,
        delay: float,
    ) -> RevealSession:
        """Reveal ``payload`` and schedule its retraction after ``delay`` seconds.

        ``reveal_fn(payload)`` displays the secret and returns a handle;
        ``retract_fn(handle)`` removes it later.

        Raises:
            AlreadyPending: A reveal is already pending for this user. No
                new task is scheduled.
            Exception: Whatever ``reveal_fn`` raises; nothing is tracked then.

        If ``cancel_all()`` runs while ``reveal_fn`` is in flight, the session
        is returned with no retraction task.
        """
        async with self._locks.hold(user_id, operation="reveal"):
            if user_id in self._sessions:
                raise AlreadyPending("A secret is already displayed for this user")
            now = self._clock()
            session = RevealSession(user_id=user_id, created_at=now, expires_at=now + delay)
            self._sessions[user_id] = session

        try:
            session.handle = await reveal_fn(payload)
        except Exception:
            self._discard(session)
            raise

        async with self._locks.hold(user_id, operation="reveal"):
            # cancel_all() ran while the secret was being sent
            if self._sessions.get(user_id) is not session:
                logger.warning(
                    f"Reveal for user {user_id} finished after shutdown; not scheduling retraction"
                )
                return session

            now = self._clock()
            session.created_at = now
            session.expires_at = now + delay
            session.task = asyncio.create_task(
                self._retract_later(session, retract_fn, delay),
                name=f"retract-reveal-{user_id}",
            )

        logger.debug(f"Reveal started for user {user_id}, retracting in {delay}s")
        return session

    async def _retract_later(
        self, session: RevealSession, retract_fn: RetractFn, delay: float
    ) -> None:
        try:
            await asyncio.sleep(delay)
            try:
                await retract_fn(session.handle)
                logger.info(f"Retracted revealed secret for user {session.user_id}")
            except Exception as e:
                logger.warning(f"Failed to retract revealed secret for user {session.user_id}: {e}")
        finally:
            self._discard(session)

    def _discard(self, session: RevealSession) -> None:
        # No await between check and delete.
        if self._sessions.get(session.user_id) is session:
            del self._sessions[session.user_id]

    def get(self, user_id: int) -> Optional[RevealSession]:
        return self._sessions.get(user_id)

    def is_pending(self, user_id: int) -> bool:
        return user_id in self._sessions

    @property
    def pending_count(self) -> int:
        return len(self._sessions)

    async def cancel_all(self) -> int:
        """Cancel every pending retraction without running it.

        Returns:
            Number of reveals left on screen
        """
        sessions = list(self._sessions.values())
        tasks = [s.task for s in sessions if s.task is not None and not s.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._sessions.clear()

        if sessions:
            logger.warning(
                f"Shutdown cancelled {len(sessions)} pending retraction(s); "
                "those secrets remain visible in chat"
            )
        return len(sessions)
