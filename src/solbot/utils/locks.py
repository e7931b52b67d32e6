"""Per-user locking for session state.

Every read-modify-write on a user's wallet, reveal or transfer entry runs
under that user's lock. Locks for different users never contend.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable, Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class KeyedLock:
    """Registry of asyncio locks, one per key.

    Example:
        locks = KeyedLock(timeout=5.0)
        async with locks.hold(user_id, operation="propose"):
            # check-then-insert on this user's entry
            ...
    """

    def __init__(self, timeout: Optional[float] = 30.0, name: str = "session"):
        """Initialize the registry.

        Args:
            timeout: Maximum time to wait for a lock (None = wait forever)
            name: Registry name used in log lines
        """
        self.timeout = timeout
        self.name = name
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def get(self, key: Hashable) -> asyncio.Lock:
        """Get or create the lock for a key."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks.setdefault(key, asyncio.Lock())
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable, operation: str = "operation") -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not acquired within the timeout
        """
        lock = self.get(key)

        try:
            if self.timeout:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(
                f"Lock timeout for {self.name} key {key} after {self.timeout}s: {operation}"
            )
            raise LockTimeoutError(
                f"Could not acquire {self.name} lock for {key} within {self.timeout}s"
            )

        logger.debug(f"Lock acquired for {self.name} key {key}: {operation}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Lock released for {self.name} key {key}: {operation}")

    def locked(self, key: Hashable) -> bool:
        """Check whether the lock for ``key`` is currently held."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def clear(self) -> None:
        """Drop all locks (useful for testing)."""
        self._locks.clear()
