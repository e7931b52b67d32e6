"""Utility modules for Solbot."""

from solbot.utils.locks import KeyedLock, LockTimeoutError

__all__ = ["KeyedLock", "LockTimeoutError"]
