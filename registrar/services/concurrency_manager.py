"""
Concurrency management and thread safety components.
"""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from ..core.exceptions import ConcurrencyError


logger = logging.getLogger(__name__)


@dataclass
class LockInfo:
    """Information about a held lock."""
    lock_id: str
    resource_id: str
    holder_id: str
    acquired_at: float


class ConcurrencyManager:
    """Per-resource exclusive locking.

    A lock excludes every other holder. A holder that already has a lock on a
    resource can take another one on it. Waiters block until the lock frees or
    the timeout passes, at which point ``ConcurrencyError`` is raised.
    """

    def __init__(self, default_timeout: float = 5.0):
        self._default_timeout = default_timeout
        self._locks: Dict[str, Dict[str, LockInfo]] = {}
        self._lock_holders: Dict[str, LockInfo] = {}
        self._condition = threading.Condition()

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    def acquire_lock(self, resource_id: str, holder_id: str,
                     timeout: Optional[float] = None) -> str:
        """Acquire a lock on a resource, waiting up to ``timeout`` seconds."""
        wait_for = self._default_timeout if timeout is None else timeout
        deadline = time.monotonic() + wait_for

        with self._condition:
            while not self._can_acquire_lock(resource_id, holder_id):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("Timed out waiting for lock on %s (holder %s)",
                                   resource_id, holder_id)
                    raise ConcurrencyError(
                        f"Timeout acquiring lock on {resource_id}",
                        details={'resource_id': resource_id, 'holder_id': holder_id})
                self._condition.wait(remaining)

            lock_id = str(uuid.uuid4())
            lock_info = LockInfo(
                lock_id=lock_id,
                resource_id=resource_id,
                holder_id=holder_id,
                acquired_at=time.time(),
            )
            self._locks.setdefault(resource_id, {})[lock_id] = lock_info
            self._lock_holders[lock_id] = lock_info
            return lock_id

    def release_lock(self, lock_id: str) -> bool:
        """Release a lock and wake any waiters."""
        with self._condition:
            lock_info = self._lock_holders.pop(lock_id, None)
            if lock_info is None:
                return False

            held = self._locks[lock_info.resource_id]
            held.pop(lock_id, None)
            if not held:
                del self._locks[lock_info.resource_id]

            self._condition.notify_all()
            return True

    def _can_acquire_lock(self, resource_id: str, holder_id: str) -> bool:
        """Free, or held only by the same holder."""
        existing = self._locks.get(resource_id)
        if not existing:
            return True
        return all(info.holder_id == holder_id for info in existing.values())

    @contextmanager
    def lock(self, resource_id: str, holder_id: str,
             timeout: Optional[float] = None) -> Iterator[str]:
        """Context manager for acquiring and releasing locks."""
        lock_id = self.acquire_lock(resource_id, holder_id, timeout)
        try:
            yield lock_id
        finally:
            self.release_lock(lock_id)
