"""
roomledger/engine/locks.py

Room lock registry - per-room mutual exclusion for booking mutations.
"""
from contextlib import contextmanager
from typing import Dict, Iterator
import logging
import threading

from roomledger.errors import LockTimeout

logger = logging.getLogger(__name__)


class RoomLockRegistry:
    """
    Hands out one lock per room id.

    A booking mutation holds its room's lock for the whole
    check-then-write-then-commit sequence, so two callers targeting the same
    room are serialized while callers on different rooms never contend.
    Waiting is bounded by ``timeout``; past it the caller gets LockTimeout.

    Example:
        >>> locks = RoomLockRegistry(timeout=2.0)
        >>> with locks.hold(101):
        ...     pass  # overlap check + insert + commit
    """

    def __init__(self, timeout: float = 5.0):
        self._timeout = timeout
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def timeout(self) -> float:
        return self._timeout

    def _lock_for(self, room_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[room_id] = lock
            return lock

    @contextmanager
    def hold(self, room_id: int, timeout: float = None) -> Iterator[None]:
        """Acquire the room lock for the duration of the block."""
        wait = self._timeout if timeout is None else timeout
        lock = self._lock_for(room_id)
        if not lock.acquire(timeout=wait):
            logger.warning(f"Timed out after {wait}s waiting for room {room_id} lock")
            raise LockTimeout(room_id=room_id, timeout=wait)
        try:
            yield
        finally:
            lock.release()

    def is_locked(self, room_id: int) -> bool:
        with self._registry_lock:
            lock = self._locks.get(room_id)
        return lock is not None and lock.locked()
