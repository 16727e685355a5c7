"""Per-user mutual exclusion for ledger operations."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from services.exceptions import LedgerBusyError

logger = logging.getLogger(__name__)


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0  # threads holding or waiting on ``lock``


class UserLockRegistry:
    """One lock per user id, created on demand.

    Entries are dropped once no thread holds or waits on them, so the
    registry does not grow with the number of users ever seen.  Locks for
    different users are independent.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, user_id: str, timeout: float, operation: str = "") -> Iterator[None]:
        """Hold ``user_id``'s lock for the duration of the block.

        Raises:
            LedgerBusyError: If the lock is not acquired within ``timeout``
                seconds.
        """
        with self._guard:
            entry = self._entries.get(user_id)
            if entry is None:
                entry = self._entries[user_id] = _LockEntry()
            entry.holders += 1

        try:
            if not entry.lock.acquire(timeout=timeout):
                logger.warning(
                    "Timed out after %.1fs waiting for ledger lock (user=%s, op=%s)",
                    timeout, user_id, operation,
                )
                raise LedgerBusyError(
                    "Another operation on this account is in progress, try again",
                    user_id=user_id,
                    operation=operation or None,
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(user_id, None)

    def active_users(self) -> int:
        """Number of users with a held or contended lock."""
        with self._guard:
            return len(self._entries)
