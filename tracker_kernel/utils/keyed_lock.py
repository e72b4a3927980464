"""
Per-key mutual exclusion.

A ``KeyedLock`` hands out one ``threading.Lock`` per key on demand and drops
it again when the last holder releases, so the table never grows with the
number of goals ever touched.

Multiple keys are always acquired in sorted order.  Two callers locking
overlapping key sets therefore cannot deadlock on each other.
"""

from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from threading import Lock

from tracker_kernel.logging_config import get_logger

logger = get_logger("utils.keyed_lock")


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = Lock()
        self.refs = 0


class KeyedLock:
    """
    Lock table keyed by arbitrary sortable hashables (goal ids, in practice).

    Usage:
        locks = KeyedLock("goal")
        with locks.hold(goal_a, goal_b):
            ...  # both held; released in reverse order on exit
    """

    def __init__(self, name: str = "keyed"):
        self.name = name
        self._guard = Lock()
        self._entries: dict[Hashable, _Entry] = {}

    def _checkout(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refs += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.refs -= 1
            if entry.refs == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        """Hold the locks for every distinct non-None key until exit."""
        ordered = sorted({k for k in keys if k is not None})
        acquired: list[tuple[Hashable, _Entry]] = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                try:
                    entry.lock.acquire()
                except BaseException:
                    self._checkin(key, entry)
                    raise
                acquired.append((key, entry))
            if ordered:
                logger.debug(
                    "keyed_lock_acquired",
                    extra={"lock_table": self.name, "keys": [str(k) for k in ordered]},
                )
            yield
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key, entry)

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._entries)
