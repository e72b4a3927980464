"""Utility modules for the tracker kernel."""

from tracker_kernel.utils.keyed_lock import KeyedLock

__all__ = [
    "KeyedLock",
]
