"""Database infrastructure: declarative base and the Database handle."""

from tracker_kernel.db.base import Base, TrackedBase, UUIDString
from tracker_kernel.db.engine import Database

__all__ = ["Base", "TrackedBase", "UUIDString", "Database"]
