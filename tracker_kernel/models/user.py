"""
Module: tracker_kernel.models.user
Responsibility: Minimal account holder record -- the owner of ledger entries,
    goals and budgets, and the recipient of threshold alerts.  Credentials
    live with the external auth layer, not here.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from tracker_kernel.db.base import TrackedBase


class User(TrackedBase):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
