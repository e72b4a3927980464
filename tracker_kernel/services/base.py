"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel.  Concrete services receive a
    SQLAlchemy ``Session`` and persist via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  The
    orchestrators (LedgerStore, GoalOrchestrator, BudgetOrchestrator)
    open the unit of work with ``Database.session_scope()`` and hand the
    session to the services below them.

Invariants enforced:
    Services flush within the caller's transaction and never commit or
    roll back themselves.  A transaction row and its goal adjustment are
    therefore always committed (or discarded) together.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from tracker_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide list/report queries -- those belong in
          ``tracker_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
