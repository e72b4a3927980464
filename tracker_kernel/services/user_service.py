"""
UserService -- minimal account records for ownership and alert delivery.

Accounts are normally provisioned by the external auth layer; this service
exists for seeding, the operator CLI and tests.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from tracker_kernel.domain.dtos import UserRecord
from tracker_kernel.exceptions import UserNotFoundError
from tracker_kernel.logging_config import get_logger
from tracker_kernel.models.user import User
from tracker_kernel.services.base import BaseService

logger = get_logger("services.user")


class UserService(BaseService[User]):

    def create_user(self, name: str, email: str) -> UserRecord:
        """
        Raises:
            ValueError: If the email is already registered.
        """
        user = User(name=name, email=email.strip().lower())
        self.session.add(user)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ValueError(f"Email already registered: {email}") from exc
        logger.info("user_created", extra={"user_id": str(user.id)})
        return UserRecord.from_model(user)

    def get_user(self, user_id: UUID) -> UserRecord:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return UserRecord.from_model(user)

    def find_by_email(self, email: str) -> UserRecord | None:
        user = self.session.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()
        return UserRecord.from_model(user) if user is not None else None

    def get_many(self, user_ids: list[UUID]) -> dict[UUID, UserRecord]:
        """Batch lookup used by the threshold tasks to resolve recipients."""
        if not user_ids:
            return {}
        users = self.session.scalars(select(User).where(User.id.in_(set(user_ids))))
        return {u.id: UserRecord.from_model(u) for u in users}
