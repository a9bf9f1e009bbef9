"""
User repository (read side).
"""

from typing import List

from sqlalchemy.orm import Session

from app.models.base.enums import UserRole
from app.models.user.user import User
from app.repositories.base.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for users."""

    def __init__(self, session: Session):
        super().__init__(User, session)

    def find_active_ids_by_role(self, role: UserRole) -> List[str]:
        """IDs of active users holding ``role``."""
        rows = (
            self.db.query(User.id)
            .filter(User.role == role, User.is_active == True)  # noqa: E712
            .all()
        )
        return [row[0] for row in rows]
