"""User lookups needed by the order workflows."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groceazy.database.models.user import User, UserRole


class UserRepository:
    """Read-only access to user accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_active_managers(self) -> Sequence[User]:
        """
        Get managers who should receive operational alerts.

        Returns:
            Active, non-deleted users with the manager role
        """
        result = await self.session.execute(
            select(User)
            .where(
                User.role == UserRole.MANAGER,
                User.is_active.is_(True),
                User.is_deleted.is_(False),
            )
            .order_by(User.email)
        )
        return result.scalars().all()
