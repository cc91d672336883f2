"""User service layer."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import CannotChangeOwnRole, UserNotFound
from .models import User, UserRole

logger = logging.getLogger(__name__)


class UserService:
    """Service for user operations."""

    @staticmethod
    async def get_user_by_id(session: AsyncSession, user_id: int) -> User:
        """Get a user by id.

        Raises:
            UserNotFound: If no such user exists

        """
        user = await session.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    @staticmethod
    async def list_users(session: AsyncSession) -> list[User]:
        result = await session.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    @staticmethod
    async def assign_role(session: AsyncSession, user_id: int, role: UserRole, acting_user_id: int) -> User:
        """Change a user's role.

        The new role shows up in the user's next access token (login or refresh).

        Raises:
            UserNotFound: If no such user exists
            CannotChangeOwnRole: If an admin tries to change their own role

        """
        if user_id == acting_user_id:
            raise CannotChangeOwnRole()

        user = await UserService.get_user_by_id(session, user_id)
        user.role = role.value
        await session.flush()
        logger.info(f"User {user_id} role set to {role.value} by user {acting_user_id}")
        return user
