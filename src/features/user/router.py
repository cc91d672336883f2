"""User management router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.dependencies import get_current_principal, require_policy
from src.features.auth.policies import PolicyName
from src.features.auth.principal import Principal

from .schemas import AssignRoleRequest, UserListResponse, UserResponse
from .service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["User Management"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_db_session),
):
    """Get current user information."""
    user = await UserService.get_user_by_id(session, principal.user_id)
    return UserResponse.model_validate(user)


# Admin endpoints
@router.get("", response_model=UserListResponse)
async def list_users(
    principal: Principal = Depends(require_policy(PolicyName.ADMIN_ONLY)),
    session: AsyncSession = Depends(get_db_session),
):
    """List all users (admin only)."""
    users = await UserService.list_users(session)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users], total=len(users))


@router.put("/{user_id}/role", response_model=UserResponse)
async def assign_role(
    user_id: int,
    data: AssignRoleRequest,
    principal: Principal = Depends(require_policy(PolicyName.ADMIN_ONLY)),
    session: AsyncSession = Depends(get_db_session),
):
    """Change a user's role (admin only).

    Admins cannot change their own role.
    """
    user = await UserService.assign_role(session, user_id, data.role, acting_user_id=principal.user_id)
    await session.commit()
    return UserResponse.model_validate(user)
