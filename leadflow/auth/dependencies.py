"""
FastAPI dependencies for authentication.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.auth.jwt import get_token_from_request, verify_token
from leadflow.db import get_db
from leadflow.models import User


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user.

    Raises 401 if not authenticated, 403 if the account is disabled.
    """
    token = get_token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = verify_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user = await db.get(User, payload["user_id"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


async def require_team_lead(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Require the current user to be a team lead.

    Policy changes and batch commission runs are team lead actions.
    """
    if not current_user.is_team_lead:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Team lead access required",
        )
    return current_user
