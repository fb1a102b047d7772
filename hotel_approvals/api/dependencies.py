import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_approvals.auth.jwt_handler import decode_access_token
from hotel_approvals.core.database import get_async_session
from hotel_approvals.models.auth.profile import Profile

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


def _unauthorized(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_async_session)
) -> Profile:
    """Get the authenticated actor's profile"""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        # Decode token
        payload = decode_access_token(credentials.credentials)
        if payload is None:
            raise _unauthorized()

        # Get actor ID from token
        actor_id = int(payload.get("sub"))

        profile = await session.scalar(select(Profile).where(Profile.id == actor_id))
        if profile is None or not profile.is_active:
            raise _unauthorized("User not found or inactive")

        request.state.current_actor = profile
        return profile

    except HTTPException:
        raise
    except (TypeError, ValueError):
        raise _unauthorized()
    except Exception as e:
        logger.error(f"Authentication failed: {e}")
        raise _unauthorized("Authentication failed")
