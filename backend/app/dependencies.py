import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.service import decode_access_token
from app.database import get_db
from app.errors import Forbidden, Unauthorized
from app.models.enums import UserRole
from app.models.user import User

logger = structlog.get_logger()
# auto_error=False so a missing header surfaces as our own 401 envelope
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None:
        raise Unauthorized()

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise Unauthorized("Invalid authentication token")

    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise Unauthorized("User not found")
    if not user.is_active:
        logger.warning("inactive_user_token_used", user_id=str(user_id))
        raise Forbidden("Account has been deactivated")
    return user


async def get_current_customer(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.CUSTOMER:
        raise Forbidden("Only customers can access this resource")
    return user
