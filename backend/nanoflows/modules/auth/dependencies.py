"""
Request authentication and role gates.

Every protected route resolves the caller through get_current_user, which
re-reads the user row on each request so role changes and deactivation
apply immediately.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from nanoflows.core.database import get_db, query_with_retry
from nanoflows.core.exceptions import AuthenticationError
from nanoflows.core.logging_config import logger, set_user_id
from nanoflows.core.security import decode_token
from nanoflows.schemas.auth import CurrentUser

# auto_error=False so a missing header is reported as our own 401
security = HTTPBearer(auto_error=False)

USER_LOOKUP_SQL = "SELECT id, email, name, role, is_active FROM users WHERE id = $1"


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def authenticate_token(token: str, db: AsyncSession) -> CurrentUser:
    """Resolve a bearer token to the user it was issued for"""
    try:
        payload = decode_token(token)
    except AuthenticationError as e:
        logger.log_auth_event("token_rejected", success=False, reason=e.code)
        raise unauthorized(e.message)

    user_id = payload.get("sub")
    if payload.get("type") != "access" or not user_id:
        logger.log_auth_event("token_rejected", success=False, reason="bad_payload")
        raise unauthorized("Invalid token")

    result = await query_with_retry(USER_LOOKUP_SQL, [str(user_id)], db=db)
    if not result.rows:
        logger.log_auth_event("token_rejected", success=False, token_subject=str(user_id), reason="user_not_found")
        raise unauthorized("User not found")

    row = result.rows[0]
    if not row["is_active"]:
        logger.log_auth_event("token_rejected", success=False, user_email=row["email"], reason="deactivated")
        raise unauthorized("User account is deactivated")

    role = row["role"]
    return CurrentUser(
        id=str(row["id"]),
        email=row["email"],
        name=row["name"],
        role=getattr(role, "value", role),
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> CurrentUser:
    """Get current authenticated user"""
    if credentials is None or not credentials.credentials.strip():
        raise unauthorized("No token provided")

    user = await authenticate_token(credentials.credentials.strip(), db)

    request.state.user = user
    request.state.user_id = user.id
    set_user_id(user.id)
    return user


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """Get current admin user"""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[CurrentUser]:
    """Get current user if a valid token was sent, otherwise None"""
    if credentials is None or not credentials.credentials.strip():
        return None

    try:
        user = await authenticate_token(credentials.credentials.strip(), db)
    except HTTPException:
        return None

    request.state.user = user
    request.state.user_id = user.id
    set_user_id(user.id)
    return user
