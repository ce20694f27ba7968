from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger, set_user_id
from nanoflows.core.rate_limiter import limiter
from nanoflows.core.security import verify_password, get_password_hash, create_user_token
from nanoflows.models.notification import NotificationType
from nanoflows.models.user import User, UserRole
from nanoflows.modules.auth.dependencies import get_current_user
from nanoflows.schemas.auth import (
    SignupRequest,
    LoginRequest,
    ProfileUpdate,
    CurrentUser,
    UserResponse,
    AuthResponse,
)
from nanoflows.services.email_service import email_service
from nanoflows.services.notification_service import notification_service

router = APIRouter()


async def _get_user_by_email(db: AsyncSession, email: str):
    result = await execute_with_retry(db, select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def _get_user(db: AsyncSession, user_id: str) -> User:
    result = await execute_with_retry(db, select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@limiter.limit("3/minute")
async def signup(
    request: Request,
    user_data: SignupRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """Create an account and return a token (rate limited: 3/min)"""
    client_ip = request.client.host if request.client else "unknown"
    email = user_data.email.lower()

    if await _get_user_by_email(db, email):
        logger.log_auth_event(
            event="signup",
            success=False,
            user_email=email,
            reason="User already exists",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists"
        )

    user = User(
        email=email,
        name=user_data.name,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole.USER,
    )
    db.add(user)
    await db.flush()

    await notification_service.create(
        db,
        user_id=user.id,
        notification_type=NotificationType.SIGNUP,
        title="Welcome to NanoFlows Academy",
        message=f"Hi {user.name}, your account is ready.",
    )
    await db.commit()

    background_tasks.add_task(email_service.send_welcome_email, user.email, user.name)

    logger.log_auth_event(
        event="signup",
        success=True,
        user_email=email,
        client_ip=client_ip
    )

    return {
        "message": "User created successfully",
        "token": create_user_token(user),
        "user": UserResponse.model_validate(user),
    }


@router.post("/login", response_model=AuthResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login user (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"
    email = credentials.email.lower()

    user = await _get_user_by_email(db, email)

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Account deactivated",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is deactivated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Admin panel sends role="admin"; a student account must not get in
    if credentials.role and credentials.role != user.role.value:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason=f"Role mismatch (requested {credentials.role})",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized access"
        )

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))

    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return {
        "message": "Login successful",
        "token": create_user_token(user),
        "user": UserResponse.model_validate(user),
    }


@router.get("/me")
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current identity plus profile fields"""
    user = await _get_user(db, current_user.id)
    return {"user": UserResponse.model_validate(user)}


@router.put("/profile")
async def update_profile(
    profile: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update name, phone and avatar"""
    user = await _get_user(db, current_user.id)

    for field, value in profile.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await db.commit()
    logger.info(f"[Auth] Profile updated for {user.email}")

    return {
        "message": "Profile updated successfully",
        "user": UserResponse.model_validate(user),
    }
