"""Account endpoints: register, login, logout, refresh, me."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.auth import (
    clear_access_cookie,
    create_access_token,
    create_refresh_token,
    decode_jwt,
    get_current_user,
    hash_password,
    set_access_cookie,
    verify_password,
)
from karaoke.config import get_settings
from karaoke.database import get_db
from karaoke.logging_config import get_logger
from karaoke.models import User
from karaoke.redis import get_redis, refresh_token_key
from karaoke.schemas import (
    MessageResponse,
    TokenRefreshRequest,
    UserLoginRequest,
    UserLoginResponse,
    UserRegisterRequest,
    UserResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


async def _issue_tokens(user: User, response: Response) -> UserLoginResponse:
    user_id = str(user.id)
    access_token = create_access_token(user_id)
    refresh_token = create_refresh_token(user_id)

    ttl = get_settings().refresh_token_expire_days * 24 * 3600
    await get_redis().set(refresh_token_key(user_id), refresh_token, ex=ttl)
    set_access_cookie(response, access_token)

    return UserLoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=UserLoginResponse, status_code=201)
async def register(
    body: UserRegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(email=body.email, password_hash=hash_password(body.password))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    await db.refresh(user)

    logger.info("user_registered", user_id=str(user.id))
    return await _issue_tokens(user, response)


@router.post("/login", response_model=UserLoginResponse)
async def login(
    body: UserLoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.status != "active":
        raise HTTPException(status_code=403, detail="Account suspended")

    user.last_login = datetime.now(timezone.utc)
    user.login_count += 1
    await db.commit()
    await db.refresh(user)

    logger.info("user_login", user_id=str(user.id))
    return await _issue_tokens(user, response)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
):
    """Revoke the refresh token and drop the session cookie."""
    await get_redis().delete(refresh_token_key(str(user.id)))
    clear_access_cookie(response)
    logger.info("user_logout", user_id=str(user.id))
    return MessageResponse(message="Logged out")


@router.post("/refresh", response_model=UserLoginResponse)
async def refresh(
    body: TokenRefreshRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a stored refresh token for a new token pair."""
    payload = decode_jwt(body.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid token type")

    try:
        user_id = UUID(payload.get("sub", ""))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    stored = await get_redis().get(refresh_token_key(str(user_id)))
    if stored != body.refresh_token:
        raise HTTPException(status_code=401, detail="Refresh token revoked or expired")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or user.status != "active":
        raise HTTPException(status_code=403, detail="User not found or suspended")

    return await _issue_tokens(user, response)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)
