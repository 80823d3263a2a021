import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.core.database import get_db
from questlog.models.activity import ActivityAction
from questlog.models.user import User
from questlog.services.activity import ActivityService, client_ip
from questlog.services.auth import (
    create_access_token,
    decode_access_token,
    get_user_by_id,
    login_with_passcode,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


# Request/Response schemas
class LoginRequest(BaseModel):
    """Request body for passcode login."""

    passcode: str = Field(min_length=1, max_length=64)


class TokenResponse(BaseModel):
    """Response containing access token."""

    access_token: str
    token_type: str = "bearer"
    role: str
    name: str | None


class UserResponse(BaseModel):
    """Response containing user information."""

    id: int
    name: str | None
    role: str
    current_week: int
    is_active: bool


def request_origin(request: Request) -> dict[str, str | None]:
    """IP address and User-Agent of the caller, as `ActivityService.log_event` keywords."""
    peer = request.client.host if request.client else None
    return {
        "ip_address": client_ip(request.headers, peer),
        "user_agent": request.headers.get("user-agent"),
    }


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# Dependency to get current user
async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency that extracts and validates the current user from JWT token."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency that requires the current user to be an admin."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


# Routes
@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a passcode for an access token."""
    user = await login_with_passcode(db, request.passcode)
    if user is None:
        logger.info("Rejected login with invalid passcode")
        raise _unauthorized("Invalid passcode")

    await ActivityService(db).log_event(user.id, ActivityAction.LOGIN, **request_origin(http_request))
    await db.commit()
    logger.info(f"User {user.id} signed in as {user.role}")

    return TokenResponse(
        access_token=create_access_token(user.id),
        role=user.role,
        name=user.name,
    )


@router.post("/logout")
async def logout(
    http_request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    """
    End a session. Tokens are stateless, so the client discards its token;
    a valid token also records the logout for engagement tracking.
    """
    user_id = decode_access_token(credentials.credentials) if credentials else None
    user = await get_user_by_id(db, user_id) if user_id is not None else None
    if user is not None:
        await ActivityService(db).log_event(user.id, ActivityAction.LOGOUT, **request_origin(http_request))
        await db.commit()
        logger.info(f"User {user.id} signed out")
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return UserResponse(
        id=current_user.id,
        name=current_user.name,
        role=current_user.role,
        current_week=current_user.current_week,
        is_active=current_user.is_active,
    )
