import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.core.config import settings
from questlog.models.user import User, UserRole
from questlog.services.progression import ProgressionService

# JWT configuration
ALGORITHM = "HS256"

# Login identities for the two passcodes
CLIENT_EXTERNAL_ID = "passcode-client"
ADMIN_EXTERNAL_ID = "passcode-admin"


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token for a user."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> int | None:
    """Decode a JWT access token and return the user ID."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            return None
        return int(user_id)
    except (JWTError, ValueError):
        return None


def resolve_passcode(passcode: str) -> tuple[str, str, str] | None:
    """
    Map a passcode to (external_id, name, role).

    The client passcode is case-insensitive; the admin passcode must match
    exactly and is disabled when unset.
    """
    entered = passcode.strip()
    if settings.client_passcode and secrets.compare_digest(
        entered.upper().encode(), settings.client_passcode.upper().encode()
    ):
        return CLIENT_EXTERNAL_ID, settings.client_name, UserRole.CLIENT.value
    if settings.admin_passcode and secrets.compare_digest(entered.encode(), settings.admin_passcode.encode()):
        return ADMIN_EXTERNAL_ID, "Therapist", UserRole.ADMIN.value
    return None


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by their ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def upsert_user(db: AsyncSession, external_id: str, name: str, role: str) -> User:
    """Create the user on first login, refresh name, role and sign-in time otherwise."""
    user = await get_user_by_external_id(db, external_id)
    if user is None:
        user = User(external_id=external_id, name=name, role=role)
        db.add(user)
    else:
        user.name = name
        user.role = role
    user.last_signed_in = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(user)
    return user


async def login_with_passcode(db: AsyncSession, passcode: str) -> User | None:
    """Authenticate a passcode, upserting the matching user and their progression row."""
    identity = resolve_passcode(passcode)
    if identity is None:
        return None

    external_id, name, role = identity
    user = await upsert_user(db, external_id, name, role)
    await ProgressionService(db).get_or_create(user.id)
    return user
