"""
Authentication Service

Handles store registration, login, and JWT token management.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext

from utsalapp.config import get_settings
from utsalapp.errors import ValidationError
from utsalapp.schemas import Caller, Role, Store, StoreCreate, User
from utsalapp.storage import Storage

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def token_for(user: User, store: Optional[Store]) -> str:
    return create_access_token({
        "sub": user.id,
        "role": user.role.value,
        "store_id": store.id if store else None,
    })


def caller_from_token(token: str) -> Optional[Caller]:
    """Turn a bearer token into the caller identity the services expect."""
    payload = decode_token(token)
    if payload is None:
        return None

    sub = payload.get("sub")
    role = payload.get("role")
    if sub is None or role not in (Role.store.value, Role.admin.value):
        return None

    return Caller(user_id=str(sub), role=Role(role), store_id=payload.get("store_id"))


async def register_store(
    storage: Storage,
    email: str,
    password: str,
    store_name: str,
) -> tuple[User, Store]:
    """Create a store account and its store."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if not store_name or not store_name.strip():
        raise ValidationError("store_name", "Store name is required")

    existing = await storage.get_user_by_email(email)
    if existing:
        raise ValidationError("email", "Email already registered")

    user = await storage.create_user(email, get_password_hash(password), Role.store)
    store = await storage.create_store(StoreCreate(name=store_name.strip(), owner_user_id=user.id))

    logger.info(f"Registered store {store.id} for user {user.id}")
    return user, store


async def authenticate_user(storage: Storage, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = await storage.get_user_by_email(email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
