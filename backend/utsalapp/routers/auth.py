"""
Authentication API endpoints.

Handles store registration, login, and the caller dependency used by
the other routers.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from typing import Optional

from utsalapp.config import get_settings
from utsalapp.database import get_storage
from utsalapp.errors import Unauthorized
from utsalapp.schemas import Caller, Store, StoreRegister, UserLogin, UserOut
from utsalapp.services.auth import (
    authenticate_user,
    caller_from_token,
    register_store,
    token_for,
)
from utsalapp.rate_limiter import limiter
from utsalapp.storage import Storage

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


# ============== Schemas ==============

class AuthResponse(BaseModel):
    user: UserOut
    store: Optional[Store] = None
    token: str
    token_type: str = "bearer"


# ============== Dependencies ==============

async def require_auth(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Caller:
    """Require authentication - raises 401 if not authenticated."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    caller = caller_from_token(credentials.credentials)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return caller


# ============== Endpoints ==============

@router.post("/register-store", response_model=AuthResponse)
@limiter.limit(settings.auth_rate_limit)
async def register(
    request: Request,
    data: StoreRegister,
    storage: Storage = Depends(get_storage),
):
    """
    Register a store account together with its store.

    - **email**: Valid email address
    - **password**: Password (min 6 characters)
    - **store_name**: Display name of the store
    """
    user, store = await register_store(storage, data.email, data.password, data.store_name)

    return AuthResponse(
        user=UserOut.model_validate(user),
        store=store,
        token=token_for(user, store),
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    data: UserLogin,
    storage: Storage = Depends(get_storage),
):
    """
    Login with email and password.

    Returns a JWT access token valid for 30 days.
    """
    user = await authenticate_user(storage, data.email, data.password)
    if not user:
        raise Unauthorized("Incorrect email or password")

    store = await storage.get_store_by_owner(user.id)

    return AuthResponse(
        user=UserOut.model_validate(user),
        store=store,
        token=token_for(user, store),
    )


@router.get("/me", response_model=Caller)
async def get_me(caller: Caller = Depends(require_auth)):
    """
    Get the identity carried by the current token.

    Requires authentication.
    """
    return caller
