"""Authentication endpoints: login, logout, profile, own password."""

from fastapi import APIRouter, Depends, status

from counterpos.core.deps import get_current_user, get_store
from counterpos.core.security import create_access_token
from counterpos.schemas.auth import (
    LoginRequest,
    MeResponse,
    PasswordChange,
    TokenResponse,
    User,
    UserResponse,
)
from counterpos.services.access import granted_capabilities
from counterpos.services.store import PosStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, store: PosStore = Depends(get_store)):
    """Authenticate via username + password, return JWT.

    Unknown usernames and wrong passwords get the same 401.
    """
    user = store.authenticate(body.username, body.password)
    token = create_access_token(user_id=user.id, role=user.role.value)
    return TokenResponse(access_token=token, user_id=user.id, role=user.role)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    """Drop the caller's cart and any pending suggestion."""
    store.logout(current_user.id)


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    profile = UserResponse.from_user(current_user)
    return MeResponse(**profile.model_dump(), capabilities=granted_capabilities(current_user))


@router.post("/password", response_model=UserResponse)
async def change_own_password(
    body: PasswordChange,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    """Change the caller's password; requires the current password."""
    user = await store.change_password(current_user.id, body, require_current=True)
    return UserResponse.from_user(user)
