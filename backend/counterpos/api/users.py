"""User administration endpoints (admin only)."""

from fastapi import APIRouter, Depends, status

from counterpos.core.deps import get_store, require_admin
from counterpos.schemas.auth import (
    PasswordChange,
    Permissions,
    User,
    UserCreate,
    UserResponse,
)
from counterpos.services.store import PosStore

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_users(
    current_user: User = Depends(require_admin()),
    store: PosStore = Depends(get_store),
):
    return [UserResponse.from_user(u) for u in store.users]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    current_user: User = Depends(require_admin()),
    store: PosStore = Depends(get_store),
):
    """Create a regular user with no permissions granted."""
    user = await store.add_user(body)
    return UserResponse.from_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin()),
    store: PosStore = Depends(get_store),
):
    """Delete a non-admin account other than the caller's own."""
    await store.delete_user(user_id, acting_user_id=current_user.id)


@router.put("/{user_id}/permissions", response_model=UserResponse)
async def update_permissions(
    user_id: int,
    body: Permissions,
    current_user: User = Depends(require_admin()),
    store: PosStore = Depends(get_store),
):
    user = await store.set_permissions(user_id, body)
    return UserResponse.from_user(user)


@router.post("/{user_id}/password", response_model=UserResponse)
async def reset_password(
    user_id: int,
    body: PasswordChange,
    current_user: User = Depends(require_admin()),
    store: PosStore = Depends(get_store),
):
    """Admin-initiated password reset; the current password is not required."""
    user = await store.change_password(user_id, body, require_current=False)
    return UserResponse.from_user(user)
