"""Dependency injection: application state, auth, capability enforcement."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from counterpos.ai.suggestions import SuggestionDebouncer
from counterpos.core.security import decode_access_token
from counterpos.schemas.auth import Capability, User
from counterpos.services.access import has_capability
from counterpos.services.errors import NotFoundError
from counterpos.services.store import PosStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_store(request: Request) -> PosStore:
    return request.app.state.store


def get_suggestions(request: Request) -> SuggestionDebouncer:
    return request.app.state.suggestions


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    store: PosStore = Depends(get_store),
) -> User:
    """Decode JWT and return the stored user. Raises 401 on invalid/expired token or deleted user."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        return store.get_user(int(user_id))
    except (JWTError, ValueError, NotFoundError):
        raise credentials_exception


def require_capability(capability: Capability):
    """Dependency factory: checks the user holds the capability (admins always do)."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not has_capability(user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {capability.value}",
            )
        return user

    return checker


def require_admin():
    """Dependency factory: checks the user has the admin role."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role.value}' not allowed. Required: admin",
            )
        return user

    return checker
