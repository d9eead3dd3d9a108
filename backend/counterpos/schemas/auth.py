"""Auth, user and permission schemas."""

import enum

from pydantic import BaseModel, Field, field_validator


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class Capability(str, enum.Enum):
    """Fine-grained capabilities a non-admin user can be granted."""
    MANAGE_PRODUCTS = "products:manage"
    VIEW_REPORTS = "reports:view"
    MANAGE_PURCHASES = "purchases:manage"
    PROCESS_RETURNS = "returns:process"


class Permissions(BaseModel):
    can_manage_products: bool = False
    can_view_reports: bool = False
    can_manage_purchases: bool = False
    can_process_returns: bool = False

    @classmethod
    def all_granted(cls) -> "Permissions":
        return cls(
            can_manage_products=True,
            can_view_reports=True,
            can_manage_purchases=True,
            can_process_returns=True,
        )


class User(BaseModel):
    """Stored account. The password is kept in plaintext (known weakness)."""
    id: int
    username: str = Field(..., min_length=1)
    password: str
    role: Role = Role.USER
    permissions: Permissions | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def effective_permissions(self) -> Permissions:
        if self.is_admin:
            return Permissions.all_granted()
        return self.permissions or Permissions()


# ── Login ──────────────────────────────────────────
class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: Role


# ── Users ──────────────────────────────────────────
class UserCreate(BaseModel):
    username: str
    password: str

    @field_validator("username", "password", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class UserResponse(BaseModel):
    id: int
    username: str
    role: Role
    permissions: Permissions

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            role=user.role,
            permissions=user.effective_permissions,
        )


class MeResponse(UserResponse):
    """The caller's account plus the capabilities it currently holds."""
    capabilities: list[Capability]


class PasswordChange(BaseModel):
    current_password: str | None = None
    new_password: str
    confirm_password: str
