"""
Riddle Server — Authentication Schemas
=======================================

What:  API contracts for registration/login and the identity attached to a request.
How:   Request bodies are deliberately loose (all optional strings) so the
       auth service, not Pydantic, owns the business validation rules and
       their messages.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from riddle_server.models.player import Role


class RegisterRequest(BaseModel):
    username: Optional[str] = Field(default=None, description="At least 5 characters")
    password: Optional[str] = Field(default=None, description="At least 8 characters")
    admin_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("admin_code", "adminCode"),
        description="Grants the admin role when it matches the server secret",
    )


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserPublic(BaseModel):
    """
    What:  The user fields safe to return to clients.
    Why:   Never includes password_hash.
    """
    id: int
    username: str
    role: Role
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by POST /auth/register (201) and POST /auth/login (200)."""
    user: UserPublic
    token: str


class TokenClaims(BaseModel):
    """Decoded session token payload."""
    id: int
    username: str
    role: Role
    iat: Optional[int] = None
    exp: Optional[int] = None


class CurrentUser(BaseModel):
    """
    Identity attached to `request.state.user` by the access-control layer.

    Anonymous callers on optional-auth routes get `CurrentUser.guest()`.
    """
    id: Optional[int] = None
    username: Optional[str] = None
    role: Role = Role.GUEST

    model_config = {"from_attributes": True}

    @classmethod
    def guest(cls) -> "CurrentUser":
        return cls(role=Role.GUEST)

    @property
    def is_guest(self) -> bool:
        return self.id is None
