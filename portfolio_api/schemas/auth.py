"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# Request fields are optional at the schema level: missing values are rejected
# by the credential core with a 400 and a field-specific message. Lengths are
# checked there too.


class RegisterRequest(BaseModel):
    """New account details."""

    email: str | None = Field(default=None, description="Email address")
    password: str | None = Field(default=None, description="Password (6-128 chars)")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str | None = Field(default=None, description="Email address")
    password: str | None = Field(default=None, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str | None = Field(default=None, description="JWT refresh token")


class ForgotPasswordRequest(BaseModel):
    email: str | None = Field(default=None, description="Account email")


class ResetPasswordRequest(BaseModel):
    """Raw reset token from the emailed link plus the new password."""

    token: str | None = Field(default=None, description="Reset token")
    password: str | None = Field(default=None, description="New password")


class ChangePasswordRequest(BaseModel):
    current_password: str | None = Field(default=None)
    new_password: str | None = Field(default=None)


class UpdateProfileRequest(BaseModel):
    """Profile changes; omitted or empty fields are left unchanged."""

    email: str | None = Field(default=None)
    first_name: str | None = Field(default=None)
    last_name: str | None = Field(default=None)


class UserResponse(BaseModel):
    """Public account fields (no password or reset data)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthResponse(BaseModel):
    """Account plus the token pair returned after register and login."""

    user: UserResponse
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class AccessTokenResponse(BaseModel):
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class MessageResponse(BaseModel):
    message: str


class CurrentUser(BaseModel):
    """Authenticated user (id, email, role) for dependency injection."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: str
