"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

USERNAME_PATTERN = r"^[a-zA-Z0-9_.]+$"


class UserRegister(BaseModel):
    """User registration request."""

    email: EmailStr = Field(..., max_length=255)
    username: str = Field(..., min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)


class UserLogin(BaseModel):
    """User login request. The identifier is an email or a username."""

    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr = Field(..., max_length=255)


class ResetPasswordRequest(BaseModel):
    """Password reset with the token from the emailed link."""

    token: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)


class ResetTokenStatus(BaseModel):
    valid: bool


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=128)


class VerifyEmailResponse(BaseModel):
    message: str
    already_verified: bool = False


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    is_private: bool
    bio: str | None
    profile_pic: str | None
    email_verified: bool


class AuthResponse(BaseModel):
    """Authentication response with token and user info."""

    access_token: str
    token_type: str = "bearer"  # noqa: S105
    user: UserResponse
