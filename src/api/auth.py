"""Authentication API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models.user import User
from src.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    ResetTokenStatus,
    UserLogin,
    UserRegister,
    UserResponse,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from src.services.auth import (
    authenticate_user,
    change_password,
    create_access_token,
    create_user,
    is_reset_token_valid,
    request_password_reset,
    resend_verification,
    reset_password,
    send_verification_email,
    verify_email,
)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

PASSWORD_RESET_SENT = "If an account exists with this email, a password reset link has been sent."


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Annotated[Session, Depends(get_db)],
):
    """Register a new user."""
    user = create_user(db, user_data.email, user_data.username, user_data.password)
    send_verification_email(user)

    access_token = create_access_token(user.id, user.username)

    return AuthResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email or username and password."""
    user = authenticate_user(db, credentials.identifier, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(user.id, user.username)

    return AuthResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.post("/logout")
async def logout(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Logout (client should discard token)."""
    return {"message": "Logged out successfully"}


@router.post("/change-password")
async def update_password(
    request: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Change the current user's password."""
    change_password(db, current_user, request.current_password, request.new_password)
    return {"message": "Password changed successfully"}


@router.post("/forgot-password")
async def forgot_password(
    request: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """Request a password reset email. The response is the same whether or not the email exists."""
    request_password_reset(db, request.email)
    return {"message": PASSWORD_RESET_SENT}


@router.post("/reset-password")
async def complete_password_reset(
    request: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """Set a new password with the token from a reset email."""
    reset_password(db, request.token, request.new_password, request.confirm_password)
    return {"message": "Password updated successfully. You can now log in with your new password."}


@router.get("/reset-password/validate", response_model=ResetTokenStatus)
async def validate_reset_token(
    token: Annotated[str, Query(max_length=128)] = "",
):
    """Check a reset token without using it up."""
    return ResetTokenStatus(valid=bool(token) and is_reset_token_valid(token))


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def confirm_email(
    request: VerifyEmailRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """Verify the email address behind a verification token."""
    already_verified = verify_email(db, request.token)
    return VerifyEmailResponse(
        message="Email verified successfully", already_verified=already_verified
    )


@router.post("/resend-verification")
async def resend_verification_email(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Send a fresh verification email. Limited to one every five minutes."""
    resend_verification(current_user)
    return {"message": "Verification email sent"}
