"""Authentication service: JWT, passwords, account emails and profile fields."""

import logging
from datetime import UTC, datetime, timedelta

import redis
from jose import JWTError, jwt
from kombu.exceptions import OperationalError
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.user import User
from src.services.account_tokens import (
    RESET_PREFIX,
    RESET_TTL_SECONDS,
    VERIFY_PREFIX,
    VERIFY_TTL_SECONDS,
    consume_token,
    issue_token,
    peek_token,
    start_resend_cooldown,
)
from src.services.errors import (
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from src.services.media import image_extension, remove_file, store_file
from src.tasks.emails import PASSWORD_RESET, VERIFY_EMAIL, send_account_email

logger = logging.getLogger(__name__)
settings = get_settings()

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, username: str) -> str:
    """Create a JWT access token."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    to_encode = {
        "sub": str(user_id),
        "username": username,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None


def authenticate_user(db: Session, identifier: str, password: str) -> User | None:
    """Authenticate a user by email or username and password."""
    if "@" in identifier:
        user = get_user_by_email(db, identifier)
    else:
        user = get_user_by_username(db, identifier)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email (case-insensitive)."""
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def get_user_by_username(db: Session, username: str) -> User | None:
    """Get a user by username (case-insensitive)."""
    return db.query(User).filter(func.lower(User.username) == username.lower()).first()


def create_user(db: Session, email: str, username: str, password: str) -> User:
    """Create a new user."""
    if get_user_by_email(db, email):
        raise ValidationError("Email already registered", code="USER_EXISTS")
    if get_user_by_username(db, username):
        raise ValidationError("Username already taken", code="USERNAME_TAKEN")

    hashed_password = get_password_hash(password)
    user = User(email=email.lower(), username=username, password_hash=hashed_password)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} registered as {username}")
    return user


def update_username(db: Session, user: User, new_username: str) -> User:
    """Change a user's username."""
    existing = get_user_by_username(db, new_username)
    if existing and existing.id != user.id:
        raise ConflictError("Username already taken", code="USERNAME_TAKEN")

    user.username = new_username
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    """Change a user's password after checking the current one."""
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect", code="INVALID_PASSWORD")
    if current_password == new_password:
        raise ValidationError(
            "New password must differ from the current password", code="PASSWORD_MISMATCH"
        )

    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info(f"Password changed for user {user.id}")


def search_users(db: Session, query: str, limit: int = 20) -> list[User]:
    """Find users whose username contains the query (case-insensitive).

    Prefix matches sort before other matches.
    """
    pattern = query.strip().lower()
    if not pattern:
        return []

    escaped = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    users = (
        db.query(User)
        .filter(func.lower(User.username).like(f"%{escaped}%", escape="\\"))
        .order_by(User.username)
        .limit(limit)
        .all()
    )
    return sorted(users, key=lambda u: not u.username.lower().startswith(pattern))


def update_privacy(db: Session, user: User, is_private: bool) -> User:
    """Set whether a user's profile is private."""
    user.is_private = is_private
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} privacy set to {'private' if is_private else 'public'}")
    return user


def update_bio(db: Session, user: User, bio: str | None) -> User:
    """Set a user's bio. Blank bios are stored as None."""
    bio = bio.strip() if bio else None
    if bio and len(bio) > 150:
        raise ValidationError("Bio must be at most 150 characters", code="INVALID_BIO")

    user.bio = bio or None
    db.commit()
    db.refresh(user)
    return user


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


# --- Email verification and password reset ---


def _send_token_email(kind: str, prefix: str, ttl_seconds: int, user: User) -> bool:
    """Issue a one-time token for user and queue the email carrying it."""
    if not settings.smtp_host:
        logger.info(f"SMTP not configured, not sending {kind} email to user {user.id}")
        return False

    try:
        token = issue_token(prefix, user.id, ttl_seconds)
    except redis.RedisError as e:
        logger.error(f"Failed to store {kind} token for user {user.id}: {e}")
        return False

    try:
        send_account_email.delay(kind, user.email, user.username, token)
    except OperationalError as e:
        logger.error(f"Failed to queue {kind} email for user {user.id}: {e}")
        return False

    logger.info(f"Queued {kind} email for user {user.id}")
    return True


def send_verification_email(user: User) -> bool:
    """Email a verification link to a user whose address is not yet verified."""
    if user.email_verified:
        return False
    return _send_token_email(VERIFY_EMAIL, VERIFY_PREFIX, VERIFY_TTL_SECONDS, user)


def resend_verification(user: User) -> None:
    if user.email_verified:
        raise ValidationError("Email is already verified", code="ALREADY_VERIFIED")
    if not start_resend_cooldown(user.id):
        raise RateLimitError(
            "Please wait before requesting another verification email",
            code="VERIFY_RESEND_COOLDOWN",
        )
    if not send_verification_email(user):
        raise ServiceUnavailableError(
            "Could not send the verification email", code="EMAIL_UNAVAILABLE"
        )


def verify_email(db: Session, token: str) -> bool:
    """Mark the token's user as verified. Returns True if they already were."""
    user_id = consume_token(VERIFY_PREFIX, token)
    user = get_user_by_id(db, user_id) if user_id is not None else None
    if user is None:
        raise ValidationError("Invalid or expired verification link", code="INVALID_TOKEN")

    if user.email_verified:
        return True

    user.email_verified = True
    db.commit()
    logger.info(f"User {user.id} verified their email")
    return False


def request_password_reset(db: Session, email: str) -> None:
    """Email a reset link if the address belongs to a user.

    Callers get the same outcome either way, so the endpoint does not reveal
    which addresses are registered.
    """
    user = get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for an unknown email")
        return
    _send_token_email(PASSWORD_RESET, RESET_PREFIX, RESET_TTL_SECONDS, user)


def is_reset_token_valid(token: str) -> bool:
    return peek_token(RESET_PREFIX, token) is not None


def reset_password(db: Session, token: str, new_password: str, confirm_password: str) -> None:
    """Set a new password using a reset token. The token works once."""
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match", code="PASSWORD_MISMATCH")

    user_id = consume_token(RESET_PREFIX, token)
    user = get_user_by_id(db, user_id) if user_id is not None else None
    if user is None:
        raise ValidationError("Invalid or expired reset token", code="INVALID_TOKEN")

    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info(f"Password reset for user {user.id}")


# --- Profile picture ---


def update_profile_picture(
    db: Session, user: User, content_type: str | None, data: bytes
) -> User:
    """Store a new profile picture and remove the one it replaces."""
    extension = image_extension(content_type, data)
    previous = user.profile_pic

    user.profile_pic = store_file("profile-pictures", user.id, data, extension)
    db.commit()
    db.refresh(user)

    if previous:
        remove_file(previous)
    logger.info(f"User {user.id} uploaded a profile picture")
    return user


def delete_profile_picture(db: Session, user: User) -> None:
    if not user.profile_pic:
        raise NotFoundError("No profile picture to delete", code="PICTURE_NOT_FOUND")

    previous = user.profile_pic
    user.profile_pic = None
    db.commit()
    remove_file(previous)
