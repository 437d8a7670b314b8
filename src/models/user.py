"""User model."""

from sqlalchemy import Boolean, Column, Integer, String

from src.database import Base
from src.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User model for authentication, profile and privacy."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(20), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_private = Column(Boolean, default=False, nullable=False)
    bio = Column(String(150), nullable=True)
    profile_pic = Column(String(1024), nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
