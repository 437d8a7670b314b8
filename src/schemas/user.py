"""Profile schemas."""

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import RelationshipState
from src.schemas.auth import USERNAME_PATTERN


class UserSummary(BaseModel):
    """Minimal public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    profile_pic: str | None = None


class UserSearchResponse(BaseModel):
    users: list[UserSummary]


class UserProfileResponse(BaseModel):
    """A user's profile as seen by the viewer."""

    id: int
    username: str
    bio: str | None
    profile_pic: str | None
    is_private: bool
    followers_count: int
    following_count: int
    relationship: RelationshipState
    can_view: bool


class UsernameUpdate(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=USERNAME_PATTERN)


class PrivacySettings(BaseModel):
    is_private: bool


class BioUpdate(BaseModel):
    bio: str | None = Field(None, max_length=150)


class BioResponse(BaseModel):
    bio: str | None


class ProfilePictureResponse(BaseModel):
    profile_pic: str
