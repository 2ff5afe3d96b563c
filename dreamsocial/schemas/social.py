"""
Social relationship schemas.
Result and view models handed to the UI and the HTTP API.
"""
import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from dreamsocial.utils.datetime_utils import to_iso_utc


class FailureKind(str, enum.Enum):
    """Why a relationship mutation did not happen."""
    VALIDATION = "validation"  # refused before any write
    REMOTE = "remote"  # the store rejected the write


class ActionResult(BaseModel):
    """Outcome of a follow/block/mute mutation."""

    success: bool
    error: Optional[str] = None
    failure: Optional[FailureKind] = Field(default=None, exclude=True)

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(success=True)

    @classmethod
    def invalid(cls, message: str) -> "ActionResult":
        return cls(success=False, error=message, failure=FailureKind.VALIDATION)

    @classmethod
    def rejected(cls, message: str) -> "ActionResult":
        return cls(success=False, error=message, failure=FailureKind.REMOTE)


class RelationshipStatus(BaseModel):
    """Both directions of the relationship between two users at query time."""

    is_following: bool = Field(False, serialization_alias="isFollowing")
    is_followed_by: bool = Field(False, serialization_alias="isFollowedBy")
    is_blocked: bool = Field(False, serialization_alias="isBlocked")
    is_blocked_by: bool = Field(False, serialization_alias="isBlockedBy")
    is_muted: bool = Field(False, serialization_alias="isMuted")

    model_config = ConfigDict(populate_by_name=True)


class SocialCounts(BaseModel):
    """Relationship totals shown on a profile."""

    followers_count: int = Field(0, serialization_alias="followersCount")
    following_count: int = Field(0, serialization_alias="followingCount")
    blocked_count: int = Field(0, serialization_alias="blockedCount")
    muted_count: int = Field(0, serialization_alias="mutedCount")

    model_config = ConfigDict(populate_by_name=True)


class ProfileSnapshot(BaseModel):
    """Display data of another user, captured when a list is fetched."""

    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BlockedUserView(BaseModel):
    """A block made by the current user, with the blocked user's profile."""

    id: str
    user_id: str
    blocked_user_id: str
    created_at: datetime
    profile: Optional[ProfileSnapshot] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> Optional[str]:
        return to_iso_utc(value)


class MutedUserView(BaseModel):
    """A mute made by the current user, with the muted user's profile."""

    id: str
    user_id: str
    muted_user_id: str
    created_at: datetime
    profile: Optional[ProfileSnapshot] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> Optional[str]:
        return to_iso_utc(value)


class UserListItem(ProfileSnapshot):
    """Row of a followers, following or search list."""

    is_following: bool = Field(False, serialization_alias="isFollowing")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
