"""
Pydantic schema exports.
Provides result and view models for the service layer and API endpoints.
"""
from dreamsocial.schemas.social import (
    FailureKind,
    ActionResult,
    RelationshipStatus,
    SocialCounts,
    ProfileSnapshot,
    BlockedUserView,
    MutedUserView,
    UserListItem
)

__all__ = [
    "FailureKind",
    "ActionResult",
    "RelationshipStatus",
    "SocialCounts",
    "ProfileSnapshot",
    "BlockedUserView",
    "MutedUserView",
    "UserListItem",
]
