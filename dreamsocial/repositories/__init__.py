"""
Repository layer exports.
Provides database access layer for the application.
"""
from dreamsocial.repositories.base import BaseRepository, LookupOutcome
from dreamsocial.repositories.relationship_repo import (
    FollowRepository,
    BlockedUserRepository,
    MutedUserRepository
)
from dreamsocial.repositories.profile_repo import ProfileRepository

__all__ = [
    "BaseRepository",
    "LookupOutcome",
    "FollowRepository",
    "BlockedUserRepository",
    "MutedUserRepository",
    "ProfileRepository",
]
