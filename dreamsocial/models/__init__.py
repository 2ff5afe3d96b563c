"""
SQLAlchemy models for the relationship graph.

All models must be imported here so Base.metadata knows every table.
"""

# Import Base first
from dreamsocial.models.base import Base, UUIDMixin, CreatedAtMixin

from dreamsocial.models.profile import Profile
from dreamsocial.models.follow import Follow
from dreamsocial.models.user_block import BlockedUser
from dreamsocial.models.user_mute import MutedUser

__all__ = [
    # Base classes
    "Base",
    "UUIDMixin",
    "CreatedAtMixin",
    # Profiles (read-only)
    "Profile",
    # Relationship edges
    "Follow",
    "BlockedUser",
    "MutedUser",
]
