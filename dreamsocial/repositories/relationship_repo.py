"""
Relationship repositories for database operations.
Handles the follow, block and mute edge tables.
"""
from typing import List

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dreamsocial.models.follow import Follow
from dreamsocial.models.user_block import BlockedUser
from dreamsocial.models.user_mute import MutedUser
from dreamsocial.repositories.base import BaseRepository, LookupOutcome


class FollowRepository(BaseRepository[Follow]):
    """Repository for follow edges."""

    def __init__(self, db: AsyncSession):
        """Initialize follow repository."""
        super().__init__(Follow, db)

    async def lookup(self, follower_id: str, following_id: str) -> LookupOutcome:
        """Look up the follower_id -> following_id edge."""
        return await self.lookup_one(follower_id=follower_id, following_id=following_id)

    async def delete_between(self, user_a: str, user_b: str) -> int:
        """
        Delete follow edges in both directions between two users.

        Returns:
            Number of edges removed (0, 1 or 2)
        """
        return await self.delete_where(
            or_(
                and_(Follow.follower_id == user_a, Follow.following_id == user_b),
                and_(Follow.follower_id == user_b, Follow.following_id == user_a),
            )
        )

    async def get_follower_ids(self, user_id: str) -> List[str]:
        """Get ids of users following user_id, newest first."""
        result = await self.db.execute(
            select(Follow.follower_id)
            .where(Follow.following_id == user_id)
            .order_by(Follow.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_following_ids(self, user_id: str) -> List[str]:
        """Get ids of users user_id follows, newest first."""
        result = await self.db.execute(
            select(Follow.following_id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc())
        )
        return list(result.scalars().all())


class BlockedUserRepository(BaseRepository[BlockedUser]):
    """Repository for block edges."""

    def __init__(self, db: AsyncSession):
        """Initialize block repository."""
        super().__init__(BlockedUser, db)

    async def lookup(self, user_id: str, blocked_user_id: str) -> LookupOutcome:
        """Look up the user_id -> blocked_user_id edge."""
        return await self.lookup_one(user_id=user_id, blocked_user_id=blocked_user_id)

    async def get_user_blocks(self, user_id: str) -> List[BlockedUser]:
        """Get every block made by user_id, newest first."""
        return await self.filter_by(
            order_by=BlockedUser.created_at.desc(),
            user_id=user_id
        )


class MutedUserRepository(BaseRepository[MutedUser]):
    """Repository for mute edges."""

    def __init__(self, db: AsyncSession):
        """Initialize mute repository."""
        super().__init__(MutedUser, db)

    async def lookup(self, user_id: str, muted_user_id: str) -> LookupOutcome:
        """Look up the user_id -> muted_user_id edge."""
        return await self.lookup_one(user_id=user_id, muted_user_id=muted_user_id)

    async def get_user_mutes(self, user_id: str) -> List[MutedUser]:
        """Get every mute made by user_id, newest first."""
        return await self.filter_by(
            order_by=MutedUser.created_at.desc(),
            user_id=user_id
        )
