"""
Relationship service for the follow / block / mute graph.
Owns the rules that keep the three edge tables consistent with each other.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Type

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dreamsocial.core.cache import (
    cache_follower_count,
    cache_following_count,
    get_cached_follower_count,
    get_cached_following_count,
    invalidate_follow_counts,
)
from dreamsocial.models.base import generate_uuid
from dreamsocial.models.profile import Profile
from dreamsocial.repositories.base import LookupOutcome
from dreamsocial.repositories.profile_repo import ProfileRepository
from dreamsocial.repositories.relationship_repo import (
    BlockedUserRepository,
    FollowRepository,
    MutedUserRepository,
)
from dreamsocial.schemas.social import (
    ActionResult,
    BlockedUserView,
    MutedUserView,
    ProfileSnapshot,
    RelationshipStatus,
    SocialCounts,
)
from dreamsocial.utils.datetime_utils import ensure_utc, utc_now
from dreamsocial.utils.sequencing import PairSequencer

logger = logging.getLogger(__name__)

CANNOT_FOLLOW = "Cannot follow this user"


class RelationshipQueryError(Exception):
    """Raised when a relationship list cannot be read from the store."""
    pass


def _snapshot(profile: Optional[Profile]) -> Optional[ProfileSnapshot]:
    return ProfileSnapshot.model_validate(profile) if profile is not None else None


class RelationshipService:
    """
    Mutations and queries over the relationship graph.

    Every remote call runs in its own session from ``session_factory`` so
    that independent lookups can be awaited together. Mutations on the same
    pair of users are serialised through ``sequencer``.

    Mutations report failure through ActionResult and never raise. Reads never
    raise either: predicates fall back to False, counts to 0 and lists to [].
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        sequencer: Optional[PairSequencer] = None
    ):
        """Initialize relationship service."""
        self.session_factory = session_factory
        self.sequencer = sequencer if sequencer is not None else PairSequencer()

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    async def block(self, user_id: str, target_user_id: str) -> ActionResult:
        """
        Block a user.

        Inserts the block, then removes follow edges in both directions and
        the blocker's mute of the target. All four writes share one
        transaction: if any fails, none is kept.

        Args:
            user_id: User doing the blocking
            target_user_id: User being blocked

        Returns:
            ActionResult
        """
        async with self.sequencer.hold(user_id, target_user_id):
            try:
                async with self.session_factory() as db:
                    async with db.begin():
                        await BlockedUserRepository(db).create(
                            user_id=user_id,
                            blocked_user_id=target_user_id,
                            created_at=utc_now()
                        )
                        removed_follows = await FollowRepository(db).delete_between(
                            user_id, target_user_id
                        )
                        removed_mutes = await MutedUserRepository(db).delete_where(
                            user_id=user_id,
                            muted_user_id=target_user_id
                        )
            except IntegrityError as e:
                logger.warning(f"Block {user_id} -> {target_user_id} rejected: {e.orig}")
                if await self.is_blocked(user_id, target_user_id):
                    return ActionResult.rejected("User is already blocked")
                return ActionResult.rejected("Failed to block user")
            except SQLAlchemyError as e:
                logger.error(f"Error blocking user {target_user_id} for {user_id}: {e}")
                return ActionResult.rejected("Failed to block user")

        logger.info(
            f"User {user_id} blocked {target_user_id} "
            f"(removed {removed_follows} follows, {removed_mutes} mutes)"
        )
        if removed_follows:
            await self._invalidate_counts(user_id, target_user_id)
        return ActionResult.ok()

    async def unblock(self, user_id: str, target_user_id: str) -> ActionResult:
        """
        Unblock a user.

        Only the block edge is removed; follows and mutes retracted by the
        block stay gone.
        """
        async with self.sequencer.hold(user_id, target_user_id):
            try:
                async with self.session_factory() as db:
                    async with db.begin():
                        removed = await BlockedUserRepository(db).delete_where(
                            user_id=user_id,
                            blocked_user_id=target_user_id
                        )
            except SQLAlchemyError as e:
                logger.error(f"Error unblocking user {target_user_id} for {user_id}: {e}")
                return ActionResult.rejected("Failed to unblock user")

        logger.info(f"User {user_id} unblocked {target_user_id} (removed {removed})")
        return ActionResult.ok()

    # ------------------------------------------------------------------
    # Following
    # ------------------------------------------------------------------

    async def follow(self, follower_id: str, following_id: str) -> ActionResult:
        """
        Follow a user.

        Refused when either user has blocked the other. Following twice is
        reported as a failure, not ignored.

        Args:
            follower_id: User who follows
            following_id: User to follow

        Returns:
            ActionResult; "Cannot follow this user" when a block exists
        """
        async with self.sequencer.hold(follower_id, following_id):
            blocked_by, blocked = await asyncio.gather(
                self.is_blocked_by(follower_id, following_id),
                self.is_blocked(follower_id, following_id),
            )
            if blocked or blocked_by:
                logger.info(f"Follow {follower_id} -> {following_id} refused: block in place")
                return ActionResult.invalid(CANNOT_FOLLOW)

            try:
                async with self.session_factory() as db:
                    async with db.begin():
                        await FollowRepository(db).create(
                            follower_id=follower_id,
                            following_id=following_id,
                            created_at=utc_now()
                        )
            except IntegrityError as e:
                logger.warning(f"Follow {follower_id} -> {following_id} rejected: {e.orig}")
                if await self.is_following(follower_id, following_id):
                    return ActionResult.rejected("Already following this user")
                return ActionResult.rejected("Failed to follow user")
            except SQLAlchemyError as e:
                logger.error(f"Error following user {following_id} for {follower_id}: {e}")
                return ActionResult.rejected("Failed to follow user")

        logger.info(f"User {follower_id} followed {following_id}")
        await self._invalidate_counts(follower_id, following_id)
        return ActionResult.ok()

    async def unfollow(self, follower_id: str, following_id: str) -> ActionResult:
        """Unfollow a user. Unfollowing someone not followed succeeds."""
        async with self.sequencer.hold(follower_id, following_id):
            try:
                async with self.session_factory() as db:
                    async with db.begin():
                        removed = await FollowRepository(db).delete_where(
                            follower_id=follower_id,
                            following_id=following_id
                        )
            except SQLAlchemyError as e:
                logger.error(f"Error unfollowing user {following_id} for {follower_id}: {e}")
                return ActionResult.rejected("Failed to unfollow user")

        logger.info(f"User {follower_id} unfollowed {following_id} (removed {removed})")
        if removed:
            await self._invalidate_counts(follower_id, following_id)
        return ActionResult.ok()

    # ------------------------------------------------------------------
    # Muting
    # ------------------------------------------------------------------

    async def mute(self, user_id: str, target_user_id: str) -> ActionResult:
        """Mute a user. Muting an already muted user succeeds and keeps the original row."""
        async with self.sequencer.hold(user_id, target_user_id):
            try:
                async with self.session_factory() as db:
                    async with db.begin():
                        await MutedUserRepository(db).insert_ignore_conflict(
                            id=generate_uuid(),
                            user_id=user_id,
                            muted_user_id=target_user_id,
                            created_at=utc_now()
                        )
            except SQLAlchemyError as e:
                logger.error(f"Error muting user {target_user_id} for {user_id}: {e}")
                return ActionResult.rejected("Failed to mute user")

        logger.info(f"User {user_id} muted {target_user_id}")
        return ActionResult.ok()

    async def unmute(self, user_id: str, target_user_id: str) -> ActionResult:
        """Unmute a user. Unmuting someone not muted succeeds."""
        async with self.sequencer.hold(user_id, target_user_id):
            try:
                async with self.session_factory() as db:
                    async with db.begin():
                        await MutedUserRepository(db).delete_where(
                            user_id=user_id,
                            muted_user_id=target_user_id
                        )
            except SQLAlchemyError as e:
                logger.error(f"Error unmuting user {target_user_id} for {user_id}: {e}")
                return ActionResult.rejected("Failed to unmute user")

        logger.info(f"User {user_id} unmuted {target_user_id}")
        return ActionResult.ok()

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    async def _lookup(self, repo_cls: Type, actor_id: str, target_id: str) -> LookupOutcome:
        try:
            async with self.session_factory() as db:
                return await repo_cls(db).lookup(actor_id, target_id)
        except Exception as e:
            logger.warning(f"{repo_cls.__name__} lookup {actor_id} -> {target_id} failed: {e}")
            return LookupOutcome.ERROR

    async def lookup_following(self, follower_id: str, following_id: str) -> LookupOutcome:
        """Tagged lookup of the follower_id -> following_id follow edge."""
        return await self._lookup(FollowRepository, follower_id, following_id)

    async def lookup_blocked(self, user_id: str, target_user_id: str) -> LookupOutcome:
        """Tagged lookup of the user_id -> target_user_id block edge."""
        return await self._lookup(BlockedUserRepository, user_id, target_user_id)

    async def lookup_blocked_by(self, user_id: str, target_user_id: str) -> LookupOutcome:
        """Tagged lookup of the target_user_id -> user_id block edge."""
        return await self._lookup(BlockedUserRepository, target_user_id, user_id)

    async def lookup_muted(self, user_id: str, target_user_id: str) -> LookupOutcome:
        """Tagged lookup of the user_id -> target_user_id mute edge."""
        return await self._lookup(MutedUserRepository, user_id, target_user_id)

    # The boolean predicates below treat a failed lookup exactly like a
    # missing edge. Use them for presentation only, never for access checks.

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        """Check whether follower_id follows following_id."""
        return await self.lookup_following(follower_id, following_id) is LookupOutcome.FOUND

    async def is_blocked(self, user_id: str, target_user_id: str) -> bool:
        """Check whether user_id has blocked target_user_id."""
        return await self.lookup_blocked(user_id, target_user_id) is LookupOutcome.FOUND

    async def is_blocked_by(self, user_id: str, target_user_id: str) -> bool:
        """Check whether target_user_id has blocked user_id."""
        return await self.lookup_blocked_by(user_id, target_user_id) is LookupOutcome.FOUND

    async def is_muted(self, user_id: str, target_user_id: str) -> bool:
        """Check whether user_id has muted target_user_id."""
        return await self.lookup_muted(user_id, target_user_id) is LookupOutcome.FOUND

    async def get_relationship_status(
        self,
        user_id: str,
        target_user_id: str
    ) -> RelationshipStatus:
        """
        Get the full relationship between two users.

        The five lookups run concurrently. Should the join itself fail, the
        whole status is reported as all-false rather than partially filled.
        """
        try:
            (
                is_following,
                is_followed_by,
                is_blocked,
                is_blocked_by,
                is_muted,
            ) = await asyncio.gather(
                self.is_following(user_id, target_user_id),
                self.is_following(target_user_id, user_id),
                self.is_blocked(user_id, target_user_id),
                self.is_blocked_by(user_id, target_user_id),
                self.is_muted(user_id, target_user_id),
            )
        except Exception as e:
            logger.error(f"Error loading relationship {user_id} <-> {target_user_id}: {e}")
            return RelationshipStatus()

        return RelationshipStatus(
            is_following=is_following,
            is_followed_by=is_followed_by,
            is_blocked=is_blocked,
            is_blocked_by=is_blocked_by,
            is_muted=is_muted,
        )

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    async def _count(self, repo_cls: Type, **filters) -> int:
        async with self.session_factory() as db:
            return await repo_cls(db).count(**filters)

    async def _cached_count(
        self,
        label: str,
        user_id: str,
        read_cached: Callable[[str], Awaitable[Optional[int]]],
        write_cached: Callable[[str, int], Awaitable[bool]],
        **filters
    ) -> int:
        # Redis is optional: its failures fall through to the database.
        try:
            cached = await read_cached(user_id)
            if cached is not None:
                return cached
        except RedisError as e:
            logger.warning(f"Count cache read failed for {label} of {user_id}: {e}")

        try:
            count = await self._count(FollowRepository, **filters)
        except Exception as e:
            logger.warning(f"Error counting {label} of {user_id}: {e}")
            return 0

        try:
            await write_cached(user_id, count)
        except RedisError as e:
            logger.warning(f"Count cache write failed for {label} of {user_id}: {e}")
        return count

    async def get_follower_count(self, user_id: str) -> int:
        """Number of users following user_id (0 on error)."""
        return await self._cached_count(
            "followers",
            user_id,
            get_cached_follower_count,
            cache_follower_count,
            following_id=user_id
        )

    async def get_following_count(self, user_id: str) -> int:
        """Number of users user_id follows (0 on error)."""
        return await self._cached_count(
            "following",
            user_id,
            get_cached_following_count,
            cache_following_count,
            follower_id=user_id
        )

    async def _safe_count(self, repo_cls: Type, **filters) -> int:
        try:
            return await self._count(repo_cls, **filters)
        except Exception as e:
            logger.warning(f"Error counting {repo_cls.__name__} rows for {filters}: {e}")
            return 0

    async def get_social_counts(self, user_id: str) -> SocialCounts:
        """Follower, following, blocked and muted totals for a profile."""
        followers, following, blocked, muted = await asyncio.gather(
            self.get_follower_count(user_id),
            self.get_following_count(user_id),
            self._safe_count(BlockedUserRepository, user_id=user_id),
            self._safe_count(MutedUserRepository, user_id=user_id),
        )
        return SocialCounts(
            followers_count=followers,
            following_count=following,
            blocked_count=blocked,
            muted_count=muted,
        )

    async def _invalidate_counts(self, *user_ids: str) -> None:
        try:
            await invalidate_follow_counts(*user_ids)
        except RedisError as e:
            logger.warning(f"Could not invalidate follow counts for {user_ids}: {e}")

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def _profiles_for(self, db: AsyncSession, ids: List[str]) -> Dict[str, Profile]:
        # Missing display data never hides a row; the view just has no profile.
        try:
            return await ProfileRepository(db).get_map(ids)
        except SQLAlchemyError as e:
            logger.warning(f"Error fetching profiles for {len(ids)} users: {e}")
            return {}

    async def fetch_blocked_users(self, user_id: str) -> List[BlockedUserView]:
        """
        Load every block made by user_id, newest first, with profiles.

        Raises:
            RelationshipQueryError: If the block list cannot be read
        """
        try:
            async with self.session_factory() as db:
                blocks = await BlockedUserRepository(db).get_user_blocks(user_id)
                if not blocks:
                    return []
                profiles = await self._profiles_for(db, [b.blocked_user_id for b in blocks])
        except SQLAlchemyError as e:
            raise RelationshipQueryError(f"Could not load blocked users for {user_id}") from e

        return [
            BlockedUserView(
                id=block.id,
                user_id=block.user_id,
                blocked_user_id=block.blocked_user_id,
                created_at=ensure_utc(block.created_at),
                profile=_snapshot(profiles.get(block.blocked_user_id)),
            )
            for block in blocks
        ]

    async def get_blocked_users(self, user_id: str) -> List[BlockedUserView]:
        """Blocks made by user_id, newest first; empty list on error."""
        try:
            return await self.fetch_blocked_users(user_id)
        except RelationshipQueryError as e:
            logger.error(f"Error fetching blocked users: {e.__cause__}")
            return []

    async def get_muted_users(self, user_id: str) -> List[MutedUserView]:
        """Mutes made by user_id, newest first; empty list on error."""
        try:
            async with self.session_factory() as db:
                mutes = await MutedUserRepository(db).get_user_mutes(user_id)
                if not mutes:
                    return []
                profiles = await self._profiles_for(db, [m.muted_user_id for m in mutes])
        except SQLAlchemyError as e:
            logger.error(f"Error fetching muted users for {user_id}: {e}")
            return []

        return [
            MutedUserView(
                id=mute.id,
                user_id=mute.user_id,
                muted_user_id=mute.muted_user_id,
                created_at=ensure_utc(mute.created_at),
                profile=_snapshot(profiles.get(mute.muted_user_id)),
            )
            for mute in mutes
        ]
