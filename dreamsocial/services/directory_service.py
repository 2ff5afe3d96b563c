"""
User directory service.
Builds the followers, following and search lists the app renders, with the
viewer's follow state attached and blocked accounts removed.
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from dreamsocial.config import settings
from dreamsocial.models.profile import Profile
from dreamsocial.repositories.profile_repo import ProfileRepository
from dreamsocial.repositories.relationship_repo import FollowRepository
from dreamsocial.schemas.social import UserListItem
from dreamsocial.services.relationship_cache import RelationshipCache
from dreamsocial.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)


class UserDirectoryService:
    """Read-side lists of users, filtered through a session's RelationshipCache."""

    def __init__(self, relationship_service: RelationshipService):
        """Initialize directory service."""
        self.relationships = relationship_service
        self.session_factory = relationship_service.session_factory

    async def _with_follow_state(
        self,
        profiles: List[Profile],
        viewer_id: Optional[str]
    ) -> List[UserListItem]:
        """
        Attach the viewer's follow state to each profile.

        Lookups run concurrently; the viewer's own row is never "following".
        """
        async def item_for(profile: Profile) -> UserListItem:
            item = UserListItem.model_validate(profile)
            if viewer_id and profile.id != viewer_id:
                item.is_following = await self.relationships.is_following(viewer_id, profile.id)
            return item

        return list(await asyncio.gather(*(item_for(p) for p in profiles)))

    async def _list_edges(
        self,
        user_id: str,
        viewer_id: Optional[str],
        cache: RelationshipCache,
        followers: bool
    ) -> List[UserListItem]:
        direction = "followers" if followers else "following"
        try:
            async with self.session_factory() as db:
                follow_repo = FollowRepository(db)
                if followers:
                    user_ids = await follow_repo.get_follower_ids(user_id)
                else:
                    user_ids = await follow_repo.get_following_ids(user_id)

                if not user_ids:
                    return []

                profile_map = await ProfileRepository(db).get_map(user_ids)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {direction} of {user_id}: {e}")
            return []

        profiles = [profile_map[uid] for uid in user_ids if uid in profile_map]
        items = await self._with_follow_state(profiles, viewer_id)
        return cache.exclude_blocked(items)

    async def list_followers(
        self,
        user_id: str,
        viewer_id: Optional[str],
        cache: RelationshipCache
    ) -> List[UserListItem]:
        """
        Users following user_id, newest first.

        Args:
            user_id: Profile whose followers are listed
            viewer_id: Signed-in user (drives is_following)
            cache: Viewer's relationship cache (drops blocked users)

        Returns:
            List items; empty on error
        """
        return await self._list_edges(user_id, viewer_id, cache, followers=True)

    async def list_following(
        self,
        user_id: str,
        viewer_id: Optional[str],
        cache: RelationshipCache
    ) -> List[UserListItem]:
        """Users user_id follows, newest first. Same contract as list_followers."""
        return await self._list_edges(user_id, viewer_id, cache, followers=False)

    async def search_users(
        self,
        query: str,
        viewer_id: Optional[str],
        cache: RelationshipCache,
        limit: Optional[int] = None
    ) -> List[UserListItem]:
        """
        Search profiles by username or display name.

        The viewer is never in their own results. A blank query returns
        nothing without touching the store.
        """
        clean_query = query.strip().lower()
        if not clean_query:
            return []

        try:
            async with self.session_factory() as db:
                profiles = await ProfileRepository(db).search(
                    clean_query,
                    exclude_id=viewer_id,
                    limit=limit or settings.search_result_limit
                )
        except SQLAlchemyError as e:
            logger.error(f"Error searching users for '{clean_query}': {e}")
            return []

        visible = cache.exclude_blocked(profiles)
        return await self._with_follow_state(visible, viewer_id)
