"""
Session-scoped cache of the current user's blocks.

Every list surface (search, followers, following) drops blocked accounts
before display. RelationshipCache answers that membership question from
memory so a list of N profiles costs no extra round trips.

One instance belongs to one signed-in session: build it after sign-in, call
``refresh`` once, hand it to the consumers that render lists, and call
``clear`` on sign-out so the next user on the device starts empty.
"""
import logging
from typing import Callable, Iterable, List, Set, TypeVar

from dreamsocial.schemas.social import BlockedUserView
from dreamsocial.services.relationship_service import (
    RelationshipQueryError,
    RelationshipService,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RelationshipCache:
    """
    Block list plus a membership index for fast ``is_blocked`` checks.

    ``is_blocked`` reflects the last successful refresh, block or unblock
    made through this instance. Blocks made elsewhere (another device) show up
    after the next refresh. The cache filters presentation only; it is not an
    access-control source.

    Not safe for overlapping writers: await each block/unblock/refresh before
    starting the next one on the same instance.
    """

    def __init__(self, service: RelationshipService):
        self.service = service
        self._blocked_users: List[BlockedUserView] = []
        self._blocked_user_ids: Set[str] = set()
        self.is_loading = False

    @property
    def blocked_users(self) -> List[BlockedUserView]:
        """Blocked users, newest first (a copy)."""
        return list(self._blocked_users)

    @property
    def blocked_user_ids(self) -> frozenset:
        return frozenset(self._blocked_user_ids)

    async def refresh(self, user_id: str) -> bool:
        """
        Reload the block list from the store and replace the cached state.

        When the store cannot be read the previous state is kept, so blocks
        made earlier in the session keep being honoured.

        Returns:
            True if the cache now mirrors the store
        """
        self.is_loading = True
        try:
            blocked_users = await self.service.fetch_blocked_users(user_id)
        except RelationshipQueryError as e:
            logger.error(f"Keeping cached block list for {user_id}: {e}")
            return False
        finally:
            self.is_loading = False

        self._blocked_users = blocked_users
        self._blocked_user_ids = {b.blocked_user_id for b in blocked_users}
        return True

    async def block(self, user_id: str, target_user_id: str) -> bool:
        """
        Block through the service and update the cache.

        The id set is updated as soon as the block succeeds; the ordered list
        is then reconciled with a refresh.
        """
        result = await self.service.block(user_id, target_user_id)
        if not result.success:
            return False

        self._blocked_user_ids = self._blocked_user_ids | {target_user_id}
        await self.refresh(user_id)
        return True

    async def unblock(self, user_id: str, target_user_id: str) -> bool:
        """Unblock through the service and drop the user locally (no refresh)."""
        result = await self.service.unblock(user_id, target_user_id)
        if not result.success:
            return False

        self._blocked_user_ids = self._blocked_user_ids - {target_user_id}
        self._blocked_users = [
            b for b in self._blocked_users if b.blocked_user_id != target_user_id
        ]
        return True

    def is_blocked(self, target_user_id: str) -> bool:
        """Synchronous membership check; never touches the network."""
        return target_user_id in self._blocked_user_ids

    def exclude_blocked(
        self,
        items: Iterable[T],
        key: Callable[[T], str] = lambda item: item.id
    ) -> List[T]:
        """Drop every item whose user id is blocked."""
        return [item for item in items if not self.is_blocked(key(item))]

    def clear(self) -> None:
        """Forget everything; call on sign-out."""
        self._blocked_users = []
        self._blocked_user_ids = set()
        self.is_loading = False
