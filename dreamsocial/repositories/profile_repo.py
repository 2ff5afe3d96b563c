"""
Profile repository.
Read-only access to the profiles owned by the account service.
"""
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dreamsocial.models.profile import Profile
from dreamsocial.repositories.base import BaseRepository


def _escape_like(text: str) -> str:
    """Make LIKE wildcards typed by the user match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProfileRepository(BaseRepository[Profile]):
    """Repository for profile lookups."""

    def __init__(self, db: AsyncSession):
        """Initialize profile repository."""
        super().__init__(Profile, db)

    async def get_map(self, ids: List[str]) -> Dict[str, Profile]:
        """
        Batch-fetch profiles keyed by id.

        Args:
            ids: Profile ids (duplicates are fine)

        Returns:
            Mapping of id to Profile for every id that exists
        """
        profiles = await self.get_many(list(dict.fromkeys(ids)))
        return {profile.id: profile for profile in profiles}

    async def search(
        self,
        query: str,
        exclude_id: Optional[str] = None,
        limit: int = 20
    ) -> List[Profile]:
        """
        Case-insensitive substring search on username and display name.

        Args:
            query: Already trimmed, non-empty search text
            exclude_id: Profile to leave out (the searcher)
            limit: Maximum rows

        Returns:
            Matching profiles ordered by username
        """
        pattern = f"%{_escape_like(query.lower())}%"
        stmt = select(Profile).where(
            or_(
                func.lower(Profile.username).like(pattern, escape="\\"),
                func.lower(Profile.display_name).like(pattern, escape="\\"),
            )
        )

        if exclude_id:
            stmt = stmt.where(Profile.id != exclude_id)

        stmt = stmt.order_by(Profile.username).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
