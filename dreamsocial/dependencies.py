"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for authentication and relationship services.
"""
from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dreamsocial.core.database import get_session_factory
from dreamsocial.core.security import decode_token, extract_token_from_header, SecurityException
from dreamsocial.services.directory_service import UserDirectoryService
from dreamsocial.services.relationship_cache import RelationshipCache
from dreamsocial.services.relationship_service import RelationshipService
from dreamsocial.utils.sequencing import PairSequencer


# Shared by every request in this process so mutations on the same pair
# queue behind each other even when they arrive on different requests.
pair_sequencer = PairSequencer()


async def get_current_user_id(
    authorization: Optional[str] = Header(None)
) -> str:
    """
    Dependency to get the id of the authenticated user.

    The session layer signs tokens whose ``sub`` claim is the user id.

    Raises:
        SecurityException: 401 if token is missing or invalid

    Example:
        ```python
        @router.get("/me/blocked")
        async def my_blocks(user_id: str = Depends(get_current_user_id)):
            ...
        ```
    """
    token = extract_token_from_header(authorization)
    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise SecurityException("Invalid token payload - missing user ID")

    return str(user_id)


def get_relationship_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)
) -> RelationshipService:
    """Dependency providing a RelationshipService bound to the shared sequencer."""
    return RelationshipService(session_factory, sequencer=pair_sequencer)


def get_directory_service(
    service: RelationshipService = Depends(get_relationship_service)
) -> UserDirectoryService:
    """Dependency providing the user directory service."""
    return UserDirectoryService(service)


async def get_viewer_cache(
    user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
) -> RelationshipCache:
    """
    Dependency providing the viewer's block cache for one request.

    List endpoints load the block list once and then filter every row in
    memory instead of checking each profile against the store.
    """
    cache = RelationshipCache(service)
    await cache.refresh(user_id)
    return cache
