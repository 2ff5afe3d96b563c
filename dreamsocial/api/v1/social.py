"""
Social relationship API endpoints.

Routes (all under /api/v1/users, bearer token required):
  GET    /me/blocked               My block list, newest first
  GET    /me/muted                 My mute list, newest first
  GET    /search?q=                Search profiles (blocked users hidden)
  POST   /{user_id}/follow         Follow (refused if either side blocked)
  DELETE /{user_id}/follow         Unfollow
  POST   /{user_id}/block          Block (removes follows both ways and my mute)
  DELETE /{user_id}/block          Unblock
  POST   /{user_id}/mute           Mute
  DELETE /{user_id}/mute           Unmute
  GET    /{user_id}/relationship   Relationship between me and user_id
  GET    /{user_id}/counts         Follower/following/blocked/muted totals
  GET    /{user_id}/followers      Who follows user_id
  GET    /{user_id}/following      Who user_id follows

/me/... routes are registered before /{user_id}/... routes so the literal
paths win.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from dreamsocial.config import settings
from dreamsocial.dependencies import (
    get_current_user_id,
    get_directory_service,
    get_relationship_service,
    get_viewer_cache,
)
from dreamsocial.schemas.social import (
    ActionResult,
    BlockedUserView,
    FailureKind,
    MutedUserView,
    RelationshipStatus,
    SocialCounts,
    UserListItem,
)
from dreamsocial.services.directory_service import UserDirectoryService
from dreamsocial.services.relationship_cache import RelationshipCache
from dreamsocial.services.relationship_service import RelationshipService

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)

MUTATION_LIMIT = f"{settings.rate_limit_per_minute}/minute"


def _raise_for_failure(result: ActionResult) -> ActionResult:
    """Turn a failed ActionResult into an HTTP error."""
    if result.success:
        return result

    if result.failure == FailureKind.VALIDATION:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.error)

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)


# ── My lists ────────────────────────────────────────────────────────────────

@router.get("/me/blocked", response_model=List[BlockedUserView])
async def my_blocked_users(
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """List the users I have blocked, newest first, with profile snapshots."""
    return await service.get_blocked_users(current_user_id)


@router.get("/me/muted", response_model=List[MutedUserView])
async def my_muted_users(
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """List the users I have muted, newest first, with profile snapshots."""
    return await service.get_muted_users(current_user_id)


@router.get("/search", response_model=List[UserListItem])
async def search_users(
    q: str = Query("", max_length=100, description="Username or display name fragment"),
    limit: int = Query(settings.search_result_limit, ge=1, le=50, description="Maximum results"),
    current_user_id: str = Depends(get_current_user_id),
    cache: RelationshipCache = Depends(get_viewer_cache),
    directory: UserDirectoryService = Depends(get_directory_service)
):
    """
    Search profiles by username or display name.

    Blocked users and the caller are excluded. Each row carries whether the
    caller follows that user.
    """
    return await directory.search_users(q, current_user_id, cache, limit=limit)


# ── Follow ──────────────────────────────────────────────────────────────────

@router.post("/{user_id}/follow", response_model=ActionResult)
@limiter.limit(MUTATION_LIMIT)
async def follow_user(
    request: Request,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """
    Follow a user.

    **Errors**:
    - 403: Either user has blocked the other
    - 400: Already following, or the write failed
    """
    return _raise_for_failure(await service.follow(current_user_id, user_id))


@router.delete("/{user_id}/follow", response_model=ActionResult)
@limiter.limit(MUTATION_LIMIT)
async def unfollow_user(
    request: Request,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Unfollow a user. Succeeds even when not following."""
    return _raise_for_failure(await service.unfollow(current_user_id, user_id))


# ── Block ───────────────────────────────────────────────────────────────────

@router.post("/{user_id}/block", response_model=ActionResult)
@limiter.limit(MUTATION_LIMIT)
async def block_user(
    request: Request,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Block a user. Removes follows in both directions and my mute of them."""
    return _raise_for_failure(await service.block(current_user_id, user_id))


@router.delete("/{user_id}/block", response_model=ActionResult)
@limiter.limit(MUTATION_LIMIT)
async def unblock_user(
    request: Request,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Unblock a user. Follows removed by the block are not restored."""
    return _raise_for_failure(await service.unblock(current_user_id, user_id))


# ── Mute ────────────────────────────────────────────────────────────────────

@router.post("/{user_id}/mute", response_model=ActionResult)
@limiter.limit(MUTATION_LIMIT)
async def mute_user(
    request: Request,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Mute a user's dreams in my feed. Muting twice is fine."""
    return _raise_for_failure(await service.mute(current_user_id, user_id))


@router.delete("/{user_id}/mute", response_model=ActionResult)
@limiter.limit(MUTATION_LIMIT)
async def unmute_user(
    request: Request,
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Unmute a user."""
    return _raise_for_failure(await service.unmute(current_user_id, user_id))


# ── Queries ─────────────────────────────────────────────────────────────────

@router.get("/{user_id}/relationship", response_model=RelationshipStatus)
async def relationship_status(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Relationship between the caller and user_id, in both directions."""
    return await service.get_relationship_status(current_user_id, user_id)


@router.get("/{user_id}/counts", response_model=SocialCounts)
async def social_counts(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: RelationshipService = Depends(get_relationship_service)
):
    """Follower, following, blocked and muted totals for user_id."""
    return await service.get_social_counts(user_id)


@router.get("/{user_id}/followers", response_model=List[UserListItem])
async def list_followers(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    cache: RelationshipCache = Depends(get_viewer_cache),
    directory: UserDirectoryService = Depends(get_directory_service)
):
    """Users following user_id, with the caller's follow state; blocked users hidden."""
    return await directory.list_followers(user_id, current_user_id, cache)


@router.get("/{user_id}/following", response_model=List[UserListItem])
async def list_following(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    cache: RelationshipCache = Depends(get_viewer_cache),
    directory: UserDirectoryService = Depends(get_directory_service)
):
    """Users user_id follows, with the caller's follow state; blocked users hidden."""
    return await directory.list_following(user_id, current_user_id, cache)
