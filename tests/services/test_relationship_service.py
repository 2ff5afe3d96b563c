"""
Unit tests for RelationshipService.
Tests follow/block/mute rules against a real (SQLite) store.
"""
import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import SQLAlchemyError

from dreamsocial.repositories.base import LookupOutcome
from dreamsocial.repositories.relationship_repo import FollowRepository
from dreamsocial.schemas.social import FailureKind
from dreamsocial.services.relationship_service import (
    CANNOT_FOLLOW,
    RelationshipQueryError,
)


class TestFollow:
    """Test follow and unfollow."""

    async def test_follow_creates_edge_and_counts_once(self, service, alice, bob):
        """Test following adds exactly one follower."""
        before = await service.get_follower_count(bob.id)

        result = await service.follow(alice.id, bob.id)

        assert result.success is True
        assert result.error is None
        assert await service.is_following(alice.id, bob.id) is True
        assert await service.is_following(bob.id, alice.id) is False
        assert await service.get_follower_count(bob.id) == before + 1
        assert await service.get_following_count(alice.id) == 1

    async def test_follow_refused_when_actor_blocked_target(self, service, alice, bob):
        """Test following someone you blocked is refused without a write."""
        await service.block(alice.id, bob.id)

        result = await service.follow(alice.id, bob.id)

        assert result.success is False
        assert result.error == CANNOT_FOLLOW
        assert result.failure == FailureKind.VALIDATION
        assert await service.is_following(alice.id, bob.id) is False
        assert await service.get_follower_count(bob.id) == 0

    async def test_follow_refused_when_blocked_by_target(self, service, alice, bob):
        """Test following someone who blocked you is refused."""
        await service.block(bob.id, alice.id)

        result = await service.follow(alice.id, bob.id)

        assert result.success is False
        assert result.error == CANNOT_FOLLOW
        assert await service.is_following(alice.id, bob.id) is False

    async def test_follow_twice_fails(self, service, alice, bob):
        """Test a duplicate follow surfaces the uniqueness violation."""
        await service.follow(alice.id, bob.id)

        result = await service.follow(alice.id, bob.id)

        assert result.success is False
        assert result.error == "Already following this user"
        assert result.failure == FailureKind.REMOTE
        assert await service.get_follower_count(bob.id) == 1

    async def test_unfollow_removes_edge(self, service, alice, bob):
        """Test unfollowing removes the edge."""
        await service.follow(alice.id, bob.id)

        result = await service.unfollow(alice.id, bob.id)

        assert result.success is True
        assert await service.is_following(alice.id, bob.id) is False
        assert await service.get_follower_count(bob.id) == 0

    async def test_unfollow_without_edge_succeeds(self, service, alice, bob):
        """Test unfollowing someone you do not follow is a no-op success."""
        result = await service.unfollow(alice.id, bob.id)

        assert result.success is True
        assert result.error is None

    async def test_self_follow_is_not_guarded(self, service, alice):
        """Test following yourself is currently allowed at this layer."""
        result = await service.follow(alice.id, alice.id)

        assert result.success is True
        assert await service.is_following(alice.id, alice.id) is True


class TestBlock:
    """Test block, unblock and their cascade."""

    async def test_block_removes_follows_both_ways(self, service, alice, bob):
        """Test blocking a mutual follower clears both follow edges."""
        await service.follow(alice.id, bob.id)
        await service.follow(bob.id, alice.id)

        result = await service.block(alice.id, bob.id)

        assert result.success is True
        assert await service.is_following(alice.id, bob.id) is False
        assert await service.is_following(bob.id, alice.id) is False
        assert await service.is_blocked(alice.id, bob.id) is True
        assert await service.is_blocked_by(bob.id, alice.id) is True
        assert await service.is_blocked(bob.id, alice.id) is False

    async def test_block_leaves_other_follows_alone(self, service, alice, bob, carol):
        """Test blocking only touches edges between the two users."""
        await service.follow(alice.id, carol.id)
        await service.follow(carol.id, bob.id)

        await service.block(alice.id, bob.id)

        assert await service.is_following(alice.id, carol.id) is True
        assert await service.is_following(carol.id, bob.id) is True

    async def test_block_removes_blockers_mute_only(self, service, alice, bob):
        """Test blocking drops the blocker's mute but not the target's."""
        await service.mute(alice.id, bob.id)
        await service.mute(bob.id, alice.id)

        await service.block(alice.id, bob.id)

        assert await service.is_muted(alice.id, bob.id) is False
        assert await service.is_muted(bob.id, alice.id) is True

    async def test_unblock_does_not_restore_follows(self, service, alice, bob):
        """Test follows removed by a block stay removed after unblocking."""
        await service.follow(alice.id, bob.id)
        await service.follow(bob.id, alice.id)
        await service.block(alice.id, bob.id)

        result = await service.unblock(alice.id, bob.id)

        assert result.success is True
        assert await service.is_blocked(alice.id, bob.id) is False
        assert await service.is_following(alice.id, bob.id) is False
        assert await service.is_following(bob.id, alice.id) is False

    async def test_unblock_without_block_succeeds(self, service, alice, bob):
        """Test unblocking someone not blocked is a no-op success."""
        result = await service.unblock(alice.id, bob.id)

        assert result.success is True

    async def test_block_twice_fails(self, service, alice, bob):
        """Test a duplicate block is reported."""
        await service.block(alice.id, bob.id)

        result = await service.block(alice.id, bob.id)

        assert result.success is False
        assert result.error == "User is already blocked"

    async def test_failed_cascade_rolls_back_block(self, service, alice, bob, mocker):
        """Test a failing follow retraction leaves no block and no lost follows."""
        await service.follow(alice.id, bob.id)
        mocker.patch.object(
            FollowRepository,
            "delete_between",
            side_effect=SQLAlchemyError("cascade failed")
        )

        result = await service.block(alice.id, bob.id)

        assert result.success is False
        assert result.error == "Failed to block user"
        assert result.failure == FailureKind.REMOTE
        assert await service.is_blocked(alice.id, bob.id) is False
        assert await service.is_following(alice.id, bob.id) is True

    async def test_self_block_is_not_guarded(self, service, alice):
        """Test blocking yourself is currently allowed at this layer."""
        result = await service.block(alice.id, alice.id)

        assert result.success is True
        assert await service.is_blocked(alice.id, alice.id) is True

    async def test_blocked_users_newest_first_with_profiles(self, service, alice, bob, carol):
        """Test the block list is ordered newest first and carries profiles."""
        await service.block(alice.id, bob.id)
        await service.block(alice.id, carol.id)
        await service.block(alice.id, "user-without-profile")

        blocked = await service.get_blocked_users(alice.id)

        assert [b.blocked_user_id for b in blocked] == [
            "user-without-profile",
            carol.id,
            bob.id,
        ]
        assert blocked[0].profile is None
        assert blocked[1].profile.username == "carol"
        assert blocked[2].profile.display_name == "Bob Sleeper"
        assert all(b.user_id == alice.id for b in blocked)
        assert blocked[0].created_at.tzinfo is not None

    async def test_blocked_users_empty(self, service, alice):
        """Test a user with no blocks gets an empty list."""
        assert await service.get_blocked_users(alice.id) == []


class TestMute:
    """Test mute and unmute."""

    async def test_mute_is_idempotent(self, service, alice, bob):
        """Test muting twice succeeds and keeps a single row."""
        first = await service.mute(alice.id, bob.id)
        second = await service.mute(alice.id, bob.id)

        assert first.success is True
        assert second.success is True
        assert await service.is_muted(alice.id, bob.id) is True
        counts = await service.get_social_counts(alice.id)
        assert counts.muted_count == 1

    async def test_unmute(self, service, alice, bob):
        """Test unmuting removes the mute; unmuting again still succeeds."""
        await service.mute(alice.id, bob.id)

        assert (await service.unmute(alice.id, bob.id)).success is True
        assert await service.is_muted(alice.id, bob.id) is False
        assert (await service.unmute(alice.id, bob.id)).success is True

    async def test_mute_does_not_affect_follow(self, service, alice, bob):
        """Test muting leaves follow state untouched."""
        await service.follow(alice.id, bob.id)

        await service.mute(alice.id, bob.id)

        assert await service.is_following(alice.id, bob.id) is True

    async def test_muted_users_list(self, service, alice, bob, carol):
        """Test the mute list is newest first with profiles."""
        await service.mute(alice.id, bob.id)
        await service.mute(alice.id, carol.id)

        muted = await service.get_muted_users(alice.id)

        assert [m.muted_user_id for m in muted] == [carol.id, bob.id]
        assert muted[0].profile.username == "carol"


class TestRelationshipStatus:
    """Test the aggregate relationship status."""

    async def test_no_edges_is_all_false(self, service, alice, bob):
        """Test an empty graph yields an all-false status."""
        status = await service.get_relationship_status(alice.id, bob.id)

        assert status.is_following is False
        assert status.is_followed_by is False
        assert status.is_blocked is False
        assert status.is_blocked_by is False
        assert status.is_muted is False

    async def test_status_reflects_both_directions(self, service, alice, bob):
        """Test each field reads the right edge."""
        await service.follow(bob.id, alice.id)
        await service.mute(alice.id, bob.id)

        status = await service.get_relationship_status(alice.id, bob.id)

        assert status.is_following is False
        assert status.is_followed_by is True
        assert status.is_muted is True
        assert status.is_blocked is False

    async def test_blocked_by_target(self, service, alice, bob):
        """Test is_blocked_by is set when the target blocked the actor."""
        await service.block(bob.id, alice.id)

        status = await service.get_relationship_status(alice.id, bob.id)

        assert status.is_blocked_by is True
        assert status.is_blocked is False

    async def test_join_failure_falls_back_to_all_false(self, service, alice, bob, mocker):
        """Test a raising predicate yields an all-false status, not a partial one."""
        mocker.patch.object(service, "is_following", side_effect=RuntimeError("boom"))
        mocker.patch.object(service, "is_blocked", return_value=True)
        mocker.patch.object(service, "is_blocked_by", return_value=True)
        mocker.patch.object(service, "is_muted", return_value=True)

        status = await service.get_relationship_status(alice.id, bob.id)

        assert status.model_dump() == {
            "is_following": False,
            "is_followed_by": False,
            "is_blocked": False,
            "is_blocked_by": False,
            "is_muted": False,
        }


class TestLookupOutcomes:
    """Test that failures read as 'no relationship' only at the boolean boundary."""

    async def test_missing_edge_is_not_found(self, service, alice, bob):
        """Test a missing edge is NOT_FOUND."""
        assert await service.lookup_following(alice.id, bob.id) == LookupOutcome.NOT_FOUND
        assert await service.lookup_blocked(alice.id, bob.id) == LookupOutcome.NOT_FOUND

    async def test_existing_edge_is_found(self, service, alice, bob):
        """Test an existing edge is FOUND."""
        await service.block(bob.id, alice.id)

        assert await service.lookup_blocked_by(alice.id, bob.id) == LookupOutcome.FOUND

    async def test_store_failure_is_error_but_predicate_is_false(self, broken_service):
        """Test a broken store is ERROR internally and False publicly."""
        assert await broken_service.lookup_following("a", "b") == LookupOutcome.ERROR
        assert await broken_service.lookup_muted("a", "b") == LookupOutcome.ERROR
        assert await broken_service.is_following("a", "b") is False
        assert await broken_service.is_blocked("a", "b") is False


class TestSwallowedFailures:
    """Test read paths never raise."""

    async def test_counts_default_to_zero(self, broken_service):
        """Test counts read as zero when the store fails."""
        assert await broken_service.get_follower_count("a") == 0
        assert await broken_service.get_following_count("a") == 0
        counts = await broken_service.get_social_counts("a")
        assert counts.blocked_count == 0
        assert counts.muted_count == 0

    async def test_lists_default_to_empty(self, broken_service):
        """Test lists read as empty when the store fails."""
        assert await broken_service.get_blocked_users("a") == []
        assert await broken_service.get_muted_users("a") == []

    async def test_fetch_blocked_users_raises(self, broken_service):
        """Test the strict loader reports the failure."""
        with pytest.raises(RelationshipQueryError):
            await broken_service.fetch_blocked_users("a")

    async def test_mutation_reports_store_failure(self, broken_service):
        """Test mutations report a remote failure instead of raising."""
        result = await broken_service.block("a", "b")

        assert result.success is False
        assert result.error == "Failed to block user"
        assert result.failure == FailureKind.REMOTE


class TestCountsAndSequencing:
    """Test social counts and ordering of rapid toggles."""

    async def test_social_counts(self, service, alice, bob, carol):
        """Test all four totals."""
        await service.follow(bob.id, alice.id)
        await service.follow(carol.id, alice.id)
        await service.follow(alice.id, bob.id)
        await service.block(alice.id, carol.id)
        await service.mute(alice.id, bob.id)

        counts = await service.get_social_counts(alice.id)

        # carol's follow went away with the block
        assert counts.followers_count == 1
        assert counts.following_count == 1
        assert counts.blocked_count == 1
        assert counts.muted_count == 1

    async def test_rapid_toggle_applies_in_dispatch_order(self, service, alice, bob):
        """Test follow then unfollow fired together ends unfollowed."""
        follow_result, unfollow_result = await asyncio.gather(
            service.follow(alice.id, bob.id),
            service.unfollow(alice.id, bob.id),
        )

        assert follow_result.success is True
        assert unfollow_result.success is True
        assert await service.is_following(alice.id, bob.id) is False
        assert len(service.sequencer) == 0

    async def test_cached_counts_are_used(self, service, alice, mocker):
        """Test a cached follower count skips the store."""
        mocker.patch(
            "dreamsocial.services.relationship_service.get_cached_follower_count",
            return_value=42
        )

        assert await service.get_follower_count(alice.id) == 42

    async def test_follow_invalidates_cached_counts(self, service, alice, bob, mocker):
        """Test a follow invalidates both users' counts."""
        invalidate = mocker.patch(
            "dreamsocial.services.relationship_service.invalidate_follow_counts",
            return_value=True
        )

        await service.follow(alice.id, bob.id)

        invalidate.assert_awaited_once_with(alice.id, bob.id)

    async def test_count_cache_read_failure_falls_back_to_store(self, service, alice, bob, mocker):
        """Test a Redis read error still returns the stored count."""
        await service.follow(alice.id, bob.id)
        mocker.patch(
            "dreamsocial.services.relationship_service.get_cached_follower_count",
            side_effect=RedisConnectionError("redis went away")
        )

        assert await service.get_follower_count(bob.id) == 1

    async def test_count_cache_write_failure_keeps_count(self, service, alice, bob, mocker):
        """Test a Redis write error does not discard a good count."""
        await service.follow(alice.id, bob.id)
        mocker.patch(
            "dreamsocial.services.relationship_service.get_cached_following_count",
            return_value=None
        )
        mocker.patch(
            "dreamsocial.services.relationship_service.cache_following_count",
            side_effect=RedisConnectionError("redis went away")
        )

        assert await service.get_following_count(alice.id) == 1
