"""
BlockedUser model for user blocking functionality.

Blocking hides the two users from each other and retracts any follow edges
between them.
"""
from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dreamsocial.models.base import Base, CreatedAtMixin, UUIDMixin


class BlockedUser(Base, UUIDMixin, CreatedAtMixin):
    """
    BlockedUser model - tracks which users have blocked which.

    Blocks are directional: user_id blocking blocked_user_id says nothing
    about the reverse edge. When a block is created:
    - follow edges in both directions are removed
    - the blocker's mute of the same user is removed
    """

    __tablename__ = "blocked_users"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who is blocking"
    )

    blocked_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who is being blocked"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "blocked_user_id", name="uq_blocked_users_user_blocked"),
        Index("ix_blocked_users_user_id", "user_id"),
        Index("ix_blocked_users_blocked_user_id", "blocked_user_id"),
    )

    def __repr__(self) -> str:
        return f"<BlockedUser(user_id={self.user_id}, blocked_user_id={self.blocked_user_id})>"
