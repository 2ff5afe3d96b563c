"""
Follow model.

A follow is a directed edge: follower_id follows following_id.
"""
from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dreamsocial.models.base import Base, CreatedAtMixin, UUIDMixin


class Follow(Base, UUIDMixin, CreatedAtMixin):
    """
    Follow edge between two profiles.

    At most one edge exists per (follower_id, following_id). Self-follows are
    not rejected at this layer.
    """

    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who follows"
    )

    following_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User being followed"
    )

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_follower_following"),
        Index("ix_follows_follower_id", "follower_id"),
        Index("ix_follows_following_id", "following_id"),
    )

    def __repr__(self) -> str:
        return f"<Follow(follower_id={self.follower_id}, following_id={self.following_id})>"
