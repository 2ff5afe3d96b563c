"""
MutedUser model.

Muting hides another user's dreams from the muter's feed without touching
visibility or follow state.
"""
from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dreamsocial.models.base import Base, CreatedAtMixin, UUIDMixin


class MutedUser(Base, UUIDMixin, CreatedAtMixin):
    """Directed mute edge: user_id muted muted_user_id."""

    __tablename__ = "muted_users"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who muted"
    )

    muted_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who is muted"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "muted_user_id", name="uq_muted_users_user_muted"),
        Index("ix_muted_users_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<MutedUser(user_id={self.user_id}, muted_user_id={self.muted_user_id})>"
