from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.models import User
    from app.invites.modules.weddings.models import Wedding


class GuestCollaborator(Base):
    """An invitation for someone to help manage a wedding."""

    __tablename__ = "guest_collaborators"
    __table_args__ = (
        Index("idx_guest_collaborators_wedding", "wedding_id"),
        Index("idx_guest_collaborators_email", "email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)

    email: Mapped[str] = mapped_column(String(320), nullable=False)  # lowercased
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="guest_manager")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending, accepted, revoked
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    invited_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    invited_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="collaborators")


class WeddingAccess(Base):
    """Effective per-wedding permissions for a non-owner user."""

    __tablename__ = "wedding_access"
    __table_args__ = (
        UniqueConstraint("user_id", "wedding_id", name="uq_wedding_access_user_wedding"),
        Index("idx_wedding_access_wedding", "wedding_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)
    access_level: Mapped[str] = mapped_column(String(20), nullable=False, default="viewer")  # viewer, editor, manager
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="access_grants")
    user: Mapped["User"] = relationship("User")
