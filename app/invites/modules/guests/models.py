from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.modules.invitations.models import Invitation
    from app.invites.modules.weddings.models import Wedding


class Guest(Base):
    __tablename__ = "guests"
    __table_args__ = (
        Index("idx_guests_wedding", "wedding_id"),
        Index("idx_guests_wedding_status", "wedding_id", "rsvp_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # RSVP
    rsvp_status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")  # pending, confirmed, declined, maybe
    response_text: Mapped[str | None] = mapped_column(Text, nullable=True)  # raw answer, e.g. "confirmed_with_guest"
    plus_one: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    plus_one_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    additional_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    # Couple-side bookkeeping
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="family")
    side: Mapped[str] = mapped_column(String(20), nullable=False, default="both")  # bride, groom, both
    dietary_restrictions: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    invitation_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invitation_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    added_by: Mapped[str] = mapped_column(String(50), nullable=False, default="couple")  # couple, guest, collaborator
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="guests")
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation", back_populates="guest", cascade="all, delete", passive_deletes=True
    )

    @property
    def headcount(self) -> int:
        """People this guest brings, including themself, when confirmed."""
        if self.rsvp_status != "confirmed":
            return 0
        return 1 + (1 if self.plus_one else 0) + (self.additional_guests or 0)
