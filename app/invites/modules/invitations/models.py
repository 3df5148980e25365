from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.modules.guests.models import Guest
    from app.invites.modules.weddings.models import Wedding


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        Index("idx_invitations_wedding", "wedding_id"),
        Index("idx_invitations_guest", "guest_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)
    guest_id: Mapped[int] = mapped_column(ForeignKey("guests.id", ondelete="CASCADE"), nullable=False)

    invitation_type: Mapped[str] = mapped_column(String(20), nullable=False)  # email, sms, whatsapp, telegram, link
    recipient_contact: Mapped[str | None] = mapped_column(String(320), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    opened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="invitations")
    guest: Mapped["Guest"] = relationship("Guest", back_populates="invitations")
