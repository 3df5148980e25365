from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.modules.weddings.models import Wedding


class GuestBookEntry(Base):
    __tablename__ = "guest_book_entries"
    __table_args__ = (
        Index("idx_guest_book_wedding_created", "wedding_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="guest_book_entries")
