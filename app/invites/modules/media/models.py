from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.modules.weddings.models import Wedding


class Photo(Base):
    __tablename__ = "photos"
    __table_args__ = (
        Index("idx_photos_wedding", "wedding_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)

    url: Mapped[str] = mapped_column(Text, nullable=False)
    # Set when the object lives in our media store (NULL for external URLs).
    storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size_bytes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_hero: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)  # at most one per wedding
    photo_type: Mapped[str] = mapped_column(String(50), nullable=False, default="memory")
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    uploaded_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="photos")
