from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.constants import (
    DEFAULT_ACCENT_COLOR,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_TEMPLATE,
    DEFAULT_TIMEZONE,
    DEFAULT_WEDDING_TIME,
)
from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.models import User
    from app.invites.modules.collaborators.models import GuestCollaborator, WeddingAccess
    from app.invites.modules.guest_book.models import GuestBookEntry
    from app.invites.modules.guests.models import Guest
    from app.invites.modules.invitations.models import Invitation
    from app.invites.modules.media.models import Photo
    from app.invites.modules.planning.models import BudgetCategory, BudgetItem, Milestone


class Wedding(Base):
    __tablename__ = "weddings"
    __table_args__ = (
        Index("idx_weddings_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    unique_url: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, default="wedding")  # wedding, birthday

    # Couple (for birthdays, bride holds the celebrant's name and groom may be empty)
    bride: Mapped[str] = mapped_column(String(255), nullable=False)
    groom: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # When / where
    wedding_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    wedding_time: Mapped[str] = mapped_column(String(50), nullable=False, default=DEFAULT_WEDDING_TIME)
    timezone: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_TIMEZONE)
    venue: Mapped[str] = mapped_column(String(500), nullable=False)
    venue_address: Mapped[str] = mapped_column(Text, nullable=False)
    venue_coordinates: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"lat": .., "lng": ..}
    map_pin_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Copy
    story: Mapped[str | None] = mapped_column(Text, nullable=True)
    welcome_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    dear_guest_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    dress_code: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Look and feel
    couple_photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    couple_photo_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    background_template: Mapped[str | None] = mapped_column(String(100), nullable=True, default="template1")
    template: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_TEMPLATE)
    primary_color: Mapped[str] = mapped_column(String(20), nullable=False, default=DEFAULT_PRIMARY_COLOR)
    accent_color: Mapped[str] = mapped_column(String(20), nullable=False, default=DEFAULT_ACCENT_COLOR)
    background_music_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    background_music_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Visibility / RSVP
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    rsvp_mode: Mapped[str] = mapped_column(String(32), nullable=False, default="both")  # manual, preregistered, both
    rsvp_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    # Languages
    available_languages: Mapped[list] = mapped_column(JSON, nullable=False, default=lambda: ["en"])
    default_language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")

    # Birthday / party extras
    age: Mapped[str | None] = mapped_column(String(50), nullable=True)
    party_theme: Mapped[str | None] = mapped_column(Text, nullable=True)
    gift_registry_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person: Mapped[str | None] = mapped_column(Text, nullable=True)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    owner: Mapped["User"] = relationship("User", lazy="joined")

    guests: Mapped[list["Guest"]] = relationship(
        "Guest", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    photos: Mapped[list["Photo"]] = relationship(
        "Photo", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    guest_book_entries: Mapped[list["GuestBookEntry"]] = relationship(
        "GuestBookEntry", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    budget_categories: Mapped[list["BudgetCategory"]] = relationship(
        "BudgetCategory", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    budget_items: Mapped[list["BudgetItem"]] = relationship(
        "BudgetItem", cascade="all, delete", passive_deletes=True
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    collaborators: Mapped[list["GuestCollaborator"]] = relationship(
        "GuestCollaborator", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )
    access_grants: Mapped[list["WeddingAccess"]] = relationship(
        "WeddingAccess", back_populates="wedding", cascade="all, delete", passive_deletes=True
    )

    @property
    def display_names(self) -> str:
        if self.event_type == "birthday" or not self.groom:
            return self.bride
        return f"{self.bride} & {self.groom}"
