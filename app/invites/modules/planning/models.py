from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.invites.models import Base

if TYPE_CHECKING:
    from app.invites.modules.weddings.models import Wedding


class Milestone(Base):
    __tablename__ = "milestones"
    __table_args__ = (
        Index("idx_milestones_wedding_due", "wedding_id", "due_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")  # low, medium, high
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="milestones")


class BudgetCategory(Base):
    __tablename__ = "budget_categories"
    __table_args__ = (
        Index("idx_budget_categories_wedding", "wedding_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Amounts in minor currency units.
    budget_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    spent_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # sum of item actual_cost
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    wedding: Mapped["Wedding"] = relationship("Wedding", back_populates="budget_categories")
    items: Mapped[list["BudgetItem"]] = relationship(
        "BudgetItem", back_populates="category", cascade="all, delete", passive_deletes=True, lazy="selectin"
    )


class BudgetItem(Base):
    __tablename__ = "budget_items"
    __table_args__ = (
        Index("idx_budget_items_category", "category_id"),
        Index("idx_budget_items_wedding", "wedding_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("budget_categories.id", ondelete="CASCADE"), nullable=False)
    wedding_id: Mapped[int] = mapped_column(ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    estimated_cost: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    actual_cost: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    category: Mapped["BudgetCategory"] = relationship("BudgetCategory", back_populates="items")
