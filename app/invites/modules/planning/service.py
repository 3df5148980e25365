"""
Planning tools for the couple: a milestone checklist and a budget.

Budget amounts are whole minor currency units. A category's `spent_amount` is
never written by clients; it is recomputed from its items' `actual_cost`
whenever an item changes.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.invites.audit import record_event
from app.invites.constants import MILESTONE_PRIORITIES
from app.invites.utils import clean_str, isoformat, parse_bool, parse_date, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.planning.models import BudgetCategory, BudgetItem, Milestone
    from app.invites.modules.weddings.models import Wedding


class CategoryArchivedError(RuntimeError):
    pass


def _amount(payload: dict, key: str, errors: list[str], *, nullable: bool = False) -> int | None:
    raw = payload.get(key)
    try:
        value = parse_int(raw)
    except (TypeError, ValueError):
        errors.append(f"{key} must be a whole number.")
        return None
    if value is None:
        return None if nullable else 0
    if value < 0:
        errors.append(f"{key} must not be negative.")
    return value


def _date_field(payload: dict, key: str, errors: list[str]):
    try:
        return parse_date(payload.get(key))
    except ValueError:
        errors.append(f"{key} must be a date (YYYY-MM-DD).")
        return None


# ---------- Milestones ----------
def normalize_milestone_payload(payload: dict, *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    errors: list[str] = []
    values: dict[str, Any] = {}

    if not partial or "title" in payload:
        title = clean_str(payload.get("title"))
        if not title:
            errors.append("title is required.")
        elif len(title) > 255:
            errors.append("title must be at most 255 characters.")
        values["title"] = title

    if not partial or "due_date" in payload:
        due = _date_field(payload, "due_date", errors)
        if due is None and not any(e.startswith("due_date") for e in errors):
            errors.append("due_date is required.")
        values["due_date"] = due

    if not partial or "priority" in payload:
        priority = clean_str(payload.get("priority")) or "medium"
        if priority not in MILESTONE_PRIORITIES:
            errors.append(f"Invalid priority. Must be one of: {', '.join(MILESTONE_PRIORITIES)}")
        values["priority"] = priority

    for key in ("description", "assigned_to"):
        if not partial or key in payload:
            values[key] = clean_str(payload.get(key))

    return values, errors


def list_milestones(s: "Session", wedding: "Wedding") -> list["Milestone"]:
    from app.invites.modules.planning.models import Milestone

    return (
        s.query(Milestone)
        .filter(Milestone.wedding_id == wedding.id)
        .order_by(Milestone.is_completed.asc(), Milestone.due_date.asc(), Milestone.id.asc())
        .all()
    )


def create_milestone(s: "Session", wedding: "Wedding", values: dict, user: "User") -> "Milestone":
    from app.invites.modules.planning.models import Milestone

    m = Milestone(wedding_id=wedding.id, created_at=datetime.utcnow(), **values)
    s.add(m)
    s.flush()
    record_event(
        s,
        actor=user,
        action="milestone.create",
        entity_type="Milestone",
        entity_id=str(m.id),
        metadata={"wedding_id": wedding.id, "title": m.title, "due_date": m.due_date},
    )
    return m


def update_milestone(s: "Session", m: "Milestone", values: dict, user: "User") -> "Milestone":
    changes = {}
    for attr, val in values.items():
        if val != getattr(m, attr):
            changes[attr] = {"old": getattr(m, attr), "new": val}
            setattr(m, attr, val)
    if changes:
        record_event(
            s,
            actor=user,
            action="milestone.edit",
            entity_type="Milestone",
            entity_id=str(m.id),
            metadata={"wedding_id": m.wedding_id, "changes": changes},
        )
    return m


def set_milestone_completed(s: "Session", m: "Milestone", completed: bool, user: "User") -> "Milestone":
    if m.is_completed == completed:
        return m
    m.is_completed = completed
    m.completed_at = datetime.utcnow() if completed else None
    record_event(
        s,
        actor=user,
        action="milestone.complete" if completed else "milestone.reopen",
        entity_type="Milestone",
        entity_id=str(m.id),
        metadata={"wedding_id": m.wedding_id},
    )
    return m


def delete_milestone(s: "Session", m: "Milestone", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="milestone.delete",
        entity_type="Milestone",
        entity_id=str(m.id),
        metadata={"wedding_id": m.wedding_id, "title": m.title},
    )
    s.delete(m)


def serialize_milestone(m: "Milestone") -> dict:
    return {
        "id": m.id,
        "wedding_id": m.wedding_id,
        "title": m.title,
        "description": m.description,
        "due_date": isoformat(m.due_date),
        "is_completed": m.is_completed,
        "completed_at": isoformat(m.completed_at),
        "priority": m.priority,
        "assigned_to": m.assigned_to,
        "created_at": isoformat(m.created_at),
    }


# ---------- Budget ----------
def normalize_category_payload(payload: dict, *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    errors: list[str] = []
    values: dict[str, Any] = {}
    if not partial or "name" in payload:
        name = clean_str(payload.get("name"))
        if not name:
            errors.append("name is required.")
        values["name"] = name
    if not partial or "budget_amount" in payload:
        values["budget_amount"] = _amount(payload, "budget_amount", errors)
    if partial and "is_archived" in payload:
        values["is_archived"] = parse_bool(payload.get("is_archived"))
    return values, errors


def normalize_item_payload(payload: dict, *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    errors: list[str] = []
    values: dict[str, Any] = {}

    if not partial or "category_id" in payload:
        try:
            category_id = parse_int(payload.get("category_id"))
        except (TypeError, ValueError):
            category_id = None
        if category_id is None:
            errors.append("category_id is required.")
        values["category_id"] = category_id

    if not partial or "name" in payload:
        name = clean_str(payload.get("name"))
        if not name:
            errors.append("name is required.")
        values["name"] = name

    if not partial or "estimated_cost" in payload:
        values["estimated_cost"] = _amount(payload, "estimated_cost", errors)
    if not partial or "actual_cost" in payload:
        values["actual_cost"] = _amount(payload, "actual_cost", errors, nullable=True)
    if not partial or "is_paid" in payload:
        values["is_paid"] = parse_bool(payload.get("is_paid"))
    if not partial or "due_date" in payload:
        values["due_date"] = _date_field(payload, "due_date", errors)
    for key in ("vendor", "notes"):
        if not partial or key in payload:
            values[key] = clean_str(payload.get(key))

    return values, errors


def recompute_spent(s: "Session", category: "BudgetCategory") -> int:
    from app.invites.modules.planning.models import BudgetItem

    s.flush()
    total = (
        s.query(func.coalesce(func.sum(BudgetItem.actual_cost), 0))
        .filter(BudgetItem.category_id == category.id)
        .scalar()
    )
    category.spent_amount = int(total or 0)
    return category.spent_amount


def create_category(s: "Session", wedding: "Wedding", values: dict, user: "User") -> "BudgetCategory":
    from app.invites.modules.planning.models import BudgetCategory

    c = BudgetCategory(
        wedding_id=wedding.id,
        name=values["name"],
        budget_amount=values.get("budget_amount") or 0,
        spent_amount=0,
        is_archived=False,
        created_at=datetime.utcnow(),
    )
    s.add(c)
    s.flush()
    record_event(
        s,
        actor=user,
        action="budget_category.create",
        entity_type="BudgetCategory",
        entity_id=str(c.id),
        metadata={"wedding_id": wedding.id, "name": c.name, "budget_amount": c.budget_amount},
    )
    return c


def update_category(s: "Session", c: "BudgetCategory", values: dict, user: "User") -> "BudgetCategory":
    changes = {}
    for attr, val in values.items():
        if val != getattr(c, attr):
            changes[attr] = {"old": getattr(c, attr), "new": val}
            setattr(c, attr, val)
    if changes:
        record_event(
            s,
            actor=user,
            action="budget_category.edit",
            entity_type="BudgetCategory",
            entity_id=str(c.id),
            metadata={"wedding_id": c.wedding_id, "changes": changes},
        )
    return c


def delete_category(s: "Session", c: "BudgetCategory", user: "User") -> bool:
    """Delete an empty category, or archive it when items still refer to it.

    Returns True when the row was deleted.
    """
    from app.invites.modules.planning.models import BudgetItem

    item_count = s.query(func.count(BudgetItem.id)).filter(BudgetItem.category_id == c.id).scalar() or 0
    if item_count:
        c.is_archived = True
        record_event(
            s,
            actor=user,
            action="budget_category.archive",
            entity_type="BudgetCategory",
            entity_id=str(c.id),
            metadata={"wedding_id": c.wedding_id, "items": item_count},
        )
        return False

    record_event(
        s,
        actor=user,
        action="budget_category.delete",
        entity_type="BudgetCategory",
        entity_id=str(c.id),
        metadata={"wedding_id": c.wedding_id, "name": c.name},
    )
    s.delete(c)
    return True


def create_item(s: "Session", category: "BudgetCategory", values: dict, user: "User") -> "BudgetItem":
    from app.invites.modules.planning.models import BudgetItem

    if category.is_archived:
        raise CategoryArchivedError(f"Budget category {category.name!r} is archived.")

    fields = {k: v for k, v in values.items() if k != "category_id"}
    item = BudgetItem(
        category_id=category.id,
        wedding_id=category.wedding_id,
        created_at=datetime.utcnow(),
        **fields,
    )
    s.add(item)
    recompute_spent(s, category)
    record_event(
        s,
        actor=user,
        action="budget_item.create",
        entity_type="BudgetItem",
        entity_id=str(item.id),
        metadata={"wedding_id": category.wedding_id, "category_id": category.id, "name": item.name},
    )
    return item


def update_item(
    s: "Session", item: "BudgetItem", values: dict, user: "User", new_category: "BudgetCategory | None" = None
) -> "BudgetItem":
    old_category = item.category
    changes = {}
    for attr, val in values.items():
        if attr == "category_id":
            continue
        if val != getattr(item, attr):
            changes[attr] = {"old": getattr(item, attr), "new": val}
            setattr(item, attr, val)

    if new_category is not None and new_category.id != item.category_id:
        if new_category.is_archived:
            raise CategoryArchivedError(f"Budget category {new_category.name!r} is archived.")
        changes["category_id"] = {"old": item.category_id, "new": new_category.id}
        item.category_id = new_category.id
        item.category = new_category

    recompute_spent(s, old_category)
    if new_category is not None and new_category.id != old_category.id:
        recompute_spent(s, new_category)

    if changes:
        record_event(
            s,
            actor=user,
            action="budget_item.edit",
            entity_type="BudgetItem",
            entity_id=str(item.id),
            metadata={"wedding_id": item.wedding_id, "changes": changes},
        )
    return item


def delete_item(s: "Session", item: "BudgetItem", user: "User") -> None:
    category = item.category
    record_event(
        s,
        actor=user,
        action="budget_item.delete",
        entity_type="BudgetItem",
        entity_id=str(item.id),
        metadata={"wedding_id": item.wedding_id, "category_id": item.category_id, "name": item.name},
    )
    s.delete(item)
    recompute_spent(s, category)


def budget_summary(s: "Session", wedding: "Wedding", *, include_archived: bool = False) -> dict:
    from app.invites.modules.planning.models import BudgetCategory, BudgetItem

    q = s.query(BudgetCategory).filter(BudgetCategory.wedding_id == wedding.id)
    if not include_archived:
        q = q.filter(BudgetCategory.is_archived.is_(False))
    categories = q.order_by(BudgetCategory.created_at.asc(), BudgetCategory.id.asc()).all()

    category_ids = [c.id for c in categories]
    items = []
    if category_ids:
        items = (
            s.query(BudgetItem)
            .filter(BudgetItem.category_id.in_(category_ids))
            .order_by(BudgetItem.due_date.asc(), BudgetItem.id.asc())
            .all()
        )

    # Totals cover exactly the listed categories and their items.
    budgeted = sum(c.budget_amount or 0 for c in categories)
    estimated = sum(i.estimated_cost or 0 for i in items)
    actual = sum(i.actual_cost or 0 for i in items)
    # Paid items count at their actual cost, falling back to the estimate.
    paid = sum((i.actual_cost if i.actual_cost is not None else i.estimated_cost or 0) for i in items if i.is_paid)

    return {
        "wedding_id": wedding.id,
        "categories": [serialize_category(c) for c in categories],
        "items": [serialize_item(i) for i in items],
        "totals": {
            "budgeted": budgeted,
            "estimated": estimated,
            "actual": actual,
            "paid": paid,
            "remaining": budgeted - actual,
        },
    }


def serialize_category(c: "BudgetCategory") -> dict:
    return {
        "id": c.id,
        "wedding_id": c.wedding_id,
        "name": c.name,
        "budget_amount": c.budget_amount,
        "spent_amount": c.spent_amount,
        "remaining_amount": (c.budget_amount or 0) - (c.spent_amount or 0),
        "is_archived": c.is_archived,
        "created_at": isoformat(c.created_at),
    }


def serialize_item(i: "BudgetItem") -> dict:
    return {
        "id": i.id,
        "category_id": i.category_id,
        "wedding_id": i.wedding_id,
        "name": i.name,
        "estimated_cost": i.estimated_cost,
        "actual_cost": i.actual_cost,
        "vendor": i.vendor,
        "notes": i.notes,
        "is_paid": i.is_paid,
        "due_date": isoformat(i.due_date),
        "created_at": isoformat(i.created_at),
    }
