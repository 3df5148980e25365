"""
Per-wedding authorization.

A wedding's owner holds every permission flag. Other users hold the flags
listed on their `wedding_access` row. Site admins with `weddings.manage_all`
hold every flag on every wedding.
"""

from __future__ import annotations

from flask import abort, g
from sqlalchemy.orm import Session

from app.invites.constants import WEDDING_PERMISSIONS
from app.invites.models import User
from app.invites.modules.collaborators.models import WeddingAccess
from app.invites.modules.weddings.models import Wedding
from app.invites.rbac import user_has_permission

MANAGE_ALL = "weddings.manage_all"


def _access_row(s: Session, user: User, wedding: Wedding) -> WeddingAccess | None:
    return (
        s.query(WeddingAccess)
        .filter(WeddingAccess.wedding_id == wedding.id, WeddingAccess.user_id == user.id)
        .one_or_none()
    )


def is_owner(user: User | None, wedding: Wedding) -> bool:
    return bool(user and user.is_active and wedding.user_id == user.id)


def wedding_permissions(s: Session, user: User | None, wedding: Wedding) -> dict[str, bool]:
    if not user or not user.is_active:
        return {key: False for key in WEDDING_PERMISSIONS}
    if is_owner(user, wedding) or user_has_permission(user, MANAGE_ALL):
        return {key: True for key in WEDDING_PERMISSIONS}
    row = _access_row(s, user, wedding)
    granted = (row.permissions or {}) if row else {}
    return {key: bool(granted.get(key)) for key in WEDDING_PERMISSIONS}


def has_any_access(s: Session, user: User | None, wedding: Wedding) -> bool:
    if not user or not user.is_active:
        return False
    if is_owner(user, wedding) or user_has_permission(user, MANAGE_ALL):
        return True
    return _access_row(s, user, wedding) is not None


def can(s: Session, user: User | None, wedding: Wedding, flag: str) -> bool:
    if flag not in WEDDING_PERMISSIONS:
        raise ValueError(f"Unknown wedding permission: {flag}")
    return wedding_permissions(s, user, wedding)[flag]


def is_visible(s: Session, user: User | None, wedding: Wedding) -> bool:
    """Public weddings are visible to everyone; private ones only to people with access."""
    return wedding.is_public or has_any_access(s, user, wedding)


def get_wedding_or_404(s: Session, wedding_id: int) -> Wedding:
    w = s.get(Wedding, wedding_id)
    if not w:
        abort(404)
    return w


def get_visible_wedding_or_404(s: Session, wedding_id: int) -> Wedding:
    w = get_wedding_or_404(s, wedding_id)
    if not is_visible(s, getattr(g, "current_user", None), w):
        abort(404)
    return w


def require_wedding_permission(s: Session, wedding: Wedding, flag: str) -> User:
    """Abort with 401/403 unless the current user holds `flag` on `wedding`."""
    user: User | None = getattr(g, "current_user", None)
    if not user or not user.is_active:
        abort(401)
    if not can(s, user, wedding, flag):
        g.missing_permission = f"wedding.{flag}"
        abort(403)
    return user


def require_owner(s: Session, wedding: Wedding) -> User:
    user: User | None = getattr(g, "current_user", None)
    if not user or not user.is_active:
        abort(401)
    if not (is_owner(user, wedding) or user_has_permission(user, MANAGE_ALL)):
        g.missing_permission = "wedding.owner"
        abort(403)
    return user


def require_wedding_access(s: Session, wedding: Wedding) -> User:
    """Any owner, collaborator or site admin may read; everyone else gets a 404."""
    user: User | None = getattr(g, "current_user", None)
    if not user or not user.is_active:
        abort(401)
    if not has_any_access(s, user, wedding):
        abort(404)
    return user
