from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.invites.audit import record_event
from app.invites.constants import DEFAULT_COLLABORATOR_PERMISSIONS, WEDDING_PERMISSIONS
from app.invites.mailer import send_email, smtp_configured
from app.invites.utils import clean_str, isoformat, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.collaborators.models import GuestCollaborator, WeddingAccess
    from app.invites.modules.weddings.models import Wedding

logger = logging.getLogger(__name__)


class CollaboratorStateError(RuntimeError):
    """Invitation is already used, revoked or duplicated."""


class CollaboratorEmailMismatch(PermissionError):
    pass


def normalize_collaborator_payload(payload: dict) -> tuple[dict[str, Any], list[str]]:
    errors: list[str] = []
    email = (clean_str(payload.get("email")) or "").lower()
    if not email or "@" not in email:
        errors.append("A valid email is required.")

    permissions = dict(DEFAULT_COLLABORATOR_PERMISSIONS)
    raw = payload.get("permissions")
    if raw is not None:
        if not isinstance(raw, dict):
            errors.append("permissions must be an object.")
        else:
            unknown = sorted(k for k in raw if k not in WEDDING_PERMISSIONS)
            if unknown:
                errors.append(f"Unknown permissions: {', '.join(unknown)}")
            for key in WEDDING_PERMISSIONS:
                if key in raw:
                    permissions[key] = parse_bool(raw[key])

    values = {
        "email": email,
        "name": clean_str(payload.get("name")),
        "role": clean_str(payload.get("role")) or "guest_manager",
        "permissions": permissions,
    }
    return values, errors


def access_level_for(permissions: dict) -> str:
    if permissions.get("canEditDetails"):
        return "manager"
    if any(permissions.get(k) for k in ("canManageGuests", "canManagePhotos", "canEditGuestBook")):
        return "editor"
    return "viewer"


def _notify(config: dict, collab: "GuestCollaborator", wedding: "Wedding", inviter: "User") -> bool:
    if not smtp_configured(config):
        return False
    base = (config.get("PUBLIC_BASE_URL") or "").rstrip("/")
    text = "\n".join(
        [
            f"Hello {collab.name or collab.email},",
            "",
            f"{inviter.name or inviter.email} invited you to help manage {wedding.display_names}.",
            f"Sign in{' at ' + base if base else ''} with {collab.email} and accept invitation #{collab.id}.",
        ]
    )
    ok, _detail = send_email(
        config,
        to_email=collab.email,
        to_name=collab.name,
        subject=f"You've been invited to collaborate on {wedding.display_names}",
        text_body=text,
    )
    return ok


def invite_collaborator(
    s: "Session", config: dict, wedding: "Wedding", values: dict, user: "User"
) -> tuple["GuestCollaborator", bool]:
    from app.invites.modules.collaborators.models import GuestCollaborator

    if wedding.owner and wedding.owner.email.lower() == values["email"]:
        raise CollaboratorStateError("The owner cannot be invited as a collaborator.")
    existing = (
        s.query(GuestCollaborator)
        .filter(
            GuestCollaborator.wedding_id == wedding.id,
            GuestCollaborator.email == values["email"],
            GuestCollaborator.status != "revoked",
        )
        .first()
    )
    if existing:
        raise CollaboratorStateError(f"{values['email']} is already a collaborator.")

    now = datetime.utcnow()
    collab = GuestCollaborator(
        wedding_id=wedding.id,
        email=values["email"],
        name=values.get("name"),
        role=values.get("role") or "guest_manager",
        status="pending",
        permissions=values["permissions"],
        invited_at=now,
        invited_by_user_id=user.id,
        created_at=now,
    )
    s.add(collab)
    s.flush()

    notified = _notify(config, collab, wedding, user)
    record_event(
        s,
        actor=user,
        action="collaborator.invite",
        entity_type="GuestCollaborator",
        entity_id=str(collab.id),
        metadata={"wedding_id": wedding.id, "email": collab.email, "permissions": collab.permissions, "notified": notified},
    )
    return collab, notified


def _access_for_email(s: "Session", wedding_id: int, email: str) -> "WeddingAccess | None":
    from app.invites.models import User
    from app.invites.modules.collaborators.models import WeddingAccess

    return (
        s.query(WeddingAccess)
        .join(User, User.id == WeddingAccess.user_id)
        .filter(WeddingAccess.wedding_id == wedding_id, User.email == email)
        .one_or_none()
    )


def revoke_collaborator(s: "Session", collab: "GuestCollaborator", user: "User") -> None:
    access = _access_for_email(s, collab.wedding_id, collab.email)
    if access is not None:
        s.delete(access)
    collab.status = "revoked"
    record_event(
        s,
        actor=user,
        action="collaborator.revoke",
        entity_type="GuestCollaborator",
        entity_id=str(collab.id),
        metadata={"wedding_id": collab.wedding_id, "email": collab.email, "access_removed": access is not None},
    )


def accept_collaborator(s: "Session", collab: "GuestCollaborator", user: "User") -> "WeddingAccess":
    from app.invites.modules.collaborators.models import WeddingAccess

    if collab.email != (user.email or "").lower():
        raise CollaboratorEmailMismatch("This invitation was sent to a different email address.")
    if collab.status == "revoked":
        raise CollaboratorStateError("This invitation has been revoked.")

    access = (
        s.query(WeddingAccess)
        .filter(WeddingAccess.wedding_id == collab.wedding_id, WeddingAccess.user_id == user.id)
        .one_or_none()
    )
    permissions = {key: bool((collab.permissions or {}).get(key)) for key in WEDDING_PERMISSIONS}
    if access is None:
        access = WeddingAccess(
            user_id=user.id,
            wedding_id=collab.wedding_id,
            created_at=datetime.utcnow(),
        )
        s.add(access)
    access.permissions = permissions
    access.access_level = access_level_for(permissions)

    if collab.status != "accepted":
        collab.status = "accepted"
        collab.accepted_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor=user,
        action="collaborator.accept",
        entity_type="GuestCollaborator",
        entity_id=str(collab.id),
        metadata={"wedding_id": collab.wedding_id, "access_level": access.access_level},
    )
    return access


def list_collaborators(s: "Session", wedding: "Wedding") -> list["GuestCollaborator"]:
    from app.invites.modules.collaborators.models import GuestCollaborator

    return (
        s.query(GuestCollaborator)
        .filter(GuestCollaborator.wedding_id == wedding.id)
        .order_by(GuestCollaborator.invited_at.desc(), GuestCollaborator.id.desc())
        .all()
    )


def serialize_collaborator(c: "GuestCollaborator") -> dict:
    return {
        "id": c.id,
        "wedding_id": c.wedding_id,
        "email": c.email,
        "name": c.name,
        "role": c.role,
        "status": c.status,
        "permissions": c.permissions or {},
        "invited_at": isoformat(c.invited_at),
        "accepted_at": isoformat(c.accepted_at),
    }
