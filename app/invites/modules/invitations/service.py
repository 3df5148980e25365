"""
Invitation delivery and tracking.

Each send creates one `invitations` row per guest. Email goes out through SMTP
right away; other channels (SMS, messengers, plain link) are recorded as
pending with a signed tracking link the couple shares by hand.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from flask import url_for
from markupsafe import escape

from app.invites.audit import record_event
from app.invites.constants import INVITATION_TYPES
from app.invites.mailer import send_email
from app.invites.security import sign_invitation_link
from app.invites.utils import clean_str, isoformat, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.guests.models import Guest
    from app.invites.modules.invitations.models import Invitation
    from app.invites.modules.weddings.models import Wedding

logger = logging.getLogger(__name__)


def _external_url(config: dict, endpoint: str, **values) -> str:
    base = (config.get("PUBLIC_BASE_URL") or "").rstrip("/")
    if base:
        return base + url_for(endpoint, **values)
    return url_for(endpoint, _external=True, **values)


def invitation_link(config: dict, invitation: "Invitation") -> str:
    return _external_url(
        config,
        "invitations_public.open_invitation",
        invitation_id=invitation.id,
        token=sign_invitation_link(invitation.id),
    )


def public_page_url(config: dict, wedding: "Wedding") -> str:
    return _external_url(config, "invitation_page.invitation", unique_url=wedding.unique_url)


def normalize_send_payload(payload: dict) -> tuple[list[int], str, list[str]]:
    errors: list[str] = []
    invitation_type = (
        clean_str(payload.get("invitation_type", payload.get("invitationType"))) or "email"
    ).lower()
    if invitation_type not in INVITATION_TYPES:
        errors.append(f"Invalid invitation_type. Must be one of: {', '.join(INVITATION_TYPES)}")

    raw_ids = payload.get("guest_ids", payload.get("guestIds"))
    guest_ids: list[int] = []
    if not isinstance(raw_ids, list) or not raw_ids:
        errors.append("guest_ids must be a non-empty list.")
    else:
        for raw in raw_ids:
            try:
                gid = parse_int(raw)
            except (TypeError, ValueError):
                gid = None
            if gid is None:
                errors.append(f"Invalid guest id: {raw!r}")
            elif gid not in guest_ids:
                guest_ids.append(gid)
    return guest_ids, invitation_type, errors


def contact_for(guest: "Guest", invitation_type: str) -> str | None:
    if invitation_type == "email":
        return guest.email
    if invitation_type == "link":
        return guest.email or guest.phone
    return guest.phone


def _compose(wedding: "Wedding", guest: "Guest", link: str, *, reminder: bool) -> tuple[str, str, str]:
    names = wedding.display_names
    date_txt = wedding.wedding_date.strftime("%B %d, %Y")
    if reminder:
        subject = f"Reminder: {names} are waiting for your reply"
    elif wedding.event_type == "birthday":
        subject = f"You're invited to {names}'s birthday"
    else:
        subject = f"You're invited to the wedding of {names}"

    lines = [
        f"Dear {guest.name},",
        "",
        wedding.dear_guest_message or wedding.welcome_message or "We would be honored by your presence.",
        "",
        f"When: {date_txt}, {wedding.wedding_time}",
        f"Where: {wedding.venue}, {wedding.venue_address}",
    ]
    if wedding.rsvp_deadline:
        lines.append(f"Please reply by {wedding.rsvp_deadline.strftime('%B %d, %Y')}.")
    lines += ["", f"Open your invitation: {link}"]
    text = "\n".join(lines)
    html = (
        f"<p>Dear {_esc(guest.name)},</p>"
        f"<p>{_esc(lines[2])}</p>"
        f"<p><strong>When:</strong> {_esc(date_txt)}, {_esc(wedding.wedding_time)}<br>"
        f"<strong>Where:</strong> {_esc(wedding.venue)}, {_esc(wedding.venue_address)}</p>"
        f'<p><a href="{_esc(link)}">Open your invitation</a></p>'
    )
    return subject, text, html


def _esc(value: str | None) -> str:
    return str(escape(value or ""))


def deliver(config: dict, invitation: "Invitation", *, reminder: bool = False) -> bool:
    """Deliver one invitation in place. Non-email channels stay as they are."""
    if invitation.invitation_type != "email":
        return False

    now = datetime.utcnow()
    link = invitation_link(config, invitation)
    subject, text, html = _compose(invitation.wedding, invitation.guest, link, reminder=reminder)
    ok, detail = send_email(
        config,
        to_email=invitation.recipient_contact or "",
        to_name=invitation.guest.name,
        subject=subject,
        text_body=text,
        html_body=html,
    )
    if ok:
        if invitation.status != "opened":
            invitation.status = "sent"
        invitation.sent_at = invitation.sent_at or now
        invitation.error_message = None
        invitation.guest.invitation_sent = True
        invitation.guest.invitation_sent_at = now
    else:
        # A failed reminder leaves the earlier delivery and open state alone.
        if not reminder:
            invitation.status = "failed"
        invitation.error_message = detail
    return ok


def send_invitations(
    s: "Session", config: dict, wedding: "Wedding", guest_ids: list[int], invitation_type: str, user: "User"
) -> tuple[list["Invitation"], list[dict]]:
    from app.invites.modules.guests.models import Guest
    from app.invites.modules.invitations.models import Invitation

    guests = {g.id: g for g in s.query(Guest).filter(Guest.wedding_id == wedding.id, Guest.id.in_(guest_ids)).all()}
    created: list[Invitation] = []
    skipped: list[dict] = []

    for gid in guest_ids:
        guest = guests.get(gid)
        if guest is None:
            skipped.append({"guest_id": gid, "reason": "not_found"})
            continue
        contact = contact_for(guest, invitation_type)
        if not contact and invitation_type != "link":
            skipped.append({"guest_id": gid, "reason": "missing_email" if invitation_type == "email" else "missing_phone"})
            continue

        inv = Invitation(
            wedding_id=wedding.id,
            guest_id=guest.id,
            invitation_type=invitation_type,
            recipient_contact=contact,
            status="pending",
            created_at=datetime.utcnow(),
        )
        inv.wedding = wedding
        inv.guest = guest
        s.add(inv)
        s.flush()
        deliver(config, inv)
        created.append(inv)

    sent = sum(1 for i in created if i.status == "sent")
    failed = sum(1 for i in created if i.status == "failed")
    record_event(
        s,
        actor=user,
        action="invitation.send",
        entity_type="Wedding",
        entity_id=str(wedding.id),
        metadata={
            "invitation_type": invitation_type,
            "created": len(created),
            "sent": sent,
            "failed": failed,
            "skipped": len(skipped),
        },
    )
    logger.info(
        "Invitations wedding_id=%s type=%s created=%s sent=%s failed=%s skipped=%s",
        wedding.id,
        invitation_type,
        len(created),
        sent,
        failed,
        len(skipped),
    )
    return created, skipped


def send_reminder(s: "Session", config: dict, invitation: "Invitation", user: "User") -> bool:
    ok = deliver(config, invitation, reminder=True)
    invitation.reminder_sent_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="invitation.remind",
        entity_type="Invitation",
        entity_id=str(invitation.id),
        metadata={"wedding_id": invitation.wedding_id, "delivered": ok, "status": invitation.status},
    )
    return ok


def mark_opened(s: "Session", invitation: "Invitation") -> None:
    if invitation.opened_at is not None:
        return
    invitation.opened_at = datetime.utcnow()
    invitation.status = "opened"
    record_event(
        s,
        actor=None,
        action="invitation.open",
        entity_type="Invitation",
        entity_id=str(invitation.id),
        metadata={"wedding_id": invitation.wedding_id, "guest_id": invitation.guest_id},
    )


def list_invitations(s: "Session", wedding: "Wedding", status: str | None = None) -> list["Invitation"]:
    from app.invites.modules.invitations.models import Invitation

    q = s.query(Invitation).filter(Invitation.wedding_id == wedding.id)
    if status:
        q = q.filter(Invitation.status == status)
    return q.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()


def serialize_invitation(config: dict, inv: "Invitation") -> dict:
    return {
        "id": inv.id,
        "wedding_id": inv.wedding_id,
        "guest_id": inv.guest_id,
        "guest_name": inv.guest.name if inv.guest else None,
        "invitation_type": inv.invitation_type,
        "recipient_contact": inv.recipient_contact,
        "status": inv.status,
        "link": invitation_link(config, inv),
        "sent_at": isoformat(inv.sent_at),
        "delivered_at": isoformat(inv.delivered_at),
        "opened_at": isoformat(inv.opened_at),
        "reminder_sent_at": isoformat(inv.reminder_sent_at),
        "error_message": inv.error_message,
        "created_at": isoformat(inv.created_at),
    }
