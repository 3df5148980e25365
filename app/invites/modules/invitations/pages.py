from __future__ import annotations

from flask import Blueprint, abort, redirect, url_for

from app.invites.db import db_session
from app.invites.modules.invitations.models import Invitation
from app.invites.modules.invitations.service import mark_opened
from app.invites.security import verify_invitation_link

bp = Blueprint("invitations_public", __name__)


@bp.get("/i/<int:invitation_id>/<token>")
def open_invitation(invitation_id: int, token: str):
    """Tracked invitation link: record the open, then show the invitation page."""
    if not verify_invitation_link(invitation_id, token):
        abort(404)
    s = db_session()
    inv = s.get(Invitation, invitation_id)
    if not inv:
        abort(404)

    mark_opened(s, inv)
    s.commit()
    return redirect(url_for("invitation_page.invitation", unique_url=inv.wedding.unique_url))
