from __future__ import annotations

from flask import Blueprint, abort, g, render_template, request

from app.invites.access import is_visible
from app.invites.db import db_session
from app.invites.modules.guest_book.service import list_entries
from app.invites.modules.media.service import list_photos
from app.invites.modules.weddings.i18n import labels_for
from app.invites.modules.weddings.models import Wedding
from app.invites.modules.weddings.service import countdown_for

bp = Blueprint("invitation_page", __name__)


def pick_language(wedding: Wedding, requested: str | None) -> str:
    requested = (requested or "").strip().lower()
    available = wedding.available_languages or ["en"]
    if requested and requested in available:
        return requested
    return wedding.default_language or "en"


@bp.get("/w/<unique_url>")
def invitation(unique_url: str):
    s = db_session()
    wedding = s.query(Wedding).filter(Wedding.unique_url == unique_url.lower()).one_or_none()
    if not wedding or not is_visible(s, getattr(g, "current_user", None), wedding):
        abort(404)

    photos = list_photos(s, wedding)
    hero = next((p for p in photos if p.is_hero), None)
    lang = pick_language(wedding, request.args.get("lang"))
    return render_template(
        "public/invitation.html",
        wedding=wedding,
        lang=lang,
        t=labels_for(lang),
        countdown=countdown_for(wedding),
        hero=hero,
        photos=[p for p in photos if not p.is_hero],
        entries=list_entries(s, wedding),
        show_manual_rsvp=wedding.rsvp_mode in ("manual", "both"),
        show_guest_lookup=wedding.rsvp_mode in ("preregistered", "both"),
    )
