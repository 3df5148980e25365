from __future__ import annotations

import re
import unicodedata
from datetime import datetime, time
from typing import TYPE_CHECKING, Any

from app.invites.audit import record_event
from app.invites.constants import (
    DEFAULT_TEMPLATE,
    DEFAULT_TIMEZONE,
    EVENT_TYPES,
    RSVP_MODES,
    SUPPORTED_LANGUAGES,
    TEMPLATE_REGISTRY,
    template_tier,
    templates_for,
)
from app.invites.modules.weddings.countdown import (
    compute_countdown,
    is_milestone_age,
    load_zone,
    local_deadline,
    parse_event_time,
)
from app.invites.utils import clean_str, is_hex_color, isoformat, parse_bool, parse_date

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.weddings.models import Wedding


_UNIQUE_URL_RE = re.compile(r"^[a-z0-9][a-z0-9-]{1,62}[a-z0-9]$")

# Free-text columns copied as-is (blank -> NULL).
_TEXT_FIELDS = (
    "map_pin_url",
    "story",
    "welcome_message",
    "dear_guest_message",
    "dress_code",
    "couple_photo_url",
    "background_template",
    "background_music_url",
    "age",
    "party_theme",
    "gift_registry_info",
    "contact_person",
    "special_instructions",
)

# Columns a public visitor may see.
_PUBLIC_FIELDS = (
    "id",
    "unique_url",
    "event_type",
    "bride",
    "groom",
    "wedding_time",
    "timezone",
    "venue",
    "venue_address",
    "venue_coordinates",
    "map_pin_url",
    "story",
    "welcome_message",
    "dear_guest_message",
    "dress_code",
    "couple_photo_url",
    "background_template",
    "template",
    "primary_color",
    "accent_color",
    "background_music_url",
    "rsvp_mode",
    "available_languages",
    "default_language",
    "age",
    "party_theme",
    "gift_registry_info",
    "contact_person",
    "special_instructions",
)


class PremiumTemplateError(PermissionError):
    """Raised when an owner without a paid subscription picks a premium template."""


class UniqueUrlTakenError(ValueError):
    pass


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug[:50].strip("-")


def generate_unique_url(s: "Session", bride: str, groom: str | None, event_type: str = "wedding") -> str:
    from app.invites.modules.weddings.models import Wedding

    base = slugify("-".join(p for p in (bride, groom) if p)) or event_type
    if len(base) < 3:
        base = f"{base}-{event_type}"
    candidate = base
    n = 2
    while s.query(Wedding.id).filter(Wedding.unique_url == candidate).first() is not None:
        candidate = f"{base}-{n}"
        n += 1
    return candidate


def _validate_coordinates(value: Any) -> tuple[dict | None, str | None]:
    if value in (None, "", {}):
        return None, None
    if not isinstance(value, dict):
        return None, "venue_coordinates must be an object with lat and lng."
    try:
        lat = float(value.get("lat"))
        lng = float(value.get("lng"))
    except (TypeError, ValueError):
        return None, "venue_coordinates lat/lng must be numbers."
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None, "venue_coordinates out of range."
    return {"lat": lat, "lng": lng}, None


def normalize_wedding_payload(
    payload: dict,
    *,
    existing: "Wedding | None" = None,
) -> tuple[dict[str, Any], list[str]]:
    """
    Validate a create/update payload.

    On update (`existing` given) only keys present in the payload are
    returned; cross-field rules are checked against the merged result.
    Returns (values, errors).
    """
    partial = existing is not None
    values: dict[str, Any] = {}
    errors: list[str] = []

    def present(key: str) -> bool:
        return key in payload if partial else True

    if present("event_type"):
        event_type = (clean_str(payload.get("event_type")) or "wedding").lower()
        if event_type not in EVENT_TYPES:
            errors.append(f"Invalid event_type. Must be one of: {', '.join(EVENT_TYPES)}")
        values["event_type"] = event_type
    event_type = values.get("event_type") or (existing.event_type if existing else "wedding")

    for key in ("bride", "venue", "venue_address"):
        if present(key):
            v = clean_str(payload.get(key))
            if not v:
                errors.append(f"{key} is required.")
            values[key] = v
    if present("groom"):
        groom = clean_str(payload.get("groom")) or ""
        values["groom"] = groom
    groom_final = values["groom"] if "groom" in values else (existing.groom if existing else "")
    if event_type == "wedding" and not groom_final and (present("groom") or "event_type" in values):
        errors.append("groom is required.")

    if present("wedding_date"):
        raw = payload.get("wedding_date")
        try:
            day = parse_date(raw)
        except ValueError:
            wd = None
            errors.append("wedding_date must be an ISO date (YYYY-MM-DD).")
        else:
            wd = datetime.combine(day, time()) if day is not None else None
            if wd is None:
                errors.append("wedding_date is required.")
        values["wedding_date"] = wd

    if "wedding_time" in payload:
        wt = clean_str(payload.get("wedding_time"))
        if wt:
            try:
                parse_event_time(wt)
            except ValueError:
                errors.append("wedding_time must look like '4:00 PM' or '16:00'.")
            values["wedding_time"] = wt

    if "timezone" in payload:
        tz = clean_str(payload.get("timezone"))
        if tz:
            try:
                load_zone(tz)
            except ValueError:
                errors.append(f"Unknown timezone: {tz}")
            values["timezone"] = tz

    if "unique_url" in payload:
        url = (clean_str(payload.get("unique_url")) or "").lower()
        if url:
            if not _UNIQUE_URL_RE.match(url) or "--" in url:
                errors.append("unique_url must be 3-64 characters of a-z, 0-9 and single hyphens.")
            values["unique_url"] = url

    if "template" in payload:
        tpl = clean_str(payload.get("template"))
        if tpl:
            values["template"] = tpl
    if not partial and "template" not in values:
        values["template"] = DEFAULT_TEMPLATE if event_type == "wedding" else "standard"
    template_final = values.get("template") or (existing.template if existing else None)
    if template_final and template_final not in templates_for(event_type):
        errors.append(f"Template {template_final!r} is not available for {event_type} events.")

    for key in ("primary_color", "accent_color"):
        if key in payload:
            color = clean_str(payload.get(key))
            if color:
                if not is_hex_color(color):
                    errors.append(f"{key} must be a #RRGGBB color.")
                values[key] = color

    if "rsvp_mode" in payload:
        mode = clean_str(payload.get("rsvp_mode")) or "both"
        if mode not in RSVP_MODES:
            errors.append(f"Invalid rsvp_mode. Must be one of: {', '.join(RSVP_MODES)}")
        values["rsvp_mode"] = mode

    if "rsvp_deadline" in payload:
        tz_final = values.get("timezone") or (existing.timezone if existing else None) or DEFAULT_TIMEZONE
        try:
            load_zone(tz_final)
        except ValueError:
            tz_final = DEFAULT_TIMEZONE
        try:
            values["rsvp_deadline"] = local_deadline(payload.get("rsvp_deadline"), tz_final)
        except ValueError:
            errors.append("rsvp_deadline must be an ISO date or datetime.")

    if "is_public" in payload:
        values["is_public"] = parse_bool(payload.get("is_public"), default=True)

    if "available_languages" in payload:
        langs = payload.get("available_languages")
        if isinstance(langs, str):
            langs = [p.strip() for p in langs.split(",") if p.strip()]
        if not isinstance(langs, list) or not langs:
            errors.append("available_languages must be a non-empty list.")
        else:
            bad = [lang for lang in langs if lang not in SUPPORTED_LANGUAGES]
            if bad:
                errors.append(f"Unsupported languages: {', '.join(map(str, bad))}")
            else:
                values["available_languages"] = list(dict.fromkeys(langs))
    if "default_language" in payload:
        dl = clean_str(payload.get("default_language"))
        if dl:
            values["default_language"] = dl
    langs_final = values.get("available_languages") or (existing.available_languages if existing else ["en"])
    default_final = values.get("default_language") or (existing.default_language if existing else "en")
    if isinstance(langs_final, list) and default_final not in langs_final:
        errors.append("default_language must be one of available_languages.")

    if "venue_coordinates" in payload:
        coords, err = _validate_coordinates(payload.get("venue_coordinates"))
        if err:
            errors.append(err)
        values["venue_coordinates"] = coords

    for key in _TEXT_FIELDS:
        if key in payload:
            values[key] = clean_str(payload.get(key))

    return values, errors


def check_template_allowed(owner: "User", template: str | None) -> None:
    if template and template_tier(template) == "premium" and not owner.has_paid_subscription:
        raise PremiumTemplateError(f"Template {template!r} requires a paid subscription.")


def create_wedding(s: "Session", payload: dict, user: "User") -> "Wedding":
    """Create a wedding owned by `user`. Payload must already be normalized."""
    from app.invites.modules.weddings.models import Wedding

    values = dict(payload)
    check_template_allowed(user, values.get("template"))

    url = values.pop("unique_url", None)
    if url:
        if s.query(Wedding.id).filter(Wedding.unique_url == url).first() is not None:
            raise UniqueUrlTakenError(url)
    else:
        url = generate_unique_url(s, values.get("bride") or "", values.get("groom"), values.get("event_type") or "wedding")

    now = datetime.utcnow()
    wedding = Wedding(user_id=user.id, unique_url=url, created_at=now, updated_at=now)
    for key, value in values.items():
        setattr(wedding, key, value)
    s.add(wedding)
    s.flush()

    record_event(
        s,
        actor=user,
        action="wedding.create",
        entity_type="Wedding",
        entity_id=str(wedding.id),
        metadata={"unique_url": wedding.unique_url, "template": wedding.template, "event_type": wedding.event_type},
    )
    return wedding


def update_wedding(s: "Session", wedding: "Wedding", values: dict, user: "User") -> "Wedding":
    """Apply normalized values, recording old/new for each changed column."""
    from app.invites.modules.weddings.models import Wedding

    new_template = values.get("template")
    if new_template and new_template != wedding.template:
        check_template_allowed(wedding.owner, new_template)

    new_url = values.get("unique_url")
    if new_url and new_url != wedding.unique_url:
        taken = s.query(Wedding.id).filter(Wedding.unique_url == new_url, Wedding.id != wedding.id).first()
        if taken is not None:
            raise UniqueUrlTakenError(new_url)

    changes: dict[str, dict[str, Any]] = {}
    for key, new in values.items():
        old = getattr(wedding, key)
        if old != new:
            changes[key] = {"old": old, "new": new}
            setattr(wedding, key, new)

    if changes:
        wedding.updated_at = datetime.utcnow()
        record_event(
            s,
            actor=user,
            action="wedding.edit",
            entity_type="Wedding",
            entity_id=str(wedding.id),
            metadata={"unique_url": wedding.unique_url, "changes": changes},
        )
    return wedding


def delete_wedding(s: "Session", wedding: "Wedding", user: "User") -> list[str]:
    """Delete a wedding. Returns the storage keys to remove once the commit succeeds."""
    keys = [p.storage_key for p in wedding.photos if p.storage_key]
    keys += [k for k in (wedding.background_music_key, wedding.couple_photo_key) if k]

    record_event(
        s,
        actor=user,
        action="wedding.delete",
        entity_type="Wedding",
        entity_id=str(wedding.id),
        metadata={"unique_url": wedding.unique_url, "stored_objects": len(keys)},
    )
    s.delete(wedding)
    return keys


def countdown_for(wedding: "Wedding", now: datetime | None = None) -> dict:
    cd = compute_countdown(wedding.wedding_date, wedding.wedding_time, wedding.timezone, now=now).to_dict()
    if wedding.event_type == "birthday":
        cd["is_milestone_age"] = is_milestone_age(wedding.age)
    return cd


def template_catalog() -> dict[str, list[dict]]:
    return {
        event_type: [{"value": key, "label": label, "tier": template_tier(key)} for key, label in entries]
        for event_type, entries in TEMPLATE_REGISTRY.items()
    }


def serialize_wedding(wedding: "Wedding", *, public: bool = False) -> dict:
    data: dict[str, Any] = {key: getattr(wedding, key) for key in _PUBLIC_FIELDS}
    data["wedding_date"] = isoformat(wedding.wedding_date)
    data["rsvp_deadline"] = isoformat(wedding.rsvp_deadline)
    data["display_names"] = wedding.display_names
    if not public:
        data.update(
            {
                "user_id": wedding.user_id,
                "is_public": wedding.is_public,
                "created_at": isoformat(wedding.created_at),
                "updated_at": isoformat(wedding.updated_at),
            }
        )
    return data
