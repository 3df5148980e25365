"""
Photos, couple portrait and background music.

Uploaded bytes go to the configured media store (local disk or an
S3-compatible host); rows keep both the public URL and the storage key so the
object can be removed when the row is.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.utils import secure_filename

from app.invites.audit import record_event
from app.invites.constants import (
    AUDIO_CONTENT_TYPES,
    AUDIO_EXTENSIONS,
    IMAGE_CONTENT_TYPES,
    IMAGE_EXTENSIONS,
    MAX_AUDIO_BYTES,
    MAX_IMAGE_BYTES,
    PHOTO_TYPES,
)
from app.invites.storage import StorageError, storage_from_config
from app.invites.utils import clean_str, isoformat, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.media.models import Photo
    from app.invites.modules.weddings.models import Wedding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRule:
    kind: str
    folder: str
    content_types: frozenset
    extensions: frozenset
    max_bytes: int


IMAGE_RULE = UploadRule("image", "photos", IMAGE_CONTENT_TYPES, IMAGE_EXTENSIONS, MAX_IMAGE_BYTES)
COUPLE_PHOTO_RULE = UploadRule("image", "couple", IMAGE_CONTENT_TYPES, IMAGE_EXTENSIONS, MAX_IMAGE_BYTES)
AUDIO_RULE = UploadRule("audio", "music", AUDIO_CONTENT_TYPES, AUDIO_EXTENSIONS, MAX_AUDIO_BYTES)


def file_extension(filename: str | None) -> str:
    name = secure_filename(filename or "")
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def validate_upload(rule: UploadRule, filename: str | None, content_type: str | None, size_bytes: int) -> list[str]:
    errors = []
    ext = file_extension(filename)
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ext not in rule.extensions:
        errors.append(f"Invalid file type. Allowed: {', '.join(sorted(rule.extensions))}.")
    elif ctype and ctype != "application/octet-stream" and ctype not in rule.content_types:
        errors.append(f"Invalid content type {ctype!r} for {rule.kind} upload.")
    if size_bytes <= 0:
        errors.append("File is empty.")
    elif size_bytes > rule.max_bytes:
        errors.append(f"File too large. Maximum size is {rule.max_bytes // (1024 * 1024)}MB.")
    return errors


def build_media_key(wedding_id: int, rule: UploadRule, filename: str) -> str:
    ext = file_extension(filename) or "bin"
    return f"weddings/{wedding_id}/{rule.folder}/{uuid.uuid4().hex}.{ext}"


def _store(config: dict, wedding: "Wedding", rule: UploadRule, data: bytes, filename: str, content_type: str | None) -> tuple[str, str]:
    storage = storage_from_config(config)
    key = build_media_key(wedding.id, rule, filename)
    storage.put_bytes(key, data, content_type=content_type)
    return key, storage.public_url(key)


def delete_stored_object(config: dict, key: str | None) -> bool:
    """Best-effort delete; a failure is logged and reported as False."""
    if not key:
        return False
    try:
        return storage_from_config(config).delete(key)
    except StorageError as e:
        logger.error("Failed to delete stored object %s: %s", key, e)
        return False


def delete_stored_objects(config: dict, keys) -> int:
    """Remove objects whose rows are already committed away. Returns how many went."""
    return sum(1 for key in keys if delete_stored_object(config, key))


def _clear_other_heroes(s: "Session", wedding_id: int, keep_id: int | None) -> None:
    from app.invites.modules.media.models import Photo

    q = s.query(Photo).filter(Photo.wedding_id == wedding_id, Photo.is_hero.is_(True))
    if keep_id is not None:
        q = q.filter(Photo.id != keep_id)
    for other in q.all():
        other.is_hero = False


def validate_photo_fields(payload: dict) -> list[str]:
    errors = []
    photo_type = clean_str(payload.get("photo_type"))
    if photo_type and photo_type not in PHOTO_TYPES:
        errors.append(f"Invalid photo_type. Must be one of: {', '.join(PHOTO_TYPES)}")
    return errors


def add_photo(
    s: "Session",
    config: dict,
    wedding: "Wedding",
    user: "User",
    *,
    caption: str | None = None,
    photo_type: str | None = None,
    is_hero: bool = False,
    file_bytes: bytes | None = None,
    filename: str | None = None,
    content_type: str | None = None,
    url: str | None = None,
) -> "Photo":
    """Store an uploaded image (or register an external URL) as a wedding photo."""
    from app.invites.modules.media.models import Photo

    storage_key = None
    if file_bytes is not None:
        storage_key, url = _store(config, wedding, IMAGE_RULE, file_bytes, filename or "photo", content_type)
    if not url:
        raise ValueError("Either a file or a url is required.")

    photo = Photo(
        wedding_id=wedding.id,
        url=url,
        storage_key=storage_key,
        content_type=content_type if file_bytes is not None else None,
        size_bytes=len(file_bytes) if file_bytes is not None else None,
        caption=clean_str(caption),
        photo_type=clean_str(photo_type) or ("hero" if is_hero else "memory"),
        is_hero=is_hero,
        uploaded_at=datetime.utcnow(),
        uploaded_by_user_id=user.id,
    )
    s.add(photo)
    s.flush()
    if is_hero:
        _clear_other_heroes(s, wedding.id, photo.id)

    record_event(
        s,
        actor=user,
        action="photo.upload",
        entity_type="Photo",
        entity_id=str(photo.id),
        metadata={"wedding_id": wedding.id, "storage_key": storage_key, "is_hero": is_hero},
    )
    return photo


def update_photo(s: "Session", photo: "Photo", payload: dict, user: "User") -> "Photo":
    changes = {}
    if "caption" in payload:
        new_caption = clean_str(payload.get("caption"))
        if new_caption != photo.caption:
            changes["caption"] = {"old": photo.caption, "new": new_caption}
            photo.caption = new_caption
    if "photo_type" in payload:
        new_type = clean_str(payload.get("photo_type")) or "memory"
        if new_type != photo.photo_type:
            changes["photo_type"] = {"old": photo.photo_type, "new": new_type}
            photo.photo_type = new_type
    if "is_hero" in payload:
        new_hero = parse_bool(payload.get("is_hero"))
        if new_hero != photo.is_hero:
            changes["is_hero"] = {"old": photo.is_hero, "new": new_hero}
            photo.is_hero = new_hero
        if new_hero:
            _clear_other_heroes(s, photo.wedding_id, photo.id)

    if changes:
        record_event(
            s,
            actor=user,
            action="photo.edit",
            entity_type="Photo",
            entity_id=str(photo.id),
            metadata={"wedding_id": photo.wedding_id, "changes": changes},
        )
    return photo


def delete_photo(s: "Session", photo: "Photo", user: "User") -> str | None:
    """Remove the row. The caller deletes the returned storage key once the commit succeeds."""
    key = photo.storage_key
    record_event(
        s,
        actor=user,
        action="photo.delete",
        entity_type="Photo",
        entity_id=str(photo.id),
        metadata={"wedding_id": photo.wedding_id, "storage_key": key},
    )
    s.delete(photo)
    return key


def set_background_music(
    s: "Session",
    config: dict,
    wedding: "Wedding",
    user: "User",
    *,
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
) -> str | None:
    """Store new music and return the replaced key, if any, for deletion after commit."""
    old_key = wedding.background_music_key
    key, url = _store(config, wedding, AUDIO_RULE, file_bytes, filename, content_type)
    wedding.background_music_key = key
    wedding.background_music_url = url
    wedding.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="wedding.music_upload",
        entity_type="Wedding",
        entity_id=str(wedding.id),
        metadata={"storage_key": key, "replaced": old_key, "filename": secure_filename(filename)},
    )
    return old_key


def clear_background_music(s: "Session", wedding: "Wedding", user: "User") -> str | None:
    old_key = wedding.background_music_key
    wedding.background_music_key = None
    wedding.background_music_url = None
    wedding.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="wedding.music_remove",
        entity_type="Wedding",
        entity_id=str(wedding.id),
        metadata={"storage_key": old_key},
    )
    return old_key


def set_couple_photo(
    s: "Session",
    config: dict,
    wedding: "Wedding",
    user: "User",
    *,
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
) -> str | None:
    old_key = wedding.couple_photo_key
    key, url = _store(config, wedding, COUPLE_PHOTO_RULE, file_bytes, filename, content_type)
    wedding.couple_photo_key = key
    wedding.couple_photo_url = url
    wedding.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="wedding.couple_photo_upload",
        entity_type="Wedding",
        entity_id=str(wedding.id),
        metadata={"storage_key": key, "replaced": old_key},
    )
    return old_key


def list_photos(s: "Session", wedding: "Wedding") -> list["Photo"]:
    from app.invites.modules.media.models import Photo

    return (
        s.query(Photo)
        .filter(Photo.wedding_id == wedding.id)
        .order_by(Photo.is_hero.desc(), Photo.uploaded_at.desc(), Photo.id.desc())
        .all()
    )


def serialize_photo(photo: "Photo") -> dict:
    return {
        "id": photo.id,
        "wedding_id": photo.wedding_id,
        "url": photo.url,
        "caption": photo.caption,
        "is_hero": photo.is_hero,
        "photo_type": photo.photo_type,
        "uploaded_at": isoformat(photo.uploaded_at),
    }
