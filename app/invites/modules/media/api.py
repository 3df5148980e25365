from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request

from app.invites.access import get_visible_wedding_or_404, get_wedding_or_404, require_wedding_permission
from app.invites.db import db_session
from app.invites.modules.media.models import Photo
from app.invites.modules.media.service import (
    AUDIO_RULE,
    COUPLE_PHOTO_RULE,
    IMAGE_RULE,
    add_photo,
    clear_background_music,
    delete_photo,
    delete_stored_objects,
    list_photos,
    serialize_photo,
    set_background_music,
    set_couple_photo,
    update_photo,
    validate_photo_fields,
    validate_upload,
)
from app.invites.rbac import require_login
from app.invites.storage import StorageError
from app.invites.utils import clean_str, json_payload, parse_bool, parse_int, validation_error

bp = Blueprint("media", __name__)


def _read_upload(rule) -> tuple[bytes, str, str | None] | tuple[None, list[str], None]:
    f = request.files.get("file")
    if not f or not f.filename:
        return None, ["file is required."], None
    data = f.read()
    errors = validate_upload(rule, f.filename, f.mimetype, len(data))
    if errors:
        return None, errors, None
    return data, f.filename, f.mimetype


def _storage_failed(e: StorageError):
    current_app.logger.error("Media storage failure: %s", e)
    abort(502, description="Media storage is unavailable.")


@bp.get("/photos/wedding/<int:wedding_id>")
def photos_list(wedding_id: int):
    s = db_session()
    wedding = get_visible_wedding_or_404(s, wedding_id)
    return jsonify([serialize_photo(p) for p in list_photos(s, wedding)])


@bp.post("/photos")
@require_login
def photos_create():
    s = db_session()
    payload = json_payload()
    try:
        wedding_id = parse_int(payload.get("wedding_id", payload.get("weddingId")))
    except (TypeError, ValueError):
        wedding_id = None
    if wedding_id is None:
        return validation_error(["wedding_id is required."])
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canManagePhotos")

    errors = validate_photo_fields(payload)
    if errors:
        return validation_error(errors)

    common = {
        "caption": payload.get("caption"),
        "photo_type": payload.get("photo_type"),
        "is_hero": parse_bool(payload.get("is_hero")),
    }
    try:
        if "file" in request.files:
            data, filename, content_type = _read_upload(IMAGE_RULE)
            if data is None:
                return validation_error(filename)  # type: ignore[arg-type]
            photo = add_photo(
                s, current_app.config, wedding, u, file_bytes=data, filename=filename, content_type=content_type, **common
            )
        else:
            url = clean_str(payload.get("url"))
            if not url or not url.startswith(("https://", "http://", "/")):
                return validation_error(["Provide an image file or an http(s) url."])
            photo = add_photo(s, current_app.config, wedding, u, url=url, **common)
    except StorageError as e:
        _storage_failed(e)
    s.commit()
    return jsonify(serialize_photo(photo)), 201


@bp.route("/photos/<int:photo_id>", methods=["PUT", "PATCH"])
@require_login
def photo_update(photo_id: int):
    s = db_session()
    photo = s.get(Photo, photo_id)
    if not photo:
        abort(404)
    u = require_wedding_permission(s, photo.wedding, "canManagePhotos")

    payload = json_payload()
    errors = validate_photo_fields(payload)
    if errors:
        return validation_error(errors)

    update_photo(s, photo, payload, u)
    s.commit()
    return jsonify(serialize_photo(photo))


@bp.delete("/photos/<int:photo_id>")
@require_login
def photo_delete(photo_id: int):
    s = db_session()
    photo = s.get(Photo, photo_id)
    if not photo:
        abort(404)
    u = require_wedding_permission(s, photo.wedding, "canManagePhotos")

    stale_key = delete_photo(s, photo, u)
    s.commit()
    delete_stored_objects(current_app.config, [stale_key])
    return jsonify({"ok": True})


@bp.post("/weddings/<int:wedding_id>/music")
@require_login
def music_upload(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canEditDetails")

    data, filename, content_type = _read_upload(AUDIO_RULE)
    if data is None:
        return validation_error(filename)  # type: ignore[arg-type]
    try:
        stale_key = set_background_music(
            s, current_app.config, wedding, u, file_bytes=data, filename=filename, content_type=content_type
        )
    except StorageError as e:
        _storage_failed(e)
    s.commit()
    delete_stored_objects(current_app.config, [stale_key])
    return jsonify({"background_music_url": wedding.background_music_url}), 201


@bp.delete("/weddings/<int:wedding_id>/music")
@require_login
def music_delete(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canEditDetails")

    stale_key = clear_background_music(s, wedding, u)
    s.commit()
    delete_stored_objects(current_app.config, [stale_key])
    return jsonify({"ok": True})


@bp.post("/weddings/<int:wedding_id>/couple-photo")
@require_login
def couple_photo_upload(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canManagePhotos")

    data, filename, content_type = _read_upload(COUPLE_PHOTO_RULE)
    if data is None:
        return validation_error(filename)  # type: ignore[arg-type]
    try:
        stale_key = set_couple_photo(
            s, current_app.config, wedding, u, file_bytes=data, filename=filename, content_type=content_type
        )
    except StorageError as e:
        _storage_failed(e)
    s.commit()
    delete_stored_objects(current_app.config, [stale_key])
    return jsonify({"couple_photo_url": wedding.couple_photo_url}), 201
