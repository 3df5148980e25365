from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from flask import abort, jsonify, request

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def json_payload() -> dict:
    """Request body as a dict: JSON when sent as JSON, else form fields."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            abort(400, description="Malformed JSON body.")
        if not isinstance(data, dict):
            abort(400, description="JSON body must be an object.")
        return data
    return request.form.to_dict()


def validation_error(errors: list[str]):
    return jsonify({"error": "validation_failed", "errors": errors}), 400


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_date(s: Any) -> date | None:
    """Parse YYYY-MM-DD (or an ISO datetime, keeping the date part)."""
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    s = str(s).strip()
    if not s:
        return None
    if len(s) > 10:
        # Calendar date as written, whatever the offset.
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return datetime.fromisoformat(s).date()
    return date.fromisoformat(s)


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "on", "y"):
        return True
    if s in ("0", "false", "no", "off", "n", ""):
        return False
    return default


def parse_int(value: Any, default: int | None = None) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ValueError("Expected an integer.")
    return int(value)


def is_hex_color(value: str) -> bool:
    return bool(_HEX_COLOR_RE.match(value or ""))


def isoformat(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
