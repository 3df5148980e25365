import secrets

from flask import Request, current_app, session
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

_API_TOKEN_SALT = "invites.api-token"
_INVITATION_LINK_SALT = "invites.invitation-link"


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from form, header, or JSON body."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")

    if not token and req.is_json:
        json_data = req.get_json(silent=True) or {}
        if isinstance(json_data, dict):
            token = json_data.get("csrf_token")

    return bool(token and secrets.compare_digest(str(token), str(session.get("csrf_token") or "")))


def bearer_token(req: Request) -> str | None:
    header = (req.headers.get("Authorization") or "").strip()
    if not header.lower().startswith("bearer "):
        return None
    token = header[7:].strip()
    return token or None


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=salt)


def issue_api_token(user_id: int) -> str:
    return _serializer(_API_TOKEN_SALT).dumps({"uid": int(user_id)})


def load_api_token(token: str) -> int | None:
    """Return the user id encoded in a bearer token, or None if invalid/expired."""
    max_age = int(current_app.config.get("API_TOKEN_MAX_AGE") or 0) or None
    try:
        data = _serializer(_API_TOKEN_SALT).loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Rejected expired API token")
        return None
    except BadSignature:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("uid"), int):
        return None
    return data["uid"]


def sign_invitation_link(invitation_id: int) -> str:
    return _serializer(_INVITATION_LINK_SALT).dumps(int(invitation_id))


def verify_invitation_link(invitation_id: int, token: str) -> bool:
    try:
        value = _serializer(_INVITATION_LINK_SALT).loads(token)
    except BadSignature:
        return False
    return value == int(invitation_id)
