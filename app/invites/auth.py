from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, abort, current_app, flash, g, jsonify, redirect, render_template, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from app.invites.audit import record_event
from app.invites.db import db_session
from app.invites.models import User
from app.invites.rbac import require_login
from app.invites.security import bearer_token, issue_api_token, load_api_token
from app.invites.utils import clean_str, isoformat, json_payload, validation_error

bp = Blueprint("auth", __name__)
api_bp = Blueprint("auth_api", __name__)

_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
_MIN_PASSWORD_LENGTH = 8


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def reset_rate_limits() -> None:
    _login_attempts.clear()


def _active_user(user_id: int | None) -> User | None:
    if not user_id:
        return None
    user = db_session().get(User, int(user_id))
    if not user or not user.is_active:
        return None
    return user


def load_current_user() -> None:
    """
    Loads g.current_user from a bearer token or the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    g.auth_via = None
    g.current_user = None

    token = bearer_token(request)
    if token:
        user = _active_user(load_api_token(token))
        if user:
            g.current_user = user
            g.auth_via = "token"
        return

    user_id = session.get("user_id")
    if not user_id:
        return
    try:
        user = _active_user(user_id)
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        user = None
    if not user:
        session.pop("user_id", None)
        return
    g.current_user = user
    g.auth_via = "session"


def _authenticate(email: str, password: str) -> User | None:
    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        return None
    return user


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "is_active": user.is_active,
        "has_paid_subscription": user.has_paid_subscription,
        "roles": sorted(r.key for r in user.roles),
        "created_at": isoformat(user.created_at),
    }


# ---------- Browser login ----------
@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    try:
        user = _authenticate(email, password)
        if not user:
            flash("Invalid credentials.", "danger")
            return redirect(url_for("auth.login_get"))

        s = db_session()
        session["user_id"] = user.id
        _login_attempts[ip].clear()
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
        # Optional "next" redirect (only allow local paths to avoid open redirects).
        if nxt.startswith("/") and not nxt.startswith("//"):
            return redirect(nxt)
        return redirect(url_for("routes.index"))
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise


@bp.get("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return redirect(url_for("routes.index"))


# ---------- API ----------
@api_bp.post("/register")
def register():
    payload = json_payload()
    email = (clean_str(payload.get("email")) or "").lower()
    password = payload.get("password") or ""
    name = clean_str(payload.get("name")) or ""

    errors = []
    if not email or "@" not in email:
        errors.append("A valid email is required.")
    if len(password) < _MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
    if errors:
        return validation_error(errors)

    s = db_session()
    if s.query(User).filter(User.email == email).one_or_none():
        abort(409, description="An account with this email already exists.")

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        is_active=True,
        has_paid_subscription=False,
        created_at=datetime.utcnow(),
    )
    s.add(user)
    s.flush()
    record_event(s, actor=user, action="auth.register", entity_type="User", entity_id=str(user.id))
    s.commit()
    current_app.logger.info("User registered id=%s", user.id)
    return jsonify({"user": serialize_user(user), "token": issue_api_token(user.id)}), 201


@api_bp.post("/token")
def token():
    payload = json_payload()
    email = (clean_str(payload.get("email")) or "").lower()
    password = payload.get("password") or ""
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        abort(429, description="Too many login attempts. Please wait 5 minutes.")
    _record_attempt(ip)

    user = _authenticate(email, password)
    if not user:
        abort(401, description="Invalid credentials.")

    s = db_session()
    _login_attempts[ip].clear()
    record_event(s, actor=user, action="auth.token", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify(
        {
            "token": issue_api_token(user.id),
            "token_type": "Bearer",
            "expires_in": int(current_app.config.get("API_TOKEN_MAX_AGE") or 0),
            "user": serialize_user(user),
        }
    )


@api_bp.get("/me")
@require_login
def me():
    return jsonify(serialize_user(g.current_user))
