from datetime import date, datetime, time, timedelta

from flask import Blueprint, abort, current_app, g, jsonify, request
from sqlalchemy import func, text

from app.invites.audit import record_event
from app.invites.auth import serialize_user
from app.invites.db import db_session
from app.invites.mailer import smtp_configured
from app.invites.models import AuditEvent, User
from app.invites.modules.guests.models import Guest
from app.invites.modules.weddings.models import Wedding
from app.invites.rbac import require_permission
from app.invites.utils import clean_str, isoformat, json_payload, parse_bool, parse_int, validation_error

bp = Blueprint("admin", __name__)

_AUDIT_DEFAULT_LIMIT = 200
_AUDIT_MAX_LIMIT = 1000


def _parse_date(s: str) -> date | None:
    s = (s or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def _get_user_or_404(user_id: int) -> User:
    u = db_session().get(User, user_id)
    if not u:
        abort(404)
    return u


@bp.get("/status")
@require_permission("admin.view")
def status():
    s = db_session()
    cfg = current_app.config
    result = {
        "env": (cfg.get("ENV") or "development").strip().lower(),
        "db_connected": False,
        "db_error": None,
        "storage_backend": (cfg.get("STORAGE_BACKEND") or "local").strip().lower(),
        "storage_configured": True,
        "storage_error": None,
        "smtp_configured": smtp_configured(cfg),
        "counts": None,
    }

    # DB connectivity (lightweight)
    try:
        s.execute(text("SELECT 1"))
        result["db_connected"] = True
        result["counts"] = {
            "users": s.query(func.count(User.id)).scalar() or 0,
            "weddings": s.query(func.count(Wedding.id)).scalar() or 0,
            "guests": s.query(func.count(Guest.id)).scalar() or 0,
        }
    except Exception as e:
        current_app.logger.error("Admin status DB check failed: %s", e)
        result["db_error"] = str(e)

    # Storage config (no network calls)
    if result["storage_backend"] == "s3":
        missing = [k for k in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY") if not cfg.get(k)]
        result["storage_configured"] = not missing
        if missing:
            result["storage_error"] = f"Missing: {', '.join(missing)}"

    return jsonify(result)


@bp.get("/users")
@require_permission("users.manage")
def users_list():
    s = db_session()
    q = s.query(User)
    needle = (request.args.get("q") or "").strip().lower()
    if needle:
        like = f"%{needle}%"
        q = q.filter((func.lower(User.email).like(like)) | (func.lower(User.name).like(like)))
    users = q.order_by(User.created_at.desc(), User.id.desc()).all()

    counts = dict(s.query(Wedding.user_id, func.count(Wedding.id)).group_by(Wedding.user_id).all())
    out = []
    for u in users:
        data = serialize_user(u)
        data["wedding_count"] = counts.get(u.id, 0)
        data["payment_method"] = u.payment_method
        data["payment_order_id"] = u.payment_order_id
        data["payment_date"] = isoformat(u.payment_date)
        out.append(data)
    return jsonify(out)


@bp.post("/users/<int:user_id>/subscription")
@require_permission("users.manage")
def user_subscription(user_id: int):
    s = db_session()
    target = _get_user_or_404(user_id)
    payload = json_payload()
    if "has_paid_subscription" not in payload:
        return validation_error(["has_paid_subscription is required."])

    grant = parse_bool(payload.get("has_paid_subscription"))
    before = target.has_paid_subscription
    target.has_paid_subscription = grant
    if grant:
        target.payment_method = clean_str(payload.get("payment_method")) or target.payment_method or "manual"
        target.payment_order_id = clean_str(payload.get("payment_order_id")) or target.payment_order_id
        target.payment_date = target.payment_date if before else datetime.utcnow()
    record_event(
        s,
        actor=g.current_user,
        action="user.subscription_grant" if grant else "user.subscription_revoke",
        entity_type="User",
        entity_id=str(target.id),
        reason=clean_str(payload.get("reason")),
        metadata={
            "before": before,
            "after": grant,
            "payment_method": target.payment_method,
            "payment_order_id": target.payment_order_id,
        },
    )
    s.commit()
    return jsonify(serialize_user(target))


@bp.post("/users/<int:user_id>/active")
@require_permission("users.manage")
def user_active(user_id: int):
    s = db_session()
    target = _get_user_or_404(user_id)
    payload = json_payload()
    if "is_active" not in payload:
        return validation_error(["is_active is required."])

    active = parse_bool(payload.get("is_active"))
    if not active and target.id == g.current_user.id:
        abort(409, description="You cannot deactivate your own account.")
    before = target.is_active
    target.is_active = active
    record_event(
        s,
        actor=g.current_user,
        action="user.activate" if active else "user.deactivate",
        entity_type="User",
        entity_id=str(target.id),
        reason=clean_str(payload.get("reason")),
        metadata={"before": before, "after": active},
    )
    s.commit()
    return jsonify(serialize_user(target))


@bp.get("/audit")
@require_permission("audit.view")
def audit_list():
    """
    Latest audit events with simple filters:
    - action (contains)
    - entity_type / entity_id (exact)
    - date range (YYYY-MM-DD)
    - limit (default 200, max 1000)
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    entity_type = (request.args.get("entity_type") or "").strip()
    entity_id = (request.args.get("entity_id") or "").strip()
    date_from = _parse_date(request.args.get("date_from") or "")
    date_to = _parse_date(request.args.get("date_to") or "")
    try:
        limit = parse_int(request.args.get("limit"), _AUDIT_DEFAULT_LIMIT) or _AUDIT_DEFAULT_LIMIT
    except ValueError:
        return validation_error(["limit must be a whole number."])
    limit = max(1, min(limit, _AUDIT_MAX_LIMIT))

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.like(f"%{action}%"))
    if entity_type:
        q = q.filter(AuditEvent.entity_type == entity_type)
    if entity_id:
        q = q.filter(AuditEvent.entity_id == entity_id)
    if date_from:
        q = q.filter(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        # inclusive end-date (treat as whole day)
        q = q.filter(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    events = q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(limit).all()
    return jsonify(
        [
            {
                "id": ev.id,
                "created_at": isoformat(ev.created_at),
                "request_id": ev.request_id,
                "actor_user_id": ev.actor_user_id,
                "actor_user_email": ev.actor_user_email,
                "action": ev.action,
                "entity_type": ev.entity_type,
                "entity_id": ev.entity_id,
                "reason": ev.reason,
                "metadata_json": ev.metadata_json,
                "client_ip": ev.client_ip,
            }
            for ev in events
        ]
    )
