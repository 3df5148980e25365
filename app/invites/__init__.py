import logging
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request, session
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect
from werkzeug.exceptions import HTTPException

from app.invites.config import load_config
from app.invites.db import init_db, teardown_db_session
from app.invites.routes import bp as routes_bp
from app.invites.auth import api_bp as auth_api_bp, bp as auth_bp, load_current_user
from app.invites.admin import bp as admin_bp
from app.invites.modules.weddings.api import bp as weddings_bp
from app.invites.modules.weddings.pages import bp as invitation_page_bp
from app.invites.modules.guests.api import bp as guests_bp
from app.invites.modules.guest_book.api import bp as guest_book_bp
from app.invites.modules.media.api import bp as media_bp
from app.invites.modules.planning.api import bp as planning_bp
from app.invites.modules.invitations.api import bp as invitations_bp
from app.invites.modules.invitations.pages import bp as invitations_public_bp
from app.invites.modules.collaborators.api import bp as collaborators_bp

_SKIP_GUARD_PREFIXES = ("/static/", "/health", "/healthz", "/media/")


def _is_api_request() -> bool:
    return request.path.startswith("/api/")


def _error_name(code: int | None) -> str:
    names = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        429: "too_many_requests",
        500: "internal_error",
        502: "bad_gateway",
    }
    return names.get(code or 500, "error")


def _json_error(code: int, message: str | None):
    return jsonify({"error": _error_name(code), "message": message or ""}), code


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=7)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False

    # CSRF protection (minimal)
    from app.invites.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.invites.rbac import user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        return {"has_perm": has_perm, "current_user": getattr(g, "current_user", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return ""
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os

        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage health check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [k for k in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY") if not app.config.get(k)]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
        else:
            try:
                from app.invites.storage import S3Storage, storage_from_config

                storage = storage_from_config(app.config)
                if isinstance(storage, S3Storage):
                    storage._client().head_bucket(Bucket=storage.bucket)
                    app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
            except Exception as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(invitation_page_bp)
    app.register_blueprint(invitations_public_bp)
    app.register_blueprint(auth_api_bp, url_prefix="/api/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(weddings_bp, url_prefix="/api")
    app.register_blueprint(guests_bp, url_prefix="/api")
    app.register_blueprint(guest_book_bp, url_prefix="/api")
    app.register_blueprint(media_bp, url_prefix="/api")
    app.register_blueprint(planning_bp, url_prefix="/api")
    app.register_blueprint(invitations_bp, url_prefix="/api")
    app.register_blueprint(collaborators_bp, url_prefix="/api")

    @app.before_request
    def _load_user_wrapper():
        if request.path.startswith(_SKIP_GUARD_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_SKIP_GUARD_PREFIXES):
            return None
        if getattr(g, "auth_via", None) != "token":
            ensure_csrf_token()
            session.permanent = True
        if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
            return None

        endpoint = request.endpoint or ""
        # Allow safe auth endpoints to pass through (login/logout/token)
        if endpoint.startswith(("auth.", "auth_api.")):
            return None
        # Bearer tokens are not sent automatically by browsers.
        if getattr(g, "auth_via", None) == "token":
            return None
        # Anonymous API callers carry no session authority: public guest
        # actions (RSVP, guest book) go through and protected routes answer 401.
        if _is_api_request() and getattr(g, "current_user", None) is None:
            return None
        if not validate_csrf(request):
            if _is_api_request():
                return _json_error(400, "CSRF token missing or invalid.")
            return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    app.teardown_appcontext(teardown_db_session)

    # Schema health (lean): log missing tables so a forgotten `alembic upgrade head` is obvious.
    def _run_schema_health_check() -> None:
        from app.invites.models import Base

        missing: list[str] = []
        try:
            insp = sa_inspect(app.extensions["sqlalchemy_engine"])
            missing = sorted(t for t in Base.metadata.tables if not insp.has_table(t))
        except Exception as e:
            app.logger.exception("Schema health check failed: %s", e)
        app.config["_schema_health_missing"] = missing
        if missing:
            app.logger.warning("DB schema out of date; run `alembic upgrade head`. Missing tables: %s", ", ".join(missing))

    _run_schema_health_check()

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        if _is_api_request():
            return _json_error(500, "Internal server error.")
        return render_template("errors/500.html", request_id=rid), 500

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if _is_api_request():
            message = e.description if missing is None else f"Missing permission: {missing}"
            return _json_error(403, message)
        return render_template("errors/403.html", missing_permission=missing, message=e.description), 403

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        limit_mb = int(app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        message = f"File too large. Maximum request size is {limit_mb}MB."
        if _is_api_request():
            return _json_error(413, message)
        return render_template("errors/400.html", message=message), 413

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        if _is_api_request():
            return _json_error(e.code or 500, e.description)
        if e.code in (400, 404):
            return render_template(f"errors/{e.code}.html", message=e.description), e.code
        return e

    # Startup logging
    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
