import mimetypes

from flask import Blueprint, abort, current_app, g, redirect, render_template, send_file

from app.invites.storage import LocalStorage, StorageError, storage_from_config

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return render_template("public/index.html", user=getattr(g, "current_user", None))


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for load balancer probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/media/<path:key>")
def media(key: str):
    """Serve uploaded media from the local store; S3 objects are redirected to their public URL."""
    storage = storage_from_config(current_app.config)
    try:
        if not isinstance(storage, LocalStorage):
            return redirect(storage.public_url(key))
        fh = storage.open(key)
    except StorageError:
        abort(404)
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return send_file(fh, mimetype=mimetype, max_age=86400)
