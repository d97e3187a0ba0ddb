from flask import current_app, jsonify, redirect, url_for
from flask_login import current_user

from feedback_tracker.extensions import limiter
from feedback_tracker.services import feedback_store
from feedback_tracker.services.policy import require_action, FEEDBACK_LIST_OWN
from . import bp


@bp.get("/")
def home():
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))
    return jsonify(
        site=current_app.config.get("SITE_NAME"),
        links={"login": url_for("auth.login_get"), "register": url_for("auth.register_get")},
    )


@bp.get("/dashboard")
@require_action(FEEDBACK_LIST_OWN)
def dashboard():
    """Caller's most recent feedback."""
    limit = current_app.config.get("DASHBOARD_RECENT_LIMIT", 5)
    items = feedback_store.recent_for_author(current_user.id, limit=limit)
    return jsonify(user=current_user.to_dict(), feedback=[fb.to_dict() for fb in items])


@bp.get("/healthz")
@limiter.exempt
def healthz():
    return {"status": "ok"}, 200
