from flask import current_app, jsonify, redirect, request, session, url_for
from flask_login import current_user, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from feedback_tracker.errors import ValidationFailed
from feedback_tracker.extensions import csrf, limiter
from feedback_tracker.models.user import ROLE_ADMIN, ROLE_USER
from feedback_tracker.services import identity as identity_store
from feedback_tracker.services.policy import admin_code_matches, require_action, ACCOUNT_VIEW
from feedback_tracker.services.sessions import get_session_store
from feedback_tracker.utils.helpers import request_data, safe_next_path, wants_json
from feedback_tracker.utils.validators import as_text
from . import bp

INVALID_CREDENTIALS = "Invalid email or password"


def _login_email_scope():
    try:
        data = request_data()
    except ValidationFailed:
        # Malformed body; the view itself answers with a 400
        data = {}
    email = as_text(data.get("email")).strip()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"


def _start_session(user):
    """Bind a fresh session token to the user and hand it to Flask-Login."""
    # New login, new cookie contents (no fixation across accounts)
    session.clear()
    session.permanent = True
    ident = get_session_store().start(user)
    login_user(ident)
    return ident


def _landing_for(user) -> str:
    return url_for("admin.dashboard") if user.role == ROLE_ADMIN else url_for("main.dashboard")


def _signed_in(ident, user, status: int = 200):
    if wants_json():
        return jsonify(ok=True, user=ident.to_dict()), status
    next_raw = request.args.get("next")
    if next_raw:
        return redirect(safe_next_path(next_raw))
    return redirect(_landing_for(user))


def _form(name: str, fields: list[str]):
    if current_user.is_authenticated:
        return redirect(safe_next_path(request.args.get("next")))
    return jsonify(form=name, fields=fields, csrf_token=generate_csrf())


@bp.get("/register")
def register_get():
    return _form("register", ["name", "email", "password"])


@bp.post("/register")
@limiter.limit("5 per minute; 20 per hour")
def register_post():
    data = request_data()
    user = identity_store.create_user(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=ROLE_USER,
    )
    # Auto-login on registration
    ident = _start_session(user)
    return _signed_in(ident, user, status=201)


@bp.get("/register/admin")
def admin_register_get():
    return _form("admin_register", ["name", "email", "password", "confirm_password", "admin_code"])


@bp.post("/register/admin")
@limiter.limit("5 per minute; 20 per hour")
def admin_register_post():
    data = request_data()
    password = as_text(data.get("password"))
    confirm = as_text(data.get("confirm_password"))

    errors = identity_store.validate_registration(data.get("name"), data.get("email"), password)
    if password != confirm:
        errors["confirm_password"] = "Passwords do not match"
    if not admin_code_matches(data.get("admin_code"), current_app.config.get("ADMIN_REGISTRATION_CODE")):
        current_app.logger.warning(
            "admin_registration_rejected",
            extra={"event": "admin_registration_rejected", "remote_addr": request.remote_addr},
        )
        errors["admin_code"] = "Invalid admin registration code"
    if errors:
        raise ValidationFailed(errors)

    user = identity_store.create_user(
        name=data.get("name"),
        email=data.get("email"),
        password=password,
        role=ROLE_ADMIN,
    )
    ident = _start_session(user)
    return _signed_in(ident, user, status=201)


@bp.get("/login")
def login_get():
    return _form("login", ["email", "password"])


@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP (anon → IP via _rate_limit_key)
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login_post():
    data = request_data()
    email = as_text(data.get("email")).strip()
    password = as_text(data.get("password"))
    if not email or not password:
        raise ValidationFailed({"__all__": "Email and password are required"})

    user = identity_store.authenticate(email, password)
    if user is None:
        current_app.logger.info("login_failed", extra={"event": "login_failed", "remote_addr": request.remote_addr})
        raise ValidationFailed({"__all__": INVALID_CREDENTIALS})

    ident = _start_session(user)
    current_app.logger.info("login_succeeded", extra={"event": "login_succeeded", "user_id": user.id})
    return _signed_in(ident, user)


@bp.get("/login/admin")
def admin_login_get():
    return _form("admin_login", ["email", "password"])


@bp.post("/login/admin")
@limiter.limit("10 per minute; 100 per hour")
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)
def admin_login_post():
    data = request_data()
    user = identity_store.authenticate(as_text(data.get("email")).strip(), as_text(data.get("password")))
    # Same message whether the account is missing, wrong password, or not an admin
    if user is None or user.role != ROLE_ADMIN:
        current_app.logger.info("admin_login_failed", extra={"event": "admin_login_failed", "remote_addr": request.remote_addr})
        raise ValidationFailed({"__all__": "Invalid admin credentials"})

    ident = _start_session(user)
    current_app.logger.info("login_succeeded", extra={"event": "login_succeeded", "user_id": user.id, "admin": True})
    return _signed_in(ident, user)


def _logout():
    if current_user.is_authenticated:
        get_session_store().destroy(current_user.get_id())
        logout_user()
    session.clear()
    if wants_json():
        return jsonify(ok=True)
    return redirect(url_for("main.home"))


@bp.get("/logout")
def logout():
    return _logout()


@bp.post("/logout")
def logout_post():
    return _logout()


@bp.get("/profile")
@require_action(ACCOUNT_VIEW)
def profile():
    user = identity_store.get_by_id(current_user.id)
    return jsonify(user=user.to_dict(), session=current_user.to_dict())


@csrf.exempt
@bp.get("/csrf-token")
def csrf_token():
    token = generate_csrf()
    resp = jsonify({"csrf_token": token})
    # keep tokens fresh; avoid caches holding stale tokens
    resp.headers["Cache-Control"] = "no-store"
    return resp
