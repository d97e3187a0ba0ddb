"""
Identity & credential store.

Users are looked up by exact email (case-sensitive, as stored). Passwords are
only ever kept as Werkzeug salted hashes; verification goes through
``check_password_hash`` which compares in constant time.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from feedback_tracker.errors import Conflict, NotFound, ValidationFailed
from feedback_tracker.extensions import db
from feedback_tracker.models.user import User, ROLE_USER, ROLE_CHOICES
from feedback_tracker.services.persistence import commit
from feedback_tracker.utils.validators import as_text, clean_str, is_valid_email

EMAIL_TAKEN = "Email already registered"


def find_by_email(email: str | None) -> User | None:
    email = as_text(email).strip()
    if not email:
        return None
    return db.session.execute(db.select(User).where(User.email == email)).scalar_one_or_none()


def find_by_id(user_id) -> User | None:
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


def get_by_id(user_id) -> User:
    user = find_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def validate_registration(name: str | None, email: str | None, password: str | None) -> dict[str, str]:
    errors: dict[str, str] = {}
    min_len = current_app.config.get("PASSWORD_MIN_LENGTH", 6)
    if not clean_str(name, max_len=120):
        errors["name"] = "Name is required."
    email = as_text(email).strip()
    if not email:
        errors["email"] = "Email is required."
    elif not is_valid_email(email):
        errors["email"] = "Please include a valid email."
    if not isinstance(password, str) or len(password) < min_len:
        errors["password"] = f"Please enter a password with {min_len} or more characters."
    return errors


def create_user(name: str, email: str, password: str, role: str = ROLE_USER) -> User:
    errors = validate_registration(name, email, password)
    if role not in ROLE_CHOICES:
        errors["role"] = f"Role must be one of: {', '.join(ROLE_CHOICES)}."
    if errors:
        raise ValidationFailed(errors)

    email = email.strip()
    if find_by_email(email) is not None:
        raise Conflict(EMAIL_TAKEN, field="email")

    user = User(name=clean_str(name, max_len=120), email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    try:
        commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        raise Conflict(EMAIL_TAKEN, field="email")

    current_app.logger.info(
        "user_registered",
        extra={"event": "user_registered", "user_id": user.id, "role": user.role},
    )
    return user


def verify_password(user: User | None, password: str | None) -> bool:
    if user is None or not isinstance(password, str) or not password:
        return False
    return user.check_password(password)


def authenticate(email: str | None, password: str | None) -> User | None:
    user = find_by_email(email)
    if not verify_password(user, password):
        return None
    return user


def list_users(exclude_role: str | None = None) -> list[User]:
    stmt = db.select(User)
    if exclude_role:
        stmt = stmt.where(User.role != exclude_role)
    stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
    return list(db.session.execute(stmt).scalars())


def count_users(exclude_role: str | None = None) -> int:
    stmt = db.select(db.func.count(User.id))
    if exclude_role:
        stmt = stmt.where(User.role != exclude_role)
    return db.session.execute(stmt).scalar_one()


def set_role(user: User, role: str) -> User:
    """Operator-only role change. Live sessions keep their old snapshot until re-login."""
    if role not in ROLE_CHOICES:
        raise ValidationFailed({"role": f"Role must be one of: {', '.join(ROLE_CHOICES)}."})
    user.role = role
    commit()
    return user
