"""
Session binding: opaque token -> identity snapshot, with an absolute expiry.

The snapshot is copied from the user row when the session starts and is never
refreshed, so a role change only takes effect after the user logs in again.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from flask import current_app
from flask_login import UserMixin
from sqlalchemy import delete

from feedback_tracker.extensions import db, login_manager
from feedback_tracker.models.session import UserSession
from feedback_tracker.models.user import User, ROLE_ADMIN
from feedback_tracker.services.persistence import commit


def _utcnow():
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Identity(UserMixin):
    """Read-only identity snapshot bound to a session token."""
    token: str
    id: int
    name: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def get_id(self) -> str:
        # Flask-Login keeps this in the signed cookie; it's the session token, not the user id
        return self.token

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}


class SessionStore:
    def __init__(self, ttl: timedelta = timedelta(hours=24)):
        self.ttl = ttl

    def start(self, user: User) -> Identity:
        token = secrets.token_urlsafe(32)
        row = UserSession(
            token=token,
            user_id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            expires_at=_utcnow() + self.ttl,
        )
        db.session.add(row)
        commit()
        return self._identity(row)

    def resolve(self, token: str | None) -> Identity | None:
        if not token:
            return None
        row = db.session.get(UserSession, token)
        if row is None:
            return None
        if _as_utc(row.expires_at) <= _utcnow():
            # Lazy eviction
            db.session.delete(row)
            commit()
            return None
        return self._identity(row)

    def destroy(self, token: str | None) -> None:
        if not token:
            return
        db.session.execute(delete(UserSession).where(UserSession.token == token))
        commit()

    def purge_expired(self) -> int:
        result = db.session.execute(delete(UserSession).where(UserSession.expires_at <= _utcnow()))
        commit()
        return result.rowcount or 0

    @staticmethod
    def _identity(row: UserSession) -> Identity:
        return Identity(token=row.token, id=row.user_id, name=row.name, email=row.email, role=row.role)


def init_session_store(app) -> SessionStore:
    store = SessionStore(ttl=timedelta(hours=app.config.get("SESSION_TTL_HOURS", 24)))
    app.extensions["session_store"] = store
    # Cookie lifetime follows the server-side TTL (sessions are marked permanent at login)
    app.config["PERMANENT_SESSION_LIFETIME"] = store.ttl
    return store


def get_session_store() -> SessionStore:
    return current_app.extensions["session_store"]


@login_manager.user_loader
def load_identity(token: str):
    # Unknown or expired tokens come back as None -> anonymous request
    return get_session_store().resolve(token)
