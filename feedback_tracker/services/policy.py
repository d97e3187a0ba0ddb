"""
Authorization guard.

Every gated route goes through the RULES table below, either via the
``require_action``/``admin_required`` decorators or by calling ``authorize``
once the target record is loaded. Predicates are pure: they only look at the
identity snapshot and the record passed in.
"""
from __future__ import annotations

import hmac
from functools import wraps
from typing import Callable

from flask_login import current_user

from feedback_tracker.errors import Forbidden, Unauthenticated
from feedback_tracker.models.user import ROLE_ADMIN

FEEDBACK_LIST = "feedback.list"
FEEDBACK_LIST_OWN = "feedback.list_own"
FEEDBACK_CREATE = "feedback.create"
FEEDBACK_VIEW = "feedback.view"
FEEDBACK_COMMENT = "feedback.comment"
FEEDBACK_UPDATE_STATUS = "feedback.update_status"
FEEDBACK_DELETE = "feedback.delete"
ADMIN_ACCESS = "admin.access"
ACCOUNT_VIEW = "account.view"


def is_authenticated(identity) -> bool:
    return bool(identity is not None and getattr(identity, "is_authenticated", False))


def is_admin(identity) -> bool:
    return is_authenticated(identity) and getattr(identity, "role", None) == ROLE_ADMIN


def is_author(identity, feedback) -> bool:
    return is_authenticated(identity) and feedback is not None and feedback.author_id == identity.id


def can_delete_feedback(identity, feedback) -> bool:
    return is_admin(identity) or is_author(identity, feedback)


def admin_code_matches(supplied: str | None, configured: str | None) -> bool:
    # An unset code disables admin self-registration entirely
    if not (isinstance(supplied, str) and isinstance(configured, str) and supplied and configured):
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), configured.encode("utf-8"))


# action -> predicate(identity, feedback)
RULES: dict[str, Callable] = {
    FEEDBACK_LIST: lambda identity, feedback=None: is_authenticated(identity),
    FEEDBACK_LIST_OWN: lambda identity, feedback=None: is_authenticated(identity),
    FEEDBACK_CREATE: lambda identity, feedback=None: is_authenticated(identity),
    FEEDBACK_VIEW: lambda identity, feedback=None: is_authenticated(identity),
    FEEDBACK_COMMENT: lambda identity, feedback=None: is_authenticated(identity),
    FEEDBACK_UPDATE_STATUS: lambda identity, feedback=None: is_admin(identity),
    FEEDBACK_DELETE: can_delete_feedback,
    ADMIN_ACCESS: lambda identity, feedback=None: is_admin(identity),
    ACCOUNT_VIEW: lambda identity, feedback=None: is_authenticated(identity),
}


def is_allowed(identity, action: str, feedback=None) -> bool:
    return RULES[action](identity, feedback)


def authorize(identity, action: str, feedback=None) -> None:
    """Raise Unauthenticated (no session) or Forbidden (rule denies)."""
    if action not in RULES:
        raise KeyError(f"Unknown action: {action}")
    if not is_authenticated(identity):
        raise Unauthenticated()
    if not is_allowed(identity, action, feedback):
        raise Forbidden()


def current_identity():
    """The resolved identity for this request, or None when anonymous."""
    return current_user if getattr(current_user, "is_authenticated", False) else None


def require_action(action: str):
    """Route guard for actions whose rule does not depend on a loaded record."""
    def deco(fn):
        @wraps(fn)
        def _wrap(*args, **kwargs):
            authorize(current_identity(), action)
            return fn(*args, **kwargs)
        return _wrap
    return deco


admin_required = require_action(ADMIN_ACCESS)
