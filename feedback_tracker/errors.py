"""
Error taxonomy for the feedback tracker.

Services raise these; the handlers registered by ``register_error_handlers``
turn them into HTTP responses. Unauthenticated and Forbidden stay distinct:
the first sends the caller to the login page, the second is a 403.
"""
from __future__ import annotations

from flask import jsonify, redirect, request, url_for
from sqlalchemy.exc import SQLAlchemyError


class FeedbackTrackerError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationFailed(FeedbackTrackerError):
    """Invalid input."""
    status_code = 400
    code = "validation_failed"

    def __init__(self, errors: dict[str, str], message: str | None = None):
        self.errors = dict(errors)
        super().__init__(message or next(iter(self.errors.values()), None))

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "errors": self.errors}


class NotFound(FeedbackTrackerError):
    """Not found."""
    status_code = 404
    code = "not_found"


class Unauthenticated(FeedbackTrackerError):
    """Authentication required."""
    status_code = 401
    code = "unauthenticated"


class Forbidden(FeedbackTrackerError):
    """Not authorized."""
    status_code = 403
    code = "forbidden"


class Conflict(FeedbackTrackerError):
    """Conflict."""
    status_code = 409
    code = "conflict"

    def __init__(self, message: str | None = None, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.field:
            body["errors"] = {self.field: self.message}
        return body


class StoreUnavailable(FeedbackTrackerError):
    """The data store is unavailable."""
    status_code = 500
    code = "server_error"


def _safe_next_path() -> str:
    nxt = request.full_path if request.query_string else request.path
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return "/"


def register_error_handlers(app):
    @app.errorhandler(Unauthenticated)
    def _unauthenticated(e):
        wants_json = (
            "application/json" in (request.headers.get("Accept") or "").lower()
            or request.is_json
        )
        if wants_json:
            return jsonify(e.to_dict()), 401
        return redirect(url_for("auth.login_get", next=_safe_next_path()))

    @app.errorhandler(StoreUnavailable)
    def _store_unavailable(e):
        app.logger.error("store_unavailable", extra={"event": "store_unavailable", "path": request.path})
        body = {"error": e.code, "message": "Something went wrong!"}
        if app.debug and e.__cause__ is not None:
            body["detail"] = str(e.__cause__)
        return jsonify(body), 500

    @app.errorhandler(FeedbackTrackerError)
    def _domain_error(e):
        if e.status_code >= 500:
            app.logger.exception("Unhandled %s", type(e).__name__)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def _db_error(e):
        from .extensions import db
        db.session.rollback()
        app.logger.exception("Database error (path=%s)", request.path)
        body = {"error": StoreUnavailable.code, "message": "Something went wrong!"}
        if app.debug:
            body["detail"] = str(e)
        return jsonify(body), 500

    @app.errorhandler(404)
    def _not_found(e):
        return jsonify({"error": "not_found", "message": "Not Found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return jsonify({"error": "method_not_allowed", "message": "Method Not Allowed"}), 405

    @app.errorhandler(500)
    def _server_error(e):
        return jsonify({"error": "server_error", "message": "Something went wrong!"}), 500

    # CSRF error handler (clean 400 instead of generic 500)
    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def _csrf_error(e):
        return jsonify({"error": "csrf_failed", "message": f"CSRF validation failed: {e.description}"}), 400

    # 429 Too Many Requests with Retry-After
    @app.errorhandler(429)
    def _too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        payload = {"error": "rate_limited", "code": 429}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
            payload["retry_after"] = int(retry_after)
        return (payload, 429, headers)
