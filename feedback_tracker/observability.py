import logging
import os
from logging.config import dictConfig

from flask import has_request_context, request
from flask_login import current_user
from pythonjsonlogger import jsonlogger

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class RequestContextFilter(logging.Filter):
    """Stamp request path, method and the signed-in user id onto every record logged inside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.path = request.path
            record.method = request.method
            if not hasattr(record, "user_id") and getattr(current_user, "is_authenticated", False):
                record.user_id = current_user.id
        return True


def init_logging(app):
    """Structured JSON logs in staging/prod; dev/tests keep Flask's console handler."""
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    if app_env in ("staging", "production"):
        dictConfig({
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request": {"()": RequestContextFilter}},
            "formatters": {"json": {"()": jsonlogger.JsonFormatter, "fmt": LOG_FORMAT}},
            "handlers": {
                "wsgi": {"class": "logging.StreamHandler", "formatter": "json", "filters": ["request"]},
            },
            "root": {"level": app.config.get("LOG_LEVEL", "INFO"), "handlers": ["wsgi"]},
        })
    else:
        app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))


def _scrub_event(event, hint):
    # Credentials never leave the process, even inside captured request bodies
    data = (event.get("request") or {}).get("data")
    if isinstance(data, dict):
        for key in ("password", "confirm_password", "admin_code"):
            if key in data:
                data[key] = "[Filtered]"
    return event


def init_sentry(app):
    """Wire Sentry when SENTRY_DSN is set; no-op otherwise."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES", "0.0")),
        environment=os.getenv("APP_ENV", "development"),
        send_default_pii=False,
        before_send=_scrub_event,
    )
    app.logger.info("sentry_enabled", extra={"event": "sentry_enabled"})
