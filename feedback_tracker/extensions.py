from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from flask_login import LoginManager, current_user
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()

login_manager = LoginManager()
login_manager.login_view = "auth.login_get"
# Unauthenticated requests are answered by errors.register_error_handlers, not flashed messages
login_manager.login_message = None
login_manager.session_protection = "basic"


def _rate_limit_key() -> str:
    """Signed-in callers are limited per account (all their sessions share a bucket), anonymous ones per IP."""
    user_id = getattr(current_user, "id", None) if getattr(current_user, "is_authenticated", False) else None
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address()}"


# Storage URI comes from create_app() (memory:// locally, REDIS_URL in staging/prod)
limiter = Limiter(key_func=_rate_limit_key)
