from flask import Blueprint

from feedback_tracker.services.policy import authorize, current_identity, ADMIN_ACCESS

bp = Blueprint("admin", __name__)


@bp.before_request
def _require_admin():
    # Anonymous -> login redirect; signed in but not admin -> 403
    authorize(current_identity(), ADMIN_ACCESS)


# Import submodules so their routes register on the same bp
from . import routes  # noqa: E402,F401
