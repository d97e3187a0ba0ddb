from flask import current_app, jsonify, request

from feedback_tracker.blueprints.feedback.routes import delete_response, update_status_response
from feedback_tracker.models.feedback import STATUS_PENDING, STATUS_RESOLVED
from feedback_tracker.models.user import ROLE_ADMIN
from feedback_tracker.services import analytics, feedback_query, feedback_store
from feedback_tracker.services import identity as identity_store
from . import bp


@bp.get("/dashboard")
def dashboard():
    stats = {
        "total_feedback": feedback_store.count_feedback(),
        "pending_feedback": feedback_store.count_feedback(STATUS_PENDING),
        "resolved_feedback": feedback_store.count_feedback(STATUS_RESOLVED),
        "total_users": identity_store.count_users(exclude_role=ROLE_ADMIN),
    }
    recent = feedback_store.recent(limit=current_app.config.get("FEEDBACK_PAGE_SIZE", 10))
    users = identity_store.list_users(exclude_role=ROLE_ADMIN)
    return jsonify(
        stats=stats,
        feedback=[fb.to_dict() for fb in recent],
        users=[u.to_dict() for u in users],
    )


@bp.get("/users")
def users():
    return jsonify(users=[u.to_dict() for u in identity_store.list_users()])


@bp.get("/feedback")
def feedback_index():
    q = feedback_query.parse_query(request.args)
    page = feedback_query.run_query(q)
    return jsonify(**page.to_dict(), filters=q.filters())


@bp.patch("/feedback/<int:feedback_id>/status")
def feedback_update_status(feedback_id: int):
    return update_status_response(feedback_id)


@bp.delete("/feedback/<int:feedback_id>")
def feedback_delete(feedback_id: int):
    return delete_response(feedback_id)


@bp.get("/analytics")
def analytics_index():
    return jsonify(analytics.summary())
