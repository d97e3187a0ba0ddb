from flask import jsonify, redirect, request, url_for
from flask_login import current_user

from feedback_tracker.services import feedback_query, feedback_store
from feedback_tracker.services.feedback_store import UNSET
from feedback_tracker.services.policy import (
    authorize,
    current_identity,
    require_action,
    FEEDBACK_COMMENT,
    FEEDBACK_CREATE,
    FEEDBACK_DELETE,
    FEEDBACK_LIST,
    FEEDBACK_LIST_OWN,
    FEEDBACK_UPDATE_STATUS,
    FEEDBACK_VIEW,
)
from feedback_tracker.utils.helpers import request_data, wants_json
from . import bp


@bp.get("")
@require_action(FEEDBACK_LIST)
def index():
    q = feedback_query.parse_query(request.args)
    page = feedback_query.run_query(q)
    return jsonify(**page.to_dict(), filters=q.filters())


@bp.get("/mine")
@require_action(FEEDBACK_LIST_OWN)
def mine():
    # Author filter comes from the session, never from the query string
    q = feedback_query.parse_query(request.args, author_id=current_user.id)
    page = feedback_query.run_query(q)
    return jsonify(**page.to_dict(), filters=q.filters())


@bp.post("")
@require_action(FEEDBACK_CREATE)
def create():
    data = request_data()
    attachments = data.get("attachments") if request.is_json else None
    # status / assigned_to in the payload are ignored on purpose
    fb = feedback_store.create_feedback(
        author_id=current_user.id,
        title=data.get("title"),
        category=data.get("category"),
        description=data.get("description") or data.get("content"),
        priority=data.get("priority") or None,
        attachments=attachments if isinstance(attachments, list) else None,
    )
    if wants_json():
        return jsonify(feedback=fb.to_dict(detail=True)), 201
    return redirect(url_for("feedback.mine"))


@bp.get("/<int:feedback_id>")
@require_action(FEEDBACK_VIEW)
def detail(feedback_id: int):
    fb = feedback_store.get_feedback_or_404(feedback_id)
    return jsonify(feedback=fb.to_dict(detail=True))


@bp.patch("/<int:feedback_id>/status")
@require_action(FEEDBACK_UPDATE_STATUS)
def update_status(feedback_id: int):
    return update_status_response(feedback_id)


def update_status_response(feedback_id: int):
    """Shared by /feedback/<id>/status and the admin alias."""
    fb = feedback_store.get_feedback_or_404(feedback_id)
    authorize(current_identity(), FEEDBACK_UPDATE_STATUS, fb)

    data = request_data()
    fb = feedback_store.update_status_and_assignment(
        fb.id,
        requester_role=current_user.role,
        status=data["status"] if "status" in data else UNSET,
        assigned_to=data["assigned_to"] if "assigned_to" in data else UNSET,
    )
    return jsonify(message="Status updated successfully", feedback=fb.to_dict())


@bp.post("/<int:feedback_id>/comments")
@require_action(FEEDBACK_COMMENT)
def add_comment(feedback_id: int):
    data = request_data()
    comment = feedback_store.append_comment(feedback_id, current_user.id, data.get("content"))
    if wants_json():
        return jsonify(comment=comment.to_dict()), 201
    return redirect(url_for("feedback.detail", feedback_id=feedback_id))


@bp.delete("/<int:feedback_id>")
def delete(feedback_id: int):
    return delete_response(feedback_id)


def delete_response(feedback_id: int):
    identity = current_identity()
    # Anonymous callers are sent to login before the record is even looked up
    authorize(identity, FEEDBACK_VIEW)
    fb = feedback_store.get_feedback_or_404(feedback_id)
    authorize(identity, FEEDBACK_DELETE, fb)
    feedback_store.delete_feedback(fb.id, requester_id=identity.id, requester_role=identity.role)
    return jsonify(message="Feedback deleted successfully")
