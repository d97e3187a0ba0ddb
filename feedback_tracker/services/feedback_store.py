"""Feedback records and their embedded comment threads."""
from __future__ import annotations

from flask import current_app

from feedback_tracker.errors import Forbidden, NotFound, ValidationFailed
from feedback_tracker.extensions import db
from feedback_tracker.models.feedback import (
    Feedback,
    FeedbackAttachment,
    FeedbackComment,
    CATEGORIES,
    PRIORITIES,
    PRIORITY_DEFAULT,
    STATUSES,
    STATUS_PENDING,
)
from feedback_tracker.models.user import User, ROLE_ADMIN
from feedback_tracker.services.persistence import commit
from feedback_tracker.utils.validators import as_text, clean_str


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

# Distinguishes "field not supplied" from an explicit None (clear assignment)
UNSET = _Unset()


def validate_feedback(title, category, description, priority) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not clean_str(title, max_len=200):
        errors["title"] = "Title is required."
    if not category:
        errors["category"] = "Category is required."
    elif category not in CATEGORIES:
        errors["category"] = f"Category must be one of: {', '.join(CATEGORIES)}."
    if not as_text(description).strip():
        errors["description"] = "Description is required."
    if priority and priority not in PRIORITIES:
        errors["priority"] = f"Priority must be one of: {', '.join(PRIORITIES)}."
    return errors


def create_feedback(author_id: int, title, category, description, priority=None, attachments=None) -> Feedback:
    """
    Create a record owned by ``author_id``.
    Status always starts as pending and the record starts unassigned; callers
    cannot seed either.
    """
    errors = validate_feedback(title, category, description, priority)
    attachment_rows = []
    for i, a in enumerate(attachments or []):
        a = a if isinstance(a, dict) else {}
        filename = clean_str(a.get("filename"))
        path = clean_str(a.get("path"), max_len=1024)
        if not filename or not path:
            errors[f"attachments.{i}"] = "Attachment needs a filename and a path."
            continue
        attachment_rows.append(FeedbackAttachment(filename=filename, path=path))
    if errors:
        raise ValidationFailed(errors)

    fb = Feedback(
        author_id=author_id,
        title=clean_str(title, max_len=200),
        category=category,
        description=description.strip(),
        priority=priority or PRIORITY_DEFAULT,
        status=STATUS_PENDING,
        assigned_to_id=None,
    )
    fb.attachments.extend(attachment_rows)
    db.session.add(fb)
    commit()

    current_app.logger.info(
        "feedback_created",
        extra={"event": "feedback_created", "feedback_id": fb.id, "user_id": author_id, "category": fb.category},
    )
    return fb


def get_feedback(feedback_id) -> Feedback | None:
    try:
        return db.session.get(Feedback, int(feedback_id))
    except (TypeError, ValueError):
        return None


def get_feedback_or_404(feedback_id) -> Feedback:
    fb = get_feedback(feedback_id)
    if fb is None:
        raise NotFound("Feedback not found")
    return fb


def update_status_and_assignment(feedback_id, requester_role: str, status=UNSET, assigned_to=UNSET) -> Feedback:
    """
    Admin triage. For any other role the requested changes are ignored (no
    error) and only ``updated_at`` moves; the HTTP layer rejects non-admins
    before getting here.
    """
    fb = get_feedback_or_404(feedback_id)

    if requester_role == ROLE_ADMIN:
        errors: dict[str, str] = {}
        assignee_id = UNSET
        if status is not UNSET and status not in STATUSES:
            errors["status"] = f"Status must be one of: {', '.join(STATUSES)}."
        if assigned_to is not UNSET:
            if assigned_to in (None, ""):
                assignee_id = None
            else:
                try:
                    assignee = db.session.get(User, int(assigned_to))
                except (TypeError, ValueError):
                    assignee = None
                if assignee is None:
                    errors["assigned_to"] = "Assignee not found."
                else:
                    assignee_id = assignee.id
        if errors:
            raise ValidationFailed(errors)

        if status is not UNSET:
            fb.status = status
        if assignee_id is not UNSET:
            fb.assigned_to_id = assignee_id

    fb.touch()
    commit()

    current_app.logger.info(
        "feedback_status_updated",
        extra={
            "event": "feedback_status_updated",
            "feedback_id": fb.id,
            "status": fb.status,
            "assigned_to": fb.assigned_to_id,
            "applied": requester_role == ROLE_ADMIN,
        },
    )
    return fb


def append_comment(feedback_id, author_id: int, content) -> FeedbackComment:
    fb = get_feedback_or_404(feedback_id)
    content = as_text(content).strip()
    if not content:
        raise ValidationFailed({"content": "Comment cannot be empty."})

    # Inserted as its own row; concurrent appends never overwrite each other
    comment = FeedbackComment(author_id=author_id, content=content)
    fb.comments.append(comment)
    fb.touch()
    commit()

    current_app.logger.info(
        "feedback_commented",
        extra={"event": "feedback_commented", "feedback_id": fb.id, "user_id": author_id},
    )
    return comment


def delete_feedback(feedback_id, requester_id: int, requester_role: str) -> None:
    fb = get_feedback_or_404(feedback_id)
    if requester_role != ROLE_ADMIN and fb.author_id != requester_id:
        raise Forbidden("Not authorized")

    db.session.delete(fb)
    commit()

    current_app.logger.info(
        "feedback_deleted",
        extra={"event": "feedback_deleted", "feedback_id": feedback_id, "user_id": requester_id},
    )


def recent_for_author(author_id: int, limit: int = 5) -> list[Feedback]:
    stmt = (
        db.select(Feedback)
        .where(Feedback.author_id == author_id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .limit(limit)
    )
    return list(db.session.execute(stmt).unique().scalars())


def recent(limit: int = 10) -> list[Feedback]:
    stmt = db.select(Feedback).order_by(Feedback.created_at.desc(), Feedback.id.desc()).limit(limit)
    return list(db.session.execute(stmt).unique().scalars())


def count_feedback(status: str | None = None) -> int:
    stmt = db.select(db.func.count(Feedback.id))
    if status:
        stmt = stmt.where(Feedback.status == status)
    return db.session.execute(stmt).scalar_one()
