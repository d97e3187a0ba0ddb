"""Read-only aggregations for the admin analytics view."""
from __future__ import annotations

from sqlalchemy import func

from feedback_tracker.extensions import db
from feedback_tracker.models.feedback import Feedback, FeedbackComment
from feedback_tracker.models.user import User

TREND_BUCKETS = 30
TOP_N = 10


def daily_counts(buckets: int = TREND_BUCKETS) -> list[dict]:
    """Feedback created per day for the latest ``buckets`` days that have any, oldest first."""
    day = func.date(Feedback.created_at)
    rows = db.session.execute(
        db.select(day.label("day"), func.count(Feedback.id).label("total"))
        .group_by(day)
        .order_by(day.desc())
        .limit(buckets)
    ).all()
    return [{"date": str(r.day), "count": r.total} for r in reversed(rows)]


def _distribution(column) -> dict[str, int]:
    rows = db.session.execute(
        db.select(column, func.count(Feedback.id)).group_by(column).order_by(column)
    ).all()
    return {key: count for key, count in rows}


def category_distribution() -> dict[str, int]:
    return _distribution(Feedback.category)


def status_distribution() -> dict[str, int]:
    return _distribution(Feedback.status)


def _top_users(model, user_column, limit: int) -> list[dict]:
    n = func.count(model.id).label("total")
    rows = db.session.execute(
        db.select(User.id, User.name, n)
        .select_from(model)
        .join(User, User.id == user_column)
        .group_by(User.id, User.name)
        .order_by(n.desc(), User.id.asc())
        .limit(limit)
    ).all()
    return [{"user_id": r.id, "name": r.name, "count": r.total} for r in rows]


def top_authors(limit: int = TOP_N) -> list[dict]:
    return _top_users(Feedback, Feedback.author_id, limit)


def top_commenters(limit: int = TOP_N) -> list[dict]:
    return _top_users(FeedbackComment, FeedbackComment.author_id, limit)


def summary() -> dict:
    return {
        "daily_counts": daily_counts(),
        "category_distribution": category_distribution(),
        "status_distribution": status_distribution(),
        "top_authors": top_authors(),
        "top_commenters": top_commenters(),
    }
