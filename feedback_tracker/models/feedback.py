from datetime import datetime, timezone
from sqlalchemy import CheckConstraint
from feedback_tracker.extensions import db

CATEGORIES = ("bug", "feature", "improvement", "other")

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in-progress"
STATUS_RESOLVED = "resolved"
STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_RESOLVED)

PRIORITY_DEFAULT = "medium"
PRIORITIES = ("low", "medium", "high")


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Feedback(db.Model):
    __tablename__ = "feedback"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    priority = db.Column(db.String(10), nullable=False, default=PRIORITY_DEFAULT)

    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    author = db.relationship("User", foreign_keys=[author_id], lazy="joined")
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id], lazy="joined")

    # Owned, append-only sequences; removed together with the record
    comments = db.relationship(
        "FeedbackComment",
        back_populates="feedback",
        cascade="all, delete-orphan",
        order_by=lambda: [FeedbackComment.created_at, FeedbackComment.id],
    )
    attachments = db.relationship(
        "FeedbackAttachment",
        back_populates="feedback",
        cascade="all, delete-orphan",
        order_by="FeedbackAttachment.id",
    )

    __table_args__ = (
        CheckConstraint("category IN ('bug','feature','improvement','other')", name="ck_feedback_category_valid"),
        CheckConstraint("status IN ('pending','in-progress','resolved')", name="ck_feedback_status_valid"),
        CheckConstraint("priority IN ('low','medium','high')", name="ck_feedback_priority_valid"),
        db.Index("ix_feedback_status_created_at", "status", "created_at"),
    )

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def to_dict(self, detail: bool = False) -> dict:
        d = {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "author": {"id": self.author_id, "name": self.author.name if self.author else None},
            "assigned_to": (
                {"id": self.assigned_to_id, "name": self.assigned_to.name if self.assigned_to else None}
                if self.assigned_to_id else None
            ),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if detail:
            d["comments"] = [c.to_dict() for c in self.comments]
            d["attachments"] = [a.to_dict() for a in self.attachments]
        else:
            d["comment_count"] = len(self.comments)
        return d

    def __repr__(self) -> str:
        return f"<Feedback id={self.id} title={self.title!r} status={self.status}>"


class FeedbackComment(db.Model):
    __tablename__ = "feedback_comments"

    id = db.Column(db.Integer, primary_key=True)
    feedback_id = db.Column(db.Integer, db.ForeignKey("feedback.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    feedback = db.relationship("Feedback", back_populates="comments")
    author = db.relationship("User", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "author": {"id": self.author_id, "name": self.author.name if self.author else None},
            "created_at": _iso(self.created_at),
        }


class FeedbackAttachment(db.Model):
    """File metadata only; the bytes live wherever ``path`` points."""
    __tablename__ = "feedback_attachments"

    id = db.Column(db.Integer, primary_key=True)
    feedback_id = db.Column(db.Integer, db.ForeignKey("feedback.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = db.Column(db.String(255), nullable=False)
    path = db.Column(db.String(1024), nullable=False)
    uploaded_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    feedback = db.relationship("Feedback", back_populates="attachments")

    def to_dict(self) -> dict:
        return {"filename": self.filename, "path": self.path, "uploaded_at": _iso(self.uploaded_at)}
