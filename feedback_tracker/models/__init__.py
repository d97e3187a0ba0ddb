from .user import User, ROLE_USER, ROLE_ADMIN, ROLE_CHOICES
from .session import UserSession
from .feedback import (
    Feedback,
    FeedbackComment,
    FeedbackAttachment,
    CATEGORIES,
    STATUSES,
    PRIORITIES,
    STATUS_PENDING,
    STATUS_IN_PROGRESS,
    STATUS_RESOLVED,
)

__all__ = [
    "User",
    "UserSession",
    "Feedback",
    "FeedbackComment",
    "FeedbackAttachment",
    "ROLE_USER",
    "ROLE_ADMIN",
    "ROLE_CHOICES",
    "CATEGORIES",
    "STATUSES",
    "PRIORITIES",
    "STATUS_PENDING",
    "STATUS_IN_PROGRESS",
    "STATUS_RESOLVED",
]
