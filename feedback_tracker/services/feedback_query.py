"""
Filtered, paginated feedback listings.

Ordering is newest first (``created_at`` desc, then ``id`` desc so equal
timestamps still page deterministically). ``total`` is counted before the
page slice is applied.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from feedback_tracker.extensions import db
from feedback_tracker.models.feedback import Feedback

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Keeps OFFSET inside a 64-bit integer for any allowed page size
MAX_PAGE = 1_000_000


@dataclass(frozen=True)
class FeedbackQuery:
    status: str | None = None
    category: str | None = None
    search: str | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    # Set by the caller for "own feedback" listings; never taken from request args
    author_id: int | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def filters(self) -> dict:
        return {"status": self.status, "category": self.category, "search": self.search}


@dataclass
class FeedbackPage:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict:
        return {
            "items": [fb.to_dict() for fb in self.items],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
        }


def _int_or(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def normalize_paging(page, limit, default_limit: int = DEFAULT_PAGE_SIZE, max_limit: int = MAX_PAGE_SIZE) -> tuple[int, int]:
    """page < 1 -> 1, page above MAX_PAGE -> MAX_PAGE; limit <= 0 or junk -> default; limit above the cap -> cap."""
    page = min(max(_int_or(page, 1), 1), MAX_PAGE)
    limit = _int_or(limit, default_limit)
    if limit <= 0:
        limit = default_limit
    return page, min(limit, max_limit)


def _blank_to_none(value) -> str | None:
    value = (value or "").strip()
    return value or None


def parse_query(args, author_id: int | None = None) -> FeedbackQuery:
    """Build a query from request args (a MultiDict or plain dict)."""
    cfg = current_app.config
    page, limit = normalize_paging(
        args.get("page"),
        args.get("limit"),
        default_limit=cfg.get("FEEDBACK_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        max_limit=cfg.get("FEEDBACK_MAX_PAGE_SIZE", MAX_PAGE_SIZE),
    )
    return FeedbackQuery(
        status=_blank_to_none(args.get("status")),
        category=_blank_to_none(args.get("category")),
        search=_blank_to_none(args.get("search")),
        page=page,
        limit=limit,
        author_id=author_id,
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _conditions(q: FeedbackQuery) -> list:
    conds = []
    if q.author_id is not None:
        conds.append(Feedback.author_id == q.author_id)
    if q.status:
        conds.append(Feedback.status == q.status)
    if q.category:
        conds.append(Feedback.category == q.category)
    if q.search:
        like = f"%{_escape_like(q.search)}%"
        conds.append(
            or_(
                Feedback.title.ilike(like, escape="\\"),
                Feedback.description.ilike(like, escape="\\"),
            )
        )
    return conds


def run_query(q: FeedbackQuery) -> FeedbackPage:
    conds = _conditions(q)

    total = db.session.execute(
        db.select(func.count(Feedback.id)).where(*conds)
    ).scalar_one()

    if q.offset >= total:
        # Past the last page: nothing to slice
        return FeedbackPage(items=[], total=total, page=q.page, limit=q.limit)

    stmt = (
        db.select(Feedback)
        .where(*conds)
        .options(selectinload(Feedback.comments))
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .offset(q.offset)
        .limit(q.limit)
    )
    items = list(db.session.execute(stmt).unique().scalars())
    return FeedbackPage(items=items, total=total, page=q.page, limit=q.limit)
