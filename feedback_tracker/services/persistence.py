from __future__ import annotations

from sqlalchemy.exc import IntegrityError, OperationalError

from feedback_tracker.errors import StoreUnavailable
from feedback_tracker.extensions import db


def commit() -> None:
    """
    Commit the request's unit of work.
    IntegrityError propagates (callers map it to Conflict/ValidationFailed);
    connectivity failures surface as StoreUnavailable.
    """
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        raise StoreUnavailable() from exc
