from datetime import datetime, timedelta, timezone

from feedback_tracker.extensions import db
from feedback_tracker.models import Feedback, FeedbackComment
from feedback_tracker.services import analytics
from feedback_tracker.services import identity as identity_store

DAY0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

def _fb(author, day, category="bug", status="pending"):
    fb = Feedback(author_id=author.id, title="t", category=category, status=status, description="d",
                  created_at=DAY0 + timedelta(days=day), updated_at=DAY0)
    db.session.add(fb)
    return fb

def test_empty_store(app_ctx):
    s = analytics.summary()
    assert s == {
        "daily_counts": [],
        "category_distribution": {},
        "status_distribution": {},
        "top_authors": [],
        "top_commenters": [],
    }

def test_distributions_and_trend(app_ctx):
    alice = identity_store.create_user(name="Alice", email="a@x.com", password="secret1")
    _fb(alice, 0)
    _fb(alice, 0, category="feature", status="resolved")
    _fb(alice, 2, category="feature", status="in-progress")
    db.session.commit()

    assert analytics.category_distribution() == {"bug": 1, "feature": 2}
    assert analytics.status_distribution() == {"in-progress": 1, "pending": 1, "resolved": 1}
    assert analytics.daily_counts() == [
        {"date": "2024-03-01", "count": 2},
        {"date": "2024-03-03", "count": 1},
    ]

def test_trend_keeps_latest_buckets_oldest_first(app_ctx):
    alice = identity_store.create_user(name="Alice", email="a@x.com", password="secret1")
    for day in range(35):
        _fb(alice, day)
    db.session.commit()
    trend = analytics.daily_counts()
    assert len(trend) == 30
    assert trend[0]["date"] == "2024-03-06"
    assert trend[-1]["date"] == "2024-04-04"

def test_top_authors_and_commenters(app_ctx):
    alice = identity_store.create_user(name="Alice", email="a@x.com", password="secret1")
    carol = identity_store.create_user(name="Carol", email="c@x.com", password="secret1")
    first = _fb(alice, 0)
    _fb(carol, 1)
    _fb(carol, 2)
    db.session.flush()
    for who in (alice, carol, carol, carol):
        db.session.add(FeedbackComment(feedback_id=first.id, author_id=who.id, content="c"))
    db.session.commit()

    assert analytics.top_authors() == [
        {"user_id": carol.id, "name": "Carol", "count": 2},
        {"user_id": alice.id, "name": "Alice", "count": 1},
    ]
    assert analytics.top_commenters(limit=1) == [{"user_id": carol.id, "name": "Carol", "count": 3}]
