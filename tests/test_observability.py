import logging
import types

from feedback_tracker import observability
from feedback_tracker.observability import RequestContextFilter, _scrub_event

def _record(**extra):
    rec = logging.LogRecord("feedback_tracker", logging.INFO, __file__, 1, "evt", None, None)
    rec.__dict__.update(extra)
    return rec

def test_request_filter_stamps_path_and_user(app, monkeypatch):
    monkeypatch.setattr(observability, "current_user", types.SimpleNamespace(id=7, is_authenticated=True))
    with app.test_request_context("/feedback/mine", method="GET"):
        rec = _record()
        assert RequestContextFilter().filter(rec) is True
    assert (rec.path, rec.method, rec.user_id) == ("/feedback/mine", "GET", 7)

def test_request_filter_keeps_explicit_user_and_skips_anonymous(app, monkeypatch):
    monkeypatch.setattr(observability, "current_user", types.SimpleNamespace(id=7, is_authenticated=True))
    with app.test_request_context("/x", method="POST"):
        rec = _record(user_id=3)
        RequestContextFilter().filter(rec)
    assert rec.user_id == 3

    monkeypatch.setattr(observability, "current_user", types.SimpleNamespace(is_authenticated=False))
    with app.test_request_context("/x"):
        rec = _record()
        RequestContextFilter().filter(rec)
    assert not hasattr(rec, "user_id")

def test_request_filter_outside_request():
    rec = _record()
    assert RequestContextFilter().filter(rec) is True
    assert not hasattr(rec, "path")

def test_scrub_event_filters_credentials():
    event = {"request": {"data": {"email": "a@x.com", "password": "secret1", "admin_code": "x"}}}
    out = _scrub_event(event, None)
    assert out["request"]["data"] == {"email": "a@x.com", "password": "[Filtered]", "admin_code": "[Filtered]"}
    assert _scrub_event({}, None) == {}
