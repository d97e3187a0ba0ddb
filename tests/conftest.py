import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import pytest
from feedback_tracker import create_app
from feedback_tracker.extensions import db
from feedback_tracker.models import ROLE_ADMIN, ROLE_USER
from feedback_tracker.services import identity as identity_store

@pytest.fixture(scope="session")
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "WTF_CSRF_ENABLED": False,
        "RATELIMIT_ENABLED": False,
        "ADMIN_REGISTRATION_CODE": "test-admin-code",
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture()
def app_ctx(app):
    with app.app_context():
        yield app

def _clean(app):
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
        db.session.remove()

@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean before and after each test so state stays hermetic even if a test fails mid-transaction
    _clean(app)
    yield
    _clean(app)

@pytest.fixture()
def make_user(app):
    """Create a user and return its id."""
    def _make(name="Alice", email="a@x.com", password="secret1", role=ROLE_USER):
        with app.app_context():
            return identity_store.create_user(name=name, email=email, password=password, role=role).id
    return _make

@pytest.fixture()
def make_admin(make_user):
    def _make(name="Bob Admin", email="b@x.com", password="secret1"):
        return make_user(name=name, email=email, password=password, role=ROLE_ADMIN)
    return _make

@pytest.fixture()
def login():
    """Log a test client in through the real /login endpoint."""
    def _login(client, email, password="secret1"):
        resp = client.post("/login", data={"email": email, "password": password})
        assert resp.status_code == 302, resp.get_data(as_text=True)
        return resp
    return _login
