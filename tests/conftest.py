"""
Shared pytest fixtures for the DOST Project Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / owner / admin / staff / other_staff: User factories
    - cest_project / setup_project: projects assigned to ``owner``
    - as_user: X-User-Id header builder
"""

import pytest

from tracker import create_app
from tracker.models import db as _db
from tracker.models.auth import ROLE_ADMIN, ROLE_STAFF, User
from tracker.models.project import KIND_CEST, KIND_SETUP, Project


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    counter = {"n": 0}

    def _make(full_name=None, role=ROLE_STAFF, approved=True, email=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            full_name=full_name or f"Staff Member {n}",
            email=email or f"staff{n}@dost.gov.ph",
            role=role,
            is_approved=approved,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def owner(make_user):
    return make_user("Maria Santos")


@pytest.fixture()
def admin(make_user):
    return make_user("Office Admin", role=ROLE_ADMIN)


@pytest.fixture()
def staff(make_user):
    return make_user("Juan Dela Cruz")


@pytest.fixture()
def other_staff(make_user):
    return make_user("Ana Reyes")


@pytest.fixture()
def cest_project(owner):
    project = Project(
        kind=KIND_CEST,
        code="001",
        title="Community Water System",
        status="Approved",
        assignee_id=owner.id,
        staff_assigned=owner.full_name,
        location="Balingasag",
        dropdown_data={},
    )
    _db.session.add(project)
    _db.session.commit()
    return project


@pytest.fixture()
def setup_project(owner):
    project = Project(
        kind=KIND_SETUP,
        code="001",
        title="Bakery Equipment Upgrade",
        status="Proposal",
        assignee_id=owner.id,
        staff_assigned=owner.full_name,
        firm="Golden Crust Bakeshop",
        dropdown_data={},
    )
    _db.session.add(project)
    _db.session.commit()
    return project


@pytest.fixture()
def as_user():
    """Build request headers identifying a user (or raw id) as the session user."""
    def _headers(user):
        uid = user if isinstance(user, int) else user.id
        return {"X-User-Id": str(uid)}
    return _headers
