"""
PIN-gated share link tests.

Tests cover:
  - Metadata (hasPin) without exposing the payload
  - Unlocked and locked serving, wrong / missing PIN, numeric PIN bodies
  - Setting and clearing the PIN (editors only, format validated)
  - Per (document, address) throttle key and configured limit, and the 429
    once wrong PINs exceed it
"""
import pytest
from flask import request

from tracker import create_app, limiter
from tracker.config import TestingConfig, config
from tracker.middleware.rate_limiter import (
    DEFAULT_PIN_ATTEMPT_LIMIT,
    pin_attempt_key,
    pin_attempt_limit,
)
from tracker.models import db
from tracker.models.auth import User
from tracker.models.document import ProjectDocument
from tracker.models.project import KIND_CEST, Project
from tracker.services import edit_permission, share_link


@pytest.fixture()
def document(cest_project, owner):
    doc = ProjectDocument(
        project_id=cest_project.id,
        project_kind=cest_project.kind,
        phase="INITIATION",
        template_item_id="INITIATION-1",
        file_name="Letter of Intent.pdf",
        mime_type="application/pdf",
        file_size=9,
        file_data=b"%PDF-data",
        uploaded_by_id=owner.id,
    )
    db.session.add(doc)
    db.session.commit()
    return doc


@pytest.fixture()
def locked(document):
    share_link.set_pin(document.id, "1234")
    return document


def _url(doc):
    return f"/api/view-doc/{doc.id}"


# ═════════════════════════════════════════════════════════════════════════
# METADATA
# ═════════════════════════════════════════════════════════════════════════

class TestMeta:
    def test_unlocked_meta(self, client, document):
        res = client.get(_url(document))
        assert res.status_code == 200
        assert res.get_json() == {
            "id": document.id,
            "fileName": "Letter of Intent.pdf",
            "mimeType": "application/pdf",
            "hasPin": False,
        }

    def test_locked_meta_hides_pin(self, client, locked):
        data = client.get(_url(locked)).get_json()
        assert data["hasPin"] is True
        assert "1234" not in str(data)

    def test_unknown_document_is_404(self, client):
        assert client.get("/api/view-doc/99999").status_code == 404
        assert client.post("/api/view-doc/99999", json={}).status_code == 404


# ═════════════════════════════════════════════════════════════════════════
# VERIFY & SERVE
# ═════════════════════════════════════════════════════════════════════════

class TestVerifyAndServe:
    def test_unlocked_serves_without_pin(self, client, document):
        res = client.post(_url(document), json={})
        assert res.status_code == 200
        assert res.data == b"%PDF-data"
        assert res.mimetype == "application/pdf"
        assert res.headers["Content-Disposition"] == 'inline; filename="Letter%20of%20Intent.pdf"'
        assert res.headers["Cache-Control"] == "no-store"

    def test_wrong_pin_is_401(self, client, locked):
        res = client.post(_url(locked), json={"pin": "0000"})
        assert res.status_code == 401
        body = res.get_json()
        assert body["error"] == "Invalid PIN"
        assert body["code"] == "ERR_INVALID_PIN"

    def test_missing_pin_is_401(self, client, locked):
        assert client.post(_url(locked), json={}).status_code == 401
        assert client.post(_url(locked)).status_code == 401

    def test_correct_pin_serves_file(self, client, locked):
        res = client.post(_url(locked), json={"pin": "1234"})
        assert res.status_code == 200
        assert res.data == b"%PDF-data"

    def test_numeric_pin_body_accepted(self, client, locked):
        assert client.post(_url(locked), json={"pin": 1234}).status_code == 200

    def test_document_without_content_is_404(self, client, document):
        document.file_data = None
        db.session.commit()
        res = client.post(_url(document), json={})
        assert res.status_code == 404

    def test_locked_document_without_content_is_404_before_pin_check(self, client, locked):
        locked.file_data = None
        db.session.commit()
        res = client.post(_url(locked), json={"pin": "0000"})
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════
# SET / CLEAR PIN
# ═════════════════════════════════════════════════════════════════════════

class TestSetPin:
    def test_owner_sets_then_clears(self, client, document, owner, as_user):
        res = client.patch(_url(document), json={"pin": "1234"}, headers=as_user(owner))
        assert res.status_code == 200
        assert res.get_json() == {"id": document.id, "fileName": "Letter of Intent.pdf", "hasPin": True}

        assert client.post(_url(document), json={"pin": "0000"}).status_code == 401
        assert client.post(_url(document), json={"pin": "1234"}).status_code == 200

        res = client.patch(_url(document), json={"pin": None}, headers=as_user(owner))
        assert res.get_json()["hasPin"] is False
        assert client.post(_url(document), json={}).status_code == 200

    @pytest.mark.parametrize("pin", ["12", "12345", "abcd", "12a4", 1234, "١٢٣٤"])
    def test_invalid_pin_rejected(self, client, document, owner, as_user, pin):
        res = client.patch(_url(document), json={"pin": pin}, headers=as_user(owner))
        assert res.status_code == 400
        assert db.session.get(ProjectDocument, document.id).qr_pin is None

    def test_missing_pin_key_is_400(self, client, locked, owner, as_user):
        res = client.patch(_url(locked), json={}, headers=as_user(owner))
        assert res.status_code == 400
        assert locked.qr_pin == "1234"

    def test_requires_user(self, client, document):
        assert client.patch(_url(document), json={"pin": "1234"}).status_code == 401

    def test_requires_edit_access(self, client, document, staff, as_user):
        res = client.patch(_url(document), json={"pin": "1234"}, headers=as_user(staff))
        assert res.status_code == 403
        assert document.qr_pin is None

    def test_approved_editor_may_set(self, client, document, cest_project, owner, staff, as_user):
        edit_permission.accept_edit_request(owner, cest_project, staff.id)
        res = client.patch(_url(document), json={"pin": "4321"}, headers=as_user(staff))
        assert res.status_code == 200


# ═════════════════════════════════════════════════════════════════════════
# ATTEMPT THROTTLING
# ═════════════════════════════════════════════════════════════════════════

class TestPinThrottle:
    def test_key_combines_document_and_address(self, app):
        with app.test_request_context("/api/view-doc/7", method="POST",
                                      environ_base={"REMOTE_ADDR": "10.0.0.5"}):
            request.view_args = {"doc_id": 7}
            assert pin_attempt_key() == "pin:7:10.0.0.5"

    def test_limit_from_config(self, app):
        with app.test_request_context("/"):
            assert pin_attempt_limit() == app.config["PIN_ATTEMPT_LIMIT"]

    def test_limit_default(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "PIN_ATTEMPT_LIMIT", "")
        with app.test_request_context("/"):
            assert pin_attempt_limit() == DEFAULT_PIN_ATTEMPT_LIMIT

    def test_pin_matches_is_exact(self):
        assert share_link.pin_matches(None, None)
        assert share_link.pin_matches("1234", "1234")
        assert not share_link.pin_matches("1234", "12345")
        assert not share_link.pin_matches("1234", None)


class _ThrottledConfig(TestingConfig):
    RATELIMIT_ENABLED = True
    PIN_ATTEMPT_LIMIT = "3/minute"


@pytest.fixture()
def throttled_app(monkeypatch):
    """Separate app with the limiter switched on; the shared limiter is restored after."""
    monkeypatch.setitem(config, "throttled", _ThrottledConfig)
    was_enabled = limiter.enabled
    throttled = create_app("throttled")
    limiter.reset()
    with throttled.app_context():
        yield throttled
        db.session.remove()
        db.drop_all()
    limiter.reset()
    limiter.enabled = was_enabled


def _locked_document():
    owner = User(full_name="Maria Santos", email="maria@dost.gov.ph", is_approved=True)
    db.session.add(owner)
    db.session.flush()
    project = Project(
        kind=KIND_CEST, code="001", title="Community Water System", status="Approved",
        assignee_id=owner.id, staff_assigned=owner.full_name, dropdown_data={},
    )
    db.session.add(project)
    db.session.flush()
    doc = ProjectDocument(
        project_id=project.id, project_kind=KIND_CEST, phase="INITIATION",
        template_item_id="INITIATION-1", file_name="Letter of Intent.pdf",
        mime_type="application/pdf", file_size=9, file_data=b"%PDF-data",
        uploaded_by_id=owner.id, qr_pin="1234",
    )
    db.session.add(doc)
    db.session.commit()
    return doc


class TestPinThrottleEnforced:
    def test_wrong_pins_past_limit_are_throttled(self, throttled_app):
        url = _url(_locked_document())
        client = throttled_app.test_client()

        statuses = [client.post(url, json={"pin": "0000"}).status_code for _ in range(5)]
        assert statuses == [401, 401, 401, 429, 429]

        res = client.post(url, json={"pin": "1234"})
        assert res.status_code == 429
        assert res.get_json()["code"] == "ERR_RATE_LIMITED"

    def test_other_address_is_not_throttled(self, throttled_app):
        url = _url(_locked_document())
        client = throttled_app.test_client()

        for _ in range(4):
            client.post(url, json={"pin": "0000"}, environ_base={"REMOTE_ADDR": "10.0.0.5"})
        res = client.post(url, json={"pin": "1234"}, environ_base={"REMOTE_ADDR": "10.0.0.9"})
        assert res.status_code == 200
        assert res.data == b"%PDF-data"
