"""
Edit-access workflow tests.

Tests cover:
  - Owner/admin/approved-editor authorization rules (identity by user id)
  - Request → accept / decline / revoke transitions and idempotency
  - Owner-only management (403) and assignee resolution (404)
  - Notifications to the other party, and that their failure never undoes
    the permission change
  - dropdownData exposure of pendingEditRequests / approvedEditors
  - Re-reading the row when a concurrent insert wins the unique constraint
"""
from unittest import mock

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tracker.core.exceptions import ConflictError
from tracker.models import db
from tracker.models.notification import TYPE_EDIT_REQUEST, Notification
from tracker.models.project import KIND_CEST, Project, ProjectEditPermission
from tracker.services import edit_permission
from tracker.services.notification import NotificationService


def _base(project):
    return f"/api/cest-projects/{project.id}"


def _state(project, user):
    return edit_permission.permission_state(project, user.id)


# ═════════════════════════════════════════════════════════════════════════
# AUTHORIZATION RULES
# ═════════════════════════════════════════════════════════════════════════

class TestAuthorizationRules:
    def test_owner_and_admin_are_authorized(self, cest_project, owner, admin):
        assert edit_permission.is_owner_or_admin(owner, cest_project)
        assert edit_permission.is_owner_or_admin(admin, cest_project)
        assert edit_permission.is_authorized_to_edit(owner, cest_project)
        assert edit_permission.is_authorized_to_edit(admin, cest_project)

    def test_plain_staff_is_not_authorized(self, cest_project, staff):
        assert not edit_permission.is_owner_or_admin(staff, cest_project)
        assert not edit_permission.is_authorized_to_edit(staff, cest_project)

    def test_same_display_name_does_not_grant_ownership(self, cest_project, owner, make_user):
        namesake = make_user(owner.full_name)
        assert namesake.id != owner.id
        assert not edit_permission.is_owner_or_admin(namesake, cest_project)
        assert not edit_permission.is_authorized_to_edit(namesake, cest_project)

    def test_approved_editor_is_authorized_but_not_owner(self, cest_project, owner, staff):
        edit_permission.request_edit(staff, cest_project)
        edit_permission.accept_edit_request(owner, cest_project, staff.id)
        assert edit_permission.is_authorized_to_edit(staff, cest_project)
        assert not edit_permission.is_owner_or_admin(staff, cest_project)

    def test_pending_requester_is_not_authorized(self, cest_project, staff):
        edit_permission.request_edit(staff, cest_project)
        assert not edit_permission.is_authorized_to_edit(staff, cest_project)

    def test_none_user_is_never_authorized(self, cest_project):
        assert not edit_permission.is_authorized_to_edit(None, cest_project)


# ═════════════════════════════════════════════════════════════════════════
# REQUEST
# ═════════════════════════════════════════════════════════════════════════

class TestRequestEdit:
    def test_request_puts_user_in_pending(self, client, cest_project, staff, as_user):
        res = client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
        assert res.status_code == 200
        data = res.get_json()
        assert data["state"] == "pending"
        assert data["project"]["dropdownData"]["pendingEditRequests"] == [staff.id]
        assert data["project"]["dropdownData"]["approvedEditors"] == []

    def test_request_twice_is_idempotent(self, client, cest_project, staff, as_user):
        for _ in range(2):
            res = client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
            assert res.status_code == 200
        rows = ProjectEditPermission.query.filter_by(project_id=cest_project.id, user_id=staff.id).all()
        assert len(rows) == 1
        assert rows[0].state == "pending"

    def test_request_notifies_assignee(self, client, cest_project, owner, staff, as_user):
        client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
        notes = Notification.query.filter_by(user_id=owner.id).all()
        assert len(notes) == 1
        note = notes[0]
        assert note.type == TYPE_EDIT_REQUEST
        assert note.title == "Edit Access Request"
        assert note.message == (
            f'{staff.full_name} is requesting edit access to CEST project "{cest_project.title}"'
        )
        assert note.project_id == cest_project.id
        assert note.booked_by_user_id == staff.id

    def test_request_by_owner_conflicts(self, client, cest_project, owner, as_user):
        res = client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(owner))
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_request_by_approved_editor_conflicts(self, cest_project, owner, staff):
        edit_permission.accept_edit_request(owner, cest_project, staff.id)
        with pytest.raises(ConflictError) as exc:
            edit_permission.request_edit(staff, cest_project)
        assert "already" in str(exc.value)
        assert _state(cest_project, staff) == "approved"

    def test_request_without_assignee_changes_nothing(self, client, staff, as_user):
        orphan = Project(kind=KIND_CEST, code="009", title="Unassigned", status="Approved")
        db.session.add(orphan)
        db.session.commit()

        res = client.post(f"/api/cest-projects/{orphan.id}/edit-requests", headers=as_user(staff))
        assert res.status_code == 404
        assert res.get_json()["error"] == "Assignee not found"
        assert ProjectEditPermission.query.filter_by(project_id=orphan.id).count() == 0

    def test_request_requires_session_user(self, client, cest_project):
        res = client.post(f"{_base(cest_project)}/edit-requests")
        assert res.status_code == 401

    def test_unknown_header_user_is_unauthenticated(self, client, cest_project):
        res = client.post(f"{_base(cest_project)}/edit-requests", headers={"X-User-Id": "99999"})
        assert res.status_code == 401

    def test_wrong_collection_is_404(self, client, cest_project, staff, as_user):
        res = client.post(f"/api/setup-projects/{cest_project.id}/edit-requests", headers=as_user(staff))
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════
# ACCEPT / DECLINE / REVOKE
# ═════════════════════════════════════════════════════════════════════════

class TestManageRequests:
    @pytest.fixture()
    def pending(self, client, cest_project, staff, as_user):
        res = client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
        assert res.status_code == 200
        return staff

    def test_owner_accepts(self, client, cest_project, owner, pending, as_user):
        res = client.post(
            f"{_base(cest_project)}/edit-requests/{pending.id}/accept", headers=as_user(owner),
        )
        assert res.status_code == 200
        dropdown = res.get_json()["project"]["dropdownData"]
        assert dropdown["pendingEditRequests"] == []
        assert dropdown["approvedEditors"] == [pending.id]

        note = Notification.query.filter_by(user_id=pending.id).one()
        assert note.title == "Edit Access Approved"
        assert note.message == (
            f'Your edit access request for CEST project "{cest_project.title}" '
            f"has been approved by {owner.full_name}!"
        )

    def test_admin_may_accept(self, client, cest_project, admin, pending, as_user):
        res = client.post(
            f"{_base(cest_project)}/edit-requests/{pending.id}/accept", headers=as_user(admin),
        )
        assert res.status_code == 200
        assert _state(cest_project, pending) == "approved"

    def test_accept_is_idempotent(self, cest_project, owner, pending):
        edit_permission.accept_edit_request(owner, cest_project, pending.id)
        edit_permission.accept_edit_request(owner, cest_project, pending.id)
        assert cest_project.user_ids_in_state("approved") == [pending.id]
        assert cest_project.user_ids_in_state("pending") == []

    def test_non_owner_cannot_manage(self, client, cest_project, other_staff, pending, as_user):
        base = _base(cest_project)
        for method, url in (
            ("post", f"{base}/edit-requests/{pending.id}/accept"),
            ("post", f"{base}/edit-requests/{pending.id}/decline"),
            ("delete", f"{base}/editors/{pending.id}"),
        ):
            res = getattr(client, method)(url, headers=as_user(other_staff))
            assert res.status_code == 403
        assert _state(cest_project, pending) == "pending"

    def test_decline_removes_pending(self, client, cest_project, owner, pending, as_user):
        res = client.post(
            f"{_base(cest_project)}/edit-requests/{pending.id}/decline", headers=as_user(owner),
        )
        assert res.status_code == 200
        assert _state(cest_project, pending) == "none"
        note = Notification.query.filter_by(user_id=pending.id).one()
        assert note.title == "Edit Access Declined"
        assert "has been declined by" in note.message

    def test_decline_twice_does_not_error(self, client, cest_project, owner, pending, as_user):
        url = f"{_base(cest_project)}/edit-requests/{pending.id}/decline"
        assert client.post(url, headers=as_user(owner)).status_code == 200
        assert client.post(url, headers=as_user(owner)).status_code == 200
        assert _state(cest_project, pending) == "none"

    def test_decline_after_accept_keeps_approval(self, cest_project, owner, pending):
        edit_permission.accept_edit_request(owner, cest_project, pending.id)
        edit_permission.decline_edit_request(owner, cest_project, pending.id)
        assert _state(cest_project, pending) == "approved"

    def test_accept_then_revoke_returns_to_none(self, client, cest_project, owner, pending, as_user):
        base = _base(cest_project)
        client.post(f"{base}/edit-requests/{pending.id}/accept", headers=as_user(owner))
        res = client.delete(f"{base}/editors/{pending.id}", headers=as_user(owner))
        assert res.status_code == 200
        dropdown = res.get_json()["project"]["dropdownData"]
        assert pending.id not in dropdown["pendingEditRequests"]
        assert pending.id not in dropdown["approvedEditors"]
        assert _state(cest_project, pending) == "none"

        titles = [n.title for n in Notification.query.filter_by(user_id=pending.id).order_by(Notification.id)]
        assert titles == ["Edit Access Approved", "Edit Access Revoked"]

    def test_revoke_leaves_pending_request(self, cest_project, owner, pending):
        edit_permission.revoke_edit_access(owner, cest_project, pending.id)
        assert _state(cest_project, pending) == "pending"

    def test_accept_unknown_user_is_404(self, client, cest_project, owner, as_user):
        res = client.post(
            f"{_base(cest_project)}/edit-requests/99999/accept", headers=as_user(owner),
        )
        assert res.status_code == 404

    def test_user_in_at_most_one_state(self, cest_project, owner, pending):
        edit_permission.accept_edit_request(owner, cest_project, pending.id)
        pending_ids = cest_project.user_ids_in_state("pending")
        approved_ids = cest_project.user_ids_in_state("approved")
        assert not set(pending_ids) & set(approved_ids)


# ═════════════════════════════════════════════════════════════════════════
# BEST-EFFORT NOTIFICATIONS
# ═════════════════════════════════════════════════════════════════════════

class TestNotificationFailure:
    def test_failed_notification_keeps_request(self, client, cest_project, staff, as_user):
        with mock.patch.object(NotificationService, "create", side_effect=SQLAlchemyError("down")):
            res = client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
        assert res.status_code == 200
        assert _state(cest_project, staff) == "pending"
        assert Notification.query.count() == 0

    def test_failed_notification_keeps_approval(self, cest_project, owner, staff):
        edit_permission.request_edit(staff, cest_project)
        with mock.patch.object(NotificationService, "create", side_effect=SQLAlchemyError("down")):
            edit_permission.accept_edit_request(owner, cest_project, staff.id)
        assert _state(cest_project, staff) == "approved"


# ═════════════════════════════════════════════════════════════════════════
# EDIT-ACCESS SUMMARY & DROPDOWN DATA
# ═════════════════════════════════════════════════════════════════════════

class TestEditAccessView:
    def test_owner_sees_queue(self, client, cest_project, owner, staff, as_user):
        client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
        res = client.get(f"{_base(cest_project)}/edit-access", headers=as_user(owner))
        assert res.status_code == 200
        data = res.get_json()
        assert data["isOwnerOrAdmin"] is True
        assert data["canEdit"] is True
        assert [r["userId"] for r in data["pendingRequests"]] == [staff.id]
        assert data["pendingRequests"][0]["userName"] == staff.full_name
        assert data["approvedEditors"] == []

    def test_requester_sees_own_state_only(self, client, cest_project, staff, as_user):
        client.post(f"{_base(cest_project)}/edit-requests", headers=as_user(staff))
        data = client.get(f"{_base(cest_project)}/edit-access", headers=as_user(staff)).get_json()
        assert data == {
            "projectId": cest_project.id,
            "isOwnerOrAdmin": False,
            "canEdit": False,
            "state": "pending",
        }

    def test_patch_cannot_write_permission_keys(self, client, cest_project, owner, staff, as_user):
        res = client.patch(
            _base(cest_project),
            json={"dropdownData": {"approvedEditors": [staff.id], "phaseNotes": "ok"}},
            headers=as_user(owner),
        )
        assert res.status_code == 200
        dropdown = res.get_json()["dropdownData"]
        assert dropdown["approvedEditors"] == []
        assert dropdown["phaseNotes"] == "ok"
        assert not edit_permission.is_authorized_to_edit(staff, cest_project)


# ═════════════════════════════════════════════════════════════════════════
# CONCURRENT DUPLICATE INSERTS
# ═════════════════════════════════════════════════════════════════════════

def _stale_reads(count):
    """get_permission stand-in that misses the row for the first *count* reads."""
    real = edit_permission.get_permission
    calls = {"n": 0}

    def _get(project, user_id):
        calls["n"] += 1
        if calls["n"] <= count:
            return None
        return real(project, user_id)

    return _get


class TestDuplicateInsertRace:
    def _insert(self, project, user, state):
        db.session.add(ProjectEditPermission(project_id=project.id, user_id=user.id, state=state))
        db.session.commit()

    def test_request_rereads_existing_row(self, cest_project, staff):
        self._insert(cest_project, staff, "pending")
        # authorization check + pre-insert lookup both miss the row
        with mock.patch.object(edit_permission, "get_permission", side_effect=_stale_reads(2)):
            perm = edit_permission.request_edit(staff, cest_project)

        assert perm is not None
        assert perm.state == "pending"
        rows = ProjectEditPermission.query.filter_by(project_id=cest_project.id, user_id=staff.id).all()
        assert len(rows) == 1

    def test_accept_rereads_and_approves_existing_row(self, cest_project, owner, staff):
        self._insert(cest_project, staff, "pending")
        with mock.patch.object(edit_permission, "get_permission", side_effect=_stale_reads(1)):
            perm = edit_permission.accept_edit_request(owner, cest_project, staff.id)

        assert perm.state == "approved"
        assert perm.decided_by_id == owner.id
        rows = ProjectEditPermission.query.filter_by(project_id=cest_project.id, user_id=staff.id).all()
        assert len(rows) == 1
        assert rows[0].state == "approved"
        assert edit_permission.is_authorized_to_edit(staff, cest_project)


# ═════════════════════════════════════════════════════════════════════════
# STORED STATE VALUES
# ═════════════════════════════════════════════════════════════════════════

class TestStateConstraint:
    def test_unknown_state_rejected_by_database(self, cest_project, staff):
        db.session.add(ProjectEditPermission(
            project_id=cest_project.id, user_id=staff.id, state="revoked",
        ))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()
