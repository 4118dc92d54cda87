import pytest

from src.staffing_engine.staffing_engine.container import Container
from src.staffing_engine.staffing_engine.main import create_app

SHIFT_ID = 10


@pytest.fixture
def app(monkeypatch, engine, events):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container=Container(engine=engine, events=events))


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user):
    with client.session_transaction() as sess:
        sess["user_id"] = user.user_id


def test_requests_without_session_are_401(client):
    resp = client.get(f"/api/shifts/{SHIFT_ID}")

    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "HTTP_ERROR"


def test_inactive_session_user_is_401(client, users):
    login(client, users["inactive_admin"])

    assert client.get(f"/api/shifts/{SHIFT_ID}").status_code == 401


def test_error_body_carries_request_id(client, users):
    login(client, users["admin"])

    resp = client.get("/api/shifts/999", headers={"X-Request-Id": "req-123"})

    assert resp.status_code == 404
    assert resp.headers["X-Request-Id"] == "req-123"
    assert resp.get_json() == {
        "error": {"code": "NOT_FOUND", "message": "Shift not found", "request_id": "req-123"}
    }


def test_assign_and_read_fulfillment(client, users):
    login(client, users["admin"])

    resp = client.post(
        f"/api/shifts/{SHIFT_ID}/assignments", json={"user_id": users["worker"].user_id, "role_code": "sh"}
    )
    assert resp.status_code == 201
    assert resp.get_json()["assignment"]["role_code"] == "SH"
    assert resp.get_json()["assignment"]["status"] == "NotStarted"

    body = client.get(f"/api/shifts/{SHIFT_ID}/fulfillment").get_json()
    assert body["total_needed"] == 4
    roles = {r["role_code"]: r["fulfillment"]["band"] for r in body["fulfillment"]["roles"]}
    assert roles["CC"] == "Critical"
    assert roles["SH"] == "Low"


def test_status_mapping(client, users, crew):
    login(client, users["client"])
    forbidden = client.post(
        f"/api/shifts/{SHIFT_ID}/assignments", json={"user_id": users["worker3"].user_id, "role_code": "SH"}
    )
    assert forbidden.status_code == 403
    assert forbidden.get_json()["error"]["code"] == "UNAUTHORIZED"

    login(client, users["admin"])
    duplicate = client.post(
        f"/api/shifts/{SHIFT_ID}/assignments", json={"user_id": users["worker"].user_id, "role_code": "SH"}
    )
    assert duplicate.status_code == 400

    bad_id = client.post(f"/api/shifts/{SHIFT_ID}/assignments", json={"user_id": "abc", "role_code": "SH"})
    assert bad_id.status_code == 400
    assert bad_id.get_json()["error"]["code"] == "VALIDATION_ERROR"

    unknown_role = client.post(
        f"/api/shifts/{SHIFT_ID}/assignments", json={"user_id": users["worker3"].user_id, "role_code": "ZZ"}
    )
    assert unknown_role.status_code == 404
    assert unknown_role.get_json()["error"]["code"] == "ROLE_NOT_FOUND"

    clock_out_first = client.post(f"/api/assignments/{crew['worker'].assignment_id}/clock-out")
    assert clock_out_first.status_code == 409
    assert clock_out_first.get_json()["error"]["code"] == "INVALID_TRANSITION"


def test_attendance_endpoints(client, users, crew, clock):
    login(client, users["chief"])
    worker_id = crew["worker"].assignment_id

    resp = client.post(f"/api/assignments/{worker_id}/clock-in")
    assert resp.status_code == 200
    assert resp.get_json()["assignment"]["status"] == "ClockedIn"

    client.post(f"/api/assignments/{crew['worker2'].assignment_id}/clock-in")
    clock.advance(hours=2)
    bulk = client.post(f"/api/shifts/{SHIFT_ID}/start-break-all").get_json()["result"]
    assert bulk["affected_count"] == 2
    assert bulk["skipped_count"] == 1

    clock.advance(minutes=30)
    client.post(f"/api/assignments/{worker_id}/clock-in")
    clock.advance(hours=2)
    ended = client.post(f"/api/assignments/{worker_id}/end-shift").get_json()["assignment"]
    assert ended["status"] == "ShiftEnded"
    assert len(ended["time_entries"]) == 2

    no_show = client.post(f"/api/assignments/{crew['chief'].assignment_id}/no-show")
    assert no_show.get_json()["assignment"]["status"] == "NoShow"

    hours = client.get(f"/api/shifts/{SHIFT_ID}/hours").get_json()["hours"]
    assert hours["totals"]["total"] == pytest.approx(6.0)


def test_unassign_endpoint(client, users, crew):
    login(client, users["admin"])

    assert client.delete(f"/api/assignments/{crew['worker2'].assignment_id}").status_code == 204
    assert len(client.get(f"/api/shifts/{SHIFT_ID}/assignments").get_json()["assignments"]) == 2


def test_update_requirements_endpoint(client, users):
    login(client, users["admin"])

    resp = client.put(f"/api/shifts/{SHIFT_ID}/requirements", json={"requirements": {"SH": 6, "GL": 2}})
    assert resp.status_code == 200
    assert resp.get_json()["shift"]["requirements"] == {"CC": 1, "SH": 6, "GL": 2}

    assert client.put(f"/api/shifts/{SHIFT_ID}/requirements", json={}).status_code == 400
    assert client.put(f"/api/shifts/{SHIFT_ID}/requirements", json={"SH": -2}).status_code == 400
    assert client.put(f"/api/shifts/{SHIFT_ID}/requirements", json=[1, 2]).status_code == 400


def test_timesheet_workflow_over_http(client, users, worked_shift):
    login(client, users["chief"])
    opened = client.post(f"/api/shifts/{SHIFT_ID}/timesheet", json={"submit": True})
    assert opened.status_code == 201
    ts = opened.get_json()["timesheet"]
    assert ts["status"] == "PENDING_COMPANY_APPROVAL"

    detail = client.get(f"/api/timesheets/{ts['timesheet_id']}").get_json()
    assert len(detail["entries"]) == 3

    login(client, users["client"])
    missing = client.post(f"/api/timesheets/{ts['timesheet_id']}/approve-company", json={})
    assert missing.status_code == 400
    assert missing.get_json()["error"]["code"] == "MISSING_SIGNATURE"

    approved = client.post(
        f"/api/timesheets/{ts['timesheet_id']}/approve-company", json={"signature": "data:image/png;base64,AAA"}
    )
    assert approved.get_json()["timesheet"]["status"] == "PENDING_MANAGER_APPROVAL"

    manager_by_client = client.post(
        f"/api/timesheets/{ts['timesheet_id']}/approve-manager", json={"signature": "data:image/png;base64,BBB"}
    )
    assert manager_by_client.status_code == 403

    login(client, users["admin"])
    done = client.post(
        f"/api/timesheets/{ts['timesheet_id']}/approve-manager", json={"signature": "data:image/png;base64,BBB"}
    )
    assert done.get_json()["timesheet"]["status"] == "COMPLETED"
    assert client.get(f"/api/shifts/{SHIFT_ID}").get_json()["shift"]["status"] == "Completed"

    again = client.post(
        f"/api/timesheets/{ts['timesheet_id']}/approve-manager", json={"signature": "data:image/png;base64,BBB"}
    )
    assert again.status_code == 409

    no_reason = client.post(f"/api/timesheets/{ts['timesheet_id']}/unlock", json={"reason": "  "})
    assert no_reason.status_code == 400
    assert no_reason.get_json()["error"]["code"] == "EMPTY_REASON"

    unlocked = client.post(f"/api/timesheets/{ts['timesheet_id']}/unlock", json={"reason": "Wrong break time"})
    body = unlocked.get_json()["timesheet"]
    assert body["status"] == "DRAFT"
    assert body["company_signature"] is None
    assert body["manager_signature"] is None


def test_reject_over_http(client, users, pending_timesheet):
    login(client, users["client"])
    tid = pending_timesheet.timesheet_id

    resp = client.post(f"/api/timesheets/{tid}/reject", json={"reason": "Hours look wrong"})

    assert resp.get_json()["timesheet"]["status"] == "REJECTED"
    assert resp.get_json()["timesheet"]["rejection_reason"] == "Hours look wrong"


def test_documents_endpoint(client, users, pending_timesheet):
    login(client, users["admin"])
    tid = pending_timesheet.timesheet_id

    resp = client.post(f"/api/timesheets/{tid}/documents", json={"unsigned_ref": "files/ts-unsigned.pdf"})
    assert resp.get_json()["timesheet"]["unsigned_document_ref"] == "files/ts-unsigned.pdf"

    signed_early = client.post(f"/api/timesheets/{tid}/documents", json={"signed_ref": "files/ts-signed.pdf"})
    assert signed_early.status_code == 409


def test_roles_endpoints(client, users):
    login(client, users["staff"])
    assert client.post("/api/roles", json={"code": "AV", "name": "Audio Visual"}).status_code == 403

    login(client, users["admin"])
    created = client.post("/api/roles", json={"code": "AV", "name": "Audio Visual", "color": "orange"})
    assert created.status_code == 201
    assert created.get_json()["role"]["color"] == "orange"

    codes = [r["code"] for r in client.get("/api/roles").get_json()["roles"]]
    assert codes == ["CC", "RG", "RFO", "FO", "SH", "GL", "AV"]

    assert client.post("/api/roles", json={"code": "AV", "name": "Again"}).status_code == 409
    assert client.delete("/api/roles/SH").status_code == 400
    assert client.delete("/api/roles/AV").status_code == 204


def test_permission_endpoints(client, users):
    login(client, users["admin"])

    resp = client.post(
        "/api/crew-chief-permissions",
        json={"user_id": users["chief2"].user_id, "permission_type": "shift", "target_id": 11},
    )
    assert resp.status_code == 201
    permission = resp.get_json()["permission"]
    assert permission["permission_type"] == "shift"

    login(client, users["chief2"])
    assert client.put("/api/shifts/11/requirements", json={"SH": 2}).status_code == 200
    assert client.put("/api/shifts/12/requirements", json={"SH": 2}).status_code == 403

    login(client, users["admin"])
    assert client.delete(f"/api/crew-chief-permissions/{permission['permission_id']}").status_code == 204
    assert client.delete(f"/api/crew-chief-permissions/{permission['permission_id']}").status_code == 404


@pytest.mark.parametrize(
    "path, body, code",
    [
        ("approve-company", {"signature": 123}, "MISSING_SIGNATURE"),
        ("approve-company", {"signature": ["data:image/png;base64,AAA"]}, "MISSING_SIGNATURE"),
        ("approve-company", {"signature": "data:image/png;base64,AAA", "notes": 5}, "VALIDATION_ERROR"),
        ("reject", {"reason": ["x"]}, "EMPTY_REASON"),
        ("reject", {"reason": {"text": "late"}}, "EMPTY_REASON"),
    ],
)
def test_non_text_payload_values_are_client_errors(client, users, pending_timesheet, path, body, code):
    login(client, users["client"])

    resp = client.post(f"/api/timesheets/{pending_timesheet.timesheet_id}/{path}", json=body)

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == code


def test_non_text_document_ref_is_a_client_error(client, users, pending_timesheet):
    login(client, users["admin"])

    resp = client.post(f"/api/timesheets/{pending_timesheet.timesheet_id}/documents", json={"unsigned_ref": 42})

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_replace_and_conflict_endpoints(client, users, crew):
    login(client, users["admin"])

    replaced = client.post(
        f"/api/assignments/{crew['worker2'].assignment_id}/replace",
        json={"user_id": users["worker3"].user_id, "role_code": "SH"},
    )
    assert replaced.status_code == 200
    assert replaced.get_json()["assignment"]["user_id"] == users["worker3"].user_id

    duplicate = client.post(
        f"/api/assignments/{crew['worker'].assignment_id}/replace",
        json={"user_id": users["worker3"].user_id, "role_code": "SH"},
    )
    assert duplicate.status_code == 400

    body = client.get(f"/api/shifts/{SHIFT_ID}/conflicts?user_id={users['worker3'].user_id}").get_json()
    assert body == {"has_conflicts": False, "conflicts": []}

    assert client.get(f"/api/shifts/{SHIFT_ID}/conflicts?user_id=abc").status_code == 400
