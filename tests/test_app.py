import io

import pytest
from openpyxl import load_workbook
from PIL import Image

from cleanscan.modules.errors import ReadError, WriteError


def location_of(response):
    return response.headers["Location"]


# —— Authentication ——
def test_protected_route_redirects_to_login(client):
    response = client.get("/dashboard")
    assert response.status_code == 302
    assert location_of(response).endswith("/login")


def test_stale_session_redirects_to_login(client, login):
    login({"id": 999})
    response = client.get("/admin/reports")
    assert response.status_code == 302
    assert location_of(response).endswith("/login")


def test_login_by_username_starts_session(client, make_user):
    make_user(role="staff", email="sam@example.com", username="sam", password="pa55word")

    response = client.post("/login", data={"identifier": "sam", "password": "pa55word"})
    assert response.status_code == 302
    assert location_of(response).endswith("/dashboard")

    dashboard = client.get("/dashboard").get_json()
    assert dashboard["data"]["view"]["view"] == "staff_dashboard"


def test_login_failures(client, make_user):
    make_user(email="sam@example.com", password="pa55word")

    assert client.post("/login", data={"identifier": "", "password": ""}).status_code == 400
    assert client.post("/login", json={"email": "sam@example.com", "password": "nope"}).status_code == 401


def test_logout_clears_session(client, make_user, login):
    login(make_user(role="admin"))
    client.get("/logout")
    assert client.get("/dashboard").status_code == 302


# —— Dashboard routing ——
@pytest.mark.parametrize("role, actions", [
    ("admin", ["manage_users", "manage_rooms", "view_reports", "generate_qr_sheet"]),
    ("staff", ["scan_qr"]),
    ("client", ["view_history", "submit_report"]),
])
def test_dashboard_per_role(client, make_user, login, role, actions):
    login(make_user(role=role))

    response = client.get("/dashboard")
    body = response.get_json()

    assert response.status_code == 200
    assert body["data"]["view"]["view"] == f"{role}_dashboard"
    assert [a["name"] for a in body["data"]["view"]["actions"]] == actions


def test_dashboard_denies_unknown_role(client, make_user, login):
    login(make_user(role="manager"))

    response = client.get("/dashboard")

    assert response.status_code == 403
    assert response.get_json()["data"]["view"]["actions"] == []


def test_admin_pages_bounce_other_roles(client, make_user, login):
    login(make_user(role="staff"))
    response = client.get("/admin/users")
    assert response.status_code == 302
    assert location_of(response).endswith("/dashboard")


# —— Staff check-in ——
def test_staff_scan_and_check_in(client, managers, make_room, make_user, login):
    room = make_room("305", building_name="Science Hall")
    login(make_user(role="staff", email="sam@example.com"))

    page = client.get(f"/room/{room['id']}").get_json()
    assert page["data"]["room"]["building_name"] == "Science Hall"
    assert page["data"]["staff"] == "sam@example.com"

    response = client.post(page["data"]["action"])
    assert response.status_code == 201
    assert response.get_json()["data"]["room_id"] == room["id"]
    assert len(managers["cleaning"].get_room_history(room["id"])) == 1


def test_client_cannot_check_in(client, db_manager, make_room, make_user, login):
    room = make_room()
    login(make_user(role="client", assigned_room_id=room["id"]))

    response = client.post(f"/room/{room['id']}/clean")

    assert response.status_code == 302
    assert location_of(response).endswith("/dashboard")
    assert db_manager.count("cleaning_logs") == 0


def test_demoted_staff_is_refused_mid_session(client, db_manager, make_room, make_user, login):
    room = make_room()
    staff = make_user(role="staff")
    login(staff)
    db_manager.update("users", {"role": "client"}, {"id": staff["id"]})

    response = client.post(f"/room/{room['id']}/clean")

    assert response.status_code == 302
    assert db_manager.count("cleaning_logs") == 0


@pytest.mark.parametrize("room_id", ["9999", "not-a-room"])
def test_check_in_for_missing_room(client, db_manager, make_user, login, room_id):
    login(make_user(role="staff"))

    assert client.get(f"/room/{room_id}").status_code == 404
    assert client.post(f"/room/{room_id}/clean").status_code == 404
    assert db_manager.count("cleaning_logs") == 0


# —— Client views ——
def test_client_history_shows_assigned_room(client, managers, make_room, make_user, login):
    room = make_room("12")
    other = make_room("13")
    staff = make_user(role="staff")
    managers["cleaning"].record_cleaning(room["id"], staff["id"])
    managers["cleaning"].record_cleaning(other["id"], staff["id"])
    login(make_user(role="client", assigned_room_id=room["id"]))

    data = client.get("/client/history").get_json()["data"]

    assert data["room"]["room_number"] == "12"
    assert len(data["history"]) == 1
    assert data["history"][0]["staff_email"] == staff["email"]


def test_client_without_room_has_empty_history(client, make_user, login):
    login(make_user(role="client"))

    body = client.get("/client/history").get_json()

    assert body["data"] == {"room": None, "history": []}
    assert "No room" in body["message"]


def test_client_report_submission(client, db_manager, make_room, make_user, login):
    room = make_room()
    login(make_user(role="client", assigned_room_id=room["id"]))

    blank = client.post("/client/report", data={"description": "   "})
    assert blank.status_code == 400
    assert db_manager.count("problem_reports") == 0

    response = client.post("/client/report", json={"description": "Carpet stain near desk"})
    assert response.status_code == 201
    assert response.get_json()["data"]["status"] == "open"
    assert db_manager.count("problem_reports") == 1


def test_client_report_requires_assigned_room(client, db_manager, make_user, login):
    login(make_user(role="client"))

    response = client.post("/client/report", data={"description": "Dusty shelves"})

    assert response.status_code == 400
    assert db_manager.count("problem_reports") == 0


def test_staff_resolves_report(client, managers, make_room, make_user, login):
    room = make_room()
    reporter = make_user(role="client", assigned_room_id=room["id"])
    report = managers["problems"].submit_report(room["id"], reporter["id"], "Leaking tap")
    login(make_user(role="staff"))

    response = client.post(f"/reports/{report.id}/resolve")

    assert response.status_code == 200
    assert response.get_json()["data"]["status"] == "resolved"
    assert client.post("/reports/999/resolve").status_code == 404


# —— Admin reports ——
def test_admin_reports_summary_and_filter(client, managers, make_room, make_user, login):
    room = make_room()
    staff = make_user(role="staff")
    managers["cleaning"].record_cleaning(room["id"], staff["id"])
    login(make_user(role="admin"))

    data = client.get("/admin/reports?filter=today").get_json()["data"]

    assert data["filter"] == "today"
    assert data["summary"] == {"total_cleanings": 1, "problem_reports": 0, "resolved_reports": 0}
    assert data["cleaning_logs"][0]["Room"] == "101"
    assert data["cleaning_logs"][0]["Staff"] == staff["email"]


def test_admin_reports_rejects_unknown_filter(client, make_user, login):
    login(make_user(role="admin"))
    assert client.get("/admin/reports?filter=decade").status_code == 400


def test_export_downloads_workbook(client, managers, make_room, make_user, login):
    room = make_room()
    staff = make_user(role="staff")
    managers["cleaning"].record_cleaning(room["id"], staff["id"])
    login(make_user(role="admin"))

    response = client.get("/admin/reports/export")

    assert response.status_code == 200
    assert response.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert "cleaning-reports-" in response.headers["Content-Disposition"]
    workbook = load_workbook(io.BytesIO(response.data))
    assert workbook.sheetnames == ["Cleaning Logs", "Problem Reports"]
    assert workbook["Cleaning Logs"].max_row == 2


# —— QR codes ——
def test_qr_sheet_without_rooms(client, make_user, login):
    login(make_user(role="admin"))

    response = client.get("/admin/qr-codes/sheet")
    body = response.get_json()

    assert response.status_code == 404
    assert body["success"] is False
    assert body["message"] == "There are no rooms to print"


def test_qr_sheet_download(client, make_room, make_user, login):
    for number in ("101", "102", "103"):
        make_room(number)
    login(make_user(role="admin"))

    response = client.get("/admin/qr-codes/sheet")

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")


def test_qr_page_previews(client, make_location, make_room, make_user, login):
    location = make_location("Library")
    for number in range(1, 15):
        make_room(str(number), location_id=location["id"])
    login(make_user(role="admin"))

    data = client.get("/admin/qr-codes").get_json()["data"]

    assert data["room_count"] == 14
    assert data["building_count"] == 1
    assert data["page_count"] == 2
    assert len(data["previews"]) == 12
    assert data["remaining"] == 2
    assert data["previews"][0]["qr_code"].startswith("data:image/png;base64,")


def test_single_room_qr_png(client, make_room, make_user, login):
    room = make_room()
    login(make_user(role="admin"))

    response = client.get(f"/admin/qr-codes/{room['id']}.png")

    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert Image.open(io.BytesIO(response.data)).size == (200, 200)
    assert client.get("/admin/qr-codes/404.png").status_code == 404


# —— Admin management ——
def test_admin_creates_client_with_room(client, make_room, make_user, login):
    room = make_room("7")
    login(make_user(role="admin"))

    response = client.post("/admin/users", json={
        "email": "new.client@example.com",
        "password": "secret123",
        "role": "client",
        "assigned_room_id": room["id"],
    })

    assert response.status_code == 201
    assert response.get_json()["data"]["room_number"] == "7"
    emails = [u["email"] for u in client.get("/admin/users").get_json()["data"]]
    assert "new.client@example.com" in emails


def test_admin_user_validation(client, make_user, login):
    login(make_user(role="admin"))

    assert client.post("/admin/users", json={"email": "bad", "password": "x"}).status_code == 400
    assert client.post("/admin/users", json={
        "email": "ok@example.com", "password": "x", "role": "superuser"
    }).status_code == 400


def test_promoting_client_clears_room(client, make_room, make_user, login):
    room = make_room()
    user = make_user(role="client", assigned_room_id=room["id"])
    login(make_user(role="admin"))

    response = client.post(f"/admin/users/{user['id']}", json={"role": "staff"})

    data = response.get_json()["data"]
    assert data["role"] == "staff"
    assert data["assigned_room_id"] is None


def test_admin_creates_location_and_room(client, make_user, login):
    login(make_user(role="admin"))

    location = client.post("/admin/locations", json={"building_name": "Annex"}).get_json()["data"]
    response = client.post("/admin/rooms", json={"room_number": "A1", "location_id": location["id"]})

    assert response.status_code == 201
    assert response.get_json()["data"]["building_name"] == "Annex"
    assert client.post("/admin/rooms", json={"room_number": "A2", "location_id": 999}).status_code == 404
    assert [r["room_number"] for r in client.get("/admin/rooms").get_json()["data"]] == ["A1"]


# —— Malformed request bodies ——
@pytest.mark.parametrize("body", [
    {"description": 5},
    {"description": ["Dusty shelves"]},
    ["Dusty shelves"],
    "Dusty shelves",
])
def test_client_report_rejects_malformed_body(client, db_manager, make_room, make_user, login, body):
    room = make_room()
    login(make_user(role="client", assigned_room_id=room["id"]))

    response = client.post("/client/report", json=body)

    assert response.status_code == 400
    assert response.get_json()["error_type"] == "validation_error"
    assert db_manager.count("problem_reports") == 0


@pytest.mark.parametrize("body", [{"role": 5}, {"role": ["staff"]}, {"assigned_room_id": ["1"]}])
def test_update_user_rejects_malformed_fields(client, make_user, login, body):
    user = make_user(role="client")
    login(make_user(role="admin"))

    response = client.post(f"/admin/users/{user['id']}", json=body)

    assert response.status_code == 400
    assert response.get_json()["error_type"] == "validation_error"


@pytest.mark.parametrize("body", [
    {"email": 5, "password": "secret123"},
    {"email": "new@example.com", "password": 123},
    {"email": "new@example.com", "password": "secret123", "role": 5},
    [{"email": "new@example.com", "password": "secret123"}],
])
def test_create_user_rejects_malformed_fields(client, db_manager, make_user, login, body):
    login(make_user(role="admin"))
    before = db_manager.count("users")

    response = client.post("/admin/users", json=body)

    assert response.status_code == 400
    assert response.get_json()["error_type"] == "validation_error"
    assert db_manager.count("users") == before


def test_create_user_ignores_non_text_name_fields(client, make_user, login):
    login(make_user(role="admin"))

    response = client.post("/admin/users", json={
        "email": "new@example.com", "password": "secret123", "username": ["sam"], "name": 7,
    })

    assert response.status_code == 201
    assert response.get_json()["data"]["username"] is None
    assert response.get_json()["data"]["name"] is None


@pytest.mark.parametrize("body", [{"building_name": 5}, ["Annex"]])
def test_create_location_rejects_malformed_body(client, make_user, login, body):
    login(make_user(role="admin"))
    assert client.post("/admin/locations", json=body).status_code == 400


@pytest.mark.parametrize("body", [
    {"identifier": 5, "password": "pa55word"},
    {"identifier": "sam", "password": ["pa55word"]},
    ["sam", "pa55word"],
])
def test_login_rejects_malformed_body(client, make_user, body):
    make_user(role="staff", username="sam", password="pa55word")

    response = client.post("/login", json=body)

    assert response.status_code == 400


# —— Store failures ——
def test_store_write_failure_returns_generic_error(client, db_manager, make_room, make_user, login, monkeypatch):
    room = make_room()
    login(make_user(role="staff"))
    calls = []

    def failing_insert(table, values):
        calls.append(table)
        raise WriteError("disk I/O error")

    monkeypatch.setattr(db_manager, "insert", failing_insert)

    response = client.post(f"/room/{room['id']}/clean")
    body = response.get_json()

    assert response.status_code == 500
    assert body["message"] == "An error occurred. Please try again."
    assert body["error_type"] == "write_error"
    assert calls == ["cleaning_logs"]
    monkeypatch.undo()
    assert db_manager.count("cleaning_logs") == 0


def test_store_read_failure_returns_generic_error(client, managers, make_user, login, monkeypatch):
    login(make_user(role="admin"))

    def failing_read():
        raise ReadError("database is locked")

    monkeypatch.setattr(managers["cleaning"], "get_all_cleaning_logs", failing_read)

    response = client.get("/admin/reports")

    assert response.status_code == 500
    assert response.get_json()["message"] == "An error occurred. Please try again."
    assert "database is locked" not in response.get_data(as_text=True)
