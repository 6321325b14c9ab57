import json

from django.test import Client, RequestFactory

from base.models import LoginAudit
from base.views import factory_reset_data, server_error
from conftest import PASSWORD, api
from staff.models import Department, Role, Staff
from students.models import Classroom


def test_login_returns_user_and_records_audit(teacher):
    client = Client()
    response = api(client, "post", "/api/login", {"username": "teacher_one", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "teacher_one"
    assert body["role"] == Role.TEACHER
    assert body["department"] == "MATHEMATICS"

    audit = LoginAudit.objects.get()
    assert audit.success is True
    assert audit.user == teacher
    assert Staff.objects.get(user=teacher).last_accessed_at is not None


def test_login_with_bad_password_is_audited_as_failure(teacher):
    client = Client()
    response = api(client, "post", "/api/login", {"username": "teacher_one", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid username or password"
    audit = LoginAudit.objects.get()
    assert audit.success is False
    assert audit.username == "teacher_one"


def test_failed_login_for_unknown_username_is_not_audited(db):
    response = api(Client(), "post", "/api/login", {"username": "ghost", "password": "x"})

    assert response.status_code == 401
    assert not LoginAudit.objects.exists()


def test_inactive_account_cannot_log_in(teacher):
    teacher.is_active = False
    teacher.save()

    response = api(Client(), "post", "/api/login", {"username": "teacher_one", "password": PASSWORD})

    assert response.status_code == 401
    assert response.json()["message"] == "User account is inactive."


def test_current_user_requires_authentication(db, teacher_client):
    assert Client().get("/api/user").status_code == 401
    assert teacher_client.get("/api/user").json()["username"] == "teacher_one"


def test_change_password_checks_current_password(teacher, teacher_client):
    response = api(
        teacher_client,
        "post",
        "/api/user/change-password",
        {"currentPassword": "wrong", "newPassword": "another1"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"

    response = api(
        teacher_client,
        "post",
        "/api/user/change-password",
        {"currentPassword": PASSWORD, "newPassword": "another1"},
    )
    assert response.status_code == 200
    teacher.refresh_from_db()
    assert teacher.check_password("another1")


def test_login_audit_is_admin_only(admin_client, teacher_client, teacher):
    api(Client(), "post", "/api/login", {"username": "teacher_one", "password": PASSWORD})

    assert teacher_client.get("/api/admin/login-audit").status_code == 403
    entries = admin_client.get("/api/admin/login-audit").json()
    assert {"admin_one", "teacher_one"} <= {e["username"] for e in entries}
    login_times = [e["loginAt"] for e in entries]
    assert login_times == sorted(login_times, reverse=True)
    assert any(e["ipAddress"] == "127.0.0.1" for e in entries)


def test_factory_reset_keeps_admins_and_departments(admin_user, teacher, classroom):
    deleted = factory_reset_data()

    assert deleted["users"] == 1
    assert deleted["classes"] == 1
    assert not Classroom.objects.exists()
    assert Staff.objects.filter(role=Role.ADMIN).count() == 1
    assert Department.objects.filter(name="MATHEMATICS").exists()


def test_factory_reset_endpoint_rejects_non_admins(teacher_client):
    assert teacher_client.post("/api/admin/factory-reset").status_code == 403


def test_every_authenticated_request_stamps_last_access(teacher, teacher_client):
    Staff.objects.filter(user=teacher).update(last_accessed_at=None)

    teacher_client.get("/api/user")

    assert Staff.objects.get(user=teacher).last_accessed_at is not None


def test_anonymous_requests_leave_last_access_alone(teacher):
    Client().get("/api/classes")

    assert Staff.objects.get(user=teacher).last_accessed_at is None


def test_missing_csrf_token_gets_json_403(teacher):
    client = Client(enforce_csrf_checks=True)

    response = api(client, "post", "/api/login", {"username": "teacher_one", "password": PASSWORD})

    assert response.status_code == 403
    assert response["Content-Type"] == "application/json"
    assert response.json()["message"].startswith("CSRF verification failed")


def test_unknown_api_route_gets_json_404(db):
    response = Client().get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"message": "Not found"}


def test_server_error_handler_answers_json():
    response = server_error(RequestFactory().get("/api/exams"))

    assert response.status_code == 500
    assert json.loads(response.content) == {"message": "Internal server error"}
