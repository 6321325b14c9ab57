import json
from datetime import timedelta

import pytest
from django.test import Client
from django.utils import timezone

from staff.models import Department, Role, create_staff_account
from students.models import Classroom, Student, Subject

PASSWORD = "secret123"


def next_weekday(weekday, weeks_ahead=1):
    """A future date (at least a week out) falling on the given weekday, Monday=0"""
    today = timezone.localdate()
    return today + timedelta(days=7 * weeks_ahead + (weekday - today.weekday()) % 7)


def api(client, method, url, payload=None):
    """Send a JSON request through the Django test client"""
    return getattr(client, method)(
        url,
        data=json.dumps(payload or {}),
        content_type="application/json",
    )


@pytest.fixture
def department(db):
    return Department.objects.create(name="MATHEMATICS", display_name="Mathematics")


@pytest.fixture
def other_department(db):
    return Department.objects.create(name="SCIENCE", display_name="Science")


def make_staff(username, role, department=None):
    return create_staff_account(
        username.replace("_", " ").title(),
        username,
        f"{username}@school.test",
        role=role,
        department=department,
        password=PASSWORD,
    ).user


@pytest.fixture
def admin_user(db):
    return make_staff("admin_one", Role.ADMIN)


@pytest.fixture
def teacher(department):
    return make_staff("teacher_one", Role.TEACHER, department)


@pytest.fixture
def other_teacher(other_department):
    return make_staff("teacher_two", Role.TEACHER, other_department)


@pytest.fixture
def lead_teacher(department):
    return make_staff("lead_one", Role.LEAD_TEACHER, department)


@pytest.fixture
def principal(db):
    return make_staff("principal_one", Role.PRINCIPAL)


def logged_in(user):
    client = Client()
    client.force_login(user)
    return client


@pytest.fixture
def admin_client(admin_user):
    return logged_in(admin_user)


@pytest.fixture
def teacher_client(teacher):
    return logged_in(teacher)


@pytest.fixture
def other_teacher_client(other_teacher):
    return logged_in(other_teacher)


@pytest.fixture
def lead_client(lead_teacher):
    return logged_in(lead_teacher)


@pytest.fixture
def principal_client(principal):
    return logged_in(principal)


@pytest.fixture
def classroom(db):
    return Classroom.objects.create(name="A10 [AMT]/1")


@pytest.fixture
def senior_classroom(db):
    return Classroom.objects.create(name="A12 [ADV]/2")


@pytest.fixture
def subject(db):
    return Subject.objects.create(name="Mathematics", code="MATH101")


@pytest.fixture
def students(classroom):
    return [
        Student.objects.create(name=name, student_id=sid, classroom=classroom)
        for name, sid in (("Ahmed Ali", "S1001"), ("Sara Khan", "S1002"))
    ]


@pytest.fixture
def fake_pdfkit(monkeypatch):
    """Capture pdfkit calls instead of shelling out to wkhtmltopdf"""
    calls = []

    def from_string(html, output_path, options=None, configuration=None, **kwargs):
        calls.append({"html": html, "options": options})
        return b"%PDF-1.4 fake"

    monkeypatch.setattr("pdfkit.from_string", from_string)
    return calls
