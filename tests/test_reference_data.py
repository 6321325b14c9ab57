import csv
import io

import pandas as pd
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client

from academics.models import ExamEvent
from conftest import api, next_weekday
from staff.models import Role, Staff
from students.models import Classroom, Student, Subject


def upload(client, import_type, content):
    return client.post(
        f"/api/admin/bulk-import/{import_type}",
        {"file": SimpleUploadedFile("data.csv", content.encode(), content_type="text/csv")},
    )


def test_classes_are_public_but_creation_is_admin_only(db, teacher_client, admin_client):
    Classroom.objects.create(name="A9 [AET]/1")

    listing = Client().get("/api/classes").json()
    assert listing == [{"id": listing[0]["id"], "name": "A9 [AET]/1", "gradeLevel": "G9_10"}]

    assert api(Client(), "post", "/api/classes", {"name": "A11 [ADV]/1"}).status_code == 401
    assert api(teacher_client, "post", "/api/classes", {"name": "A11 [ADV]/1"}).status_code == 403

    response = api(admin_client, "post", "/api/classes", {"name": "A11 [ADV]/1"})
    assert response.status_code == 201
    assert response.json()["gradeLevel"] == "G11_12"


def test_duplicate_class_name_is_rejected(admin_client, classroom):
    response = api(admin_client, "post", "/api/classes", {"name": classroom.name})

    assert response.status_code == 400
    assert response.json()["message"] == "name: A class with this name already exists"


def test_class_with_exams_cannot_be_deleted(admin_client, admin_user, classroom, subject):
    ExamEvent.objects.create(
        title="Algebra quiz",
        exam_type=ExamEvent.Type.QUIZ,
        date=next_weekday(0),
        period=1,
        classroom=classroom,
        subject=subject,
        created_by=admin_user,
    )

    response = admin_client.delete(f"/api/classes/{classroom.id}")

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Cannot delete class that has scheduled exams. Remove the exams first."
    )


def test_class_with_students_cannot_be_deleted(admin_client, classroom, students):
    response = admin_client.delete(f"/api/classes/{classroom.id}")

    assert response.status_code == 400
    assert Classroom.objects.filter(pk=classroom.id).exists()


def test_subject_with_exams_cannot_be_deleted(admin_client, admin_user, classroom, subject):
    ExamEvent.objects.create(
        title="Algebra homework",
        exam_type=ExamEvent.Type.HOMEWORK,
        date=next_weekday(1),
        period=2,
        classroom=classroom,
        subject=subject,
        created_by=admin_user,
    )

    response = admin_client.delete(f"/api/subjects/{subject.id}")

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Cannot delete subject that has scheduled exams. Remove the exams first."
    )
    assert Subject.objects.filter(pk=subject.id).exists()


def test_subject_code_is_uppercased_and_unique(admin_client, subject):
    response = api(admin_client, "post", "/api/subjects", {"name": "Physics", "code": "phys101"})
    assert response.status_code == 201
    assert response.json()["code"] == "PHYS101"

    response = api(admin_client, "post", "/api/subjects", {"name": "Maths", "code": "math101"})
    assert response.status_code == 400
    assert response.json()["message"] == "code: A subject with this code already exists"


def test_students_filtered_by_class(teacher_client, students, senior_classroom):
    Student.objects.create(name="Omar", student_id="S2001", classroom=senior_classroom)

    response = teacher_client.get(f"/api/students?classId={students[0].classroom_id}")

    assert response.status_code == 200
    assert {s["studentId"] for s in response.json()} == {"S1001", "S1002"}


def test_create_student_requires_existing_class(admin_client, classroom):
    response = api(
        admin_client,
        "post",
        "/api/students",
        {"name": "New Kid", "studentId": "S9000", "classId": 9999},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "classroom: Class not found"

    response = api(
        admin_client,
        "post",
        "/api/students",
        {"name": "New Kid", "studentId": "S9000", "classId": classroom.id},
    )
    assert response.status_code == 201
    assert response.json()["className"] == classroom.name


def test_bulk_import_staff_collects_row_errors(admin_client, department):
    content = (
        "Name, Username, Email, Role, Department\n"
        "Jane Doe, JDoe, jdoe@school.test, teacher, Mathematics\n"
        "Bad Role, brole, brole@school.test, janitor,\n"
        "No Dept, nodept, nodept@school.test, COORDINATOR, HISTORY\n"
        "short,row\n"
    )

    response = upload(admin_client, "staff", content)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] == 1
    assert body["failed"] == 2
    assert body["errors"][0].startswith("Row 3: Invalid role 'janitor'")
    assert body["errors"][1] == "Row 4: department: Invalid department 'HISTORY'"
    staff = Staff.objects.get(user__username="jdoe")
    assert staff.role == Role.TEACHER
    assert staff.department == department


def test_bulk_import_students_needs_known_class(admin_client, classroom):
    content = (
        "student_id,name,class_name\n"
        f"S1,Ahmed Ali,{classroom.name}\n"
        "S2,Sara Khan,Missing Class\n"
    )

    body = upload(admin_client, "students", content).json()

    assert body == {
        "success": 1,
        "failed": 1,
        "errors": ["Row 3: Class 'Missing Class' not found"],
    }
    assert Student.objects.get().classroom == classroom


def test_bulk_import_subjects_and_classes(admin_client):
    assert upload(admin_client, "subjects", "code,name\nbio1,Biology\n").json()["success"] == 1
    assert Subject.objects.get().code == "BIO1"

    assert upload(admin_client, "classes", "name\nA9 [AET]/2\n").json()["success"] == 1
    assert Classroom.objects.filter(name="A9 [AET]/2").exists()


def test_bulk_import_skips_rows_with_extra_fields(admin_client):
    content = "code,name\nBIO1,Biology,extra\nCHEM1,Chemistry\n"

    body = upload(admin_client, "subjects", content).json()

    assert body == {"success": 1, "failed": 0, "errors": []}
    assert list(Subject.objects.values_list("code", "name")) == [("CHEM1", "Chemistry")]


def test_bulk_import_row_numbers_follow_file_lines(admin_client):
    content = "code,name\nshort\nBIO1,Biology\n,No code\n"

    body = upload(admin_client, "subjects", content).json()

    assert body["success"] == 1
    assert body["errors"] == ["Row 4: Missing required fields (code, name)"]


def test_bulk_import_with_only_short_rows_is_empty(admin_client):
    response = upload(admin_client, "staff", "name,username,email,role\nshort,row\n")

    assert response.status_code == 400
    assert response.json()["message"] == "CSV file is empty or invalid format"
    assert Staff.objects.count() == 1


def test_bulk_import_rejects_empty_and_missing_files(admin_client):
    assert admin_client.post("/api/admin/bulk-import/staff").json()["message"] == "No file uploaded"

    response = upload(admin_client, "classes", "name\n")
    assert response.status_code == 400
    assert response.json()["message"] == "CSV file is empty or invalid format"

    assert upload(admin_client, "teachers", "name\nx\n").status_code == 404


def test_bulk_import_template_download(admin_client):
    response = admin_client.get("/api/admin/bulk-import/students/template")

    assert response.status_code == 200
    assert response["Content-Type"] == "text/csv"
    rows = list(csv.reader(io.StringIO(response.content.decode())))
    assert rows[0] == ["student_id", "name", "class_name"]
    assert len(rows) == 3


def test_bulk_import_accepts_excel_workbooks(admin_client):
    workbook = io.BytesIO()
    pd.DataFrame({"Code": ["CHEM101", ""], "Name": ["Chemistry", "No code"]}).to_excel(
        workbook, index=False, engine="openpyxl"
    )
    upload_file = SimpleUploadedFile(
        "subjects.xlsx",
        workbook.getvalue(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

    body = admin_client.post("/api/admin/bulk-import/subjects", {"file": upload_file}).json()

    assert body["success"] == 1
    assert body["errors"] == ["Row 3: Missing required fields (code, name)"]
    assert Subject.objects.get().code == "CHEM101"


def test_bulk_import_excel_template_download(admin_client):
    response = admin_client.get("/api/admin/bulk-import/classes/template?format=excel")

    assert response.status_code == 200
    assert response["Content-Disposition"] == 'attachment; filename="classes_template.xlsx"'
    frame = pd.read_excel(io.BytesIO(response.content), engine="openpyxl")
    assert list(frame.columns) == ["name"]
