from datetime import date

from django.core import mail

from academics.models import ExamEvent
from conftest import api, next_weekday
from planning.models import ApprovalStatus, LearningSummary, LearningSupport, SapetAttendance
from planning.term_utils import get_week_dates, grade_from_class_name

MONDAY, TUESDAY, WEDNESDAY, FRIDAY, SUNDAY = 0, 1, 2, 4, 6


def summary_payload(classroom, subject, quiz_date=None, quiz_time=None, week=3):
    payload = {
        "term": "TERM_1",
        "weekNumber": week,
        "classId": classroom.id,
        "subjectId": subject.id,
        "upcomingTopics": "Quadratic equations",
    }
    if quiz_date:
        payload["quizDate"] = quiz_date.isoformat()
        payload["quizTime"] = quiz_time
    return payload


def support_payload(classroom, subject, sapet_date, sapet_time="14:30", **extra):
    payload = {
        "term": "TERM_2",
        "weekNumber": 2,
        "classId": classroom.id,
        "subjectId": subject.id,
        "sessionType": "Online",
        "teamsLink": "https://teams.microsoft.com/l/meetup-join/abc",
        "sapetDate": sapet_date.isoformat(),
        "sapetTime": sapet_time,
    }
    payload.update(extra)
    return payload


def test_week_dates_follow_the_academic_year():
    assert get_week_dates("TERM_1", 1, today=date(2025, 10, 5)) == (date(2025, 9, 1), date(2025, 9, 7))
    assert get_week_dates("TERM_2", 2, today=date(2025, 10, 5)) == (date(2026, 1, 8), date(2026, 1, 14))
    assert get_week_dates("TERM_1", 1, today=date(2026, 3, 1)) == (date(2025, 9, 1), date(2025, 9, 7))


def test_week_dates_default_to_local_date(monkeypatch):
    monkeypatch.setattr("django.utils.timezone.localdate", lambda *args, **kwargs: date(2026, 3, 1))

    assert get_week_dates("TERM_1", 1) == (date(2025, 9, 1), date(2025, 9, 7))
    assert get_week_dates("TERM_3", 1)[0] == date(2026, 5, 1)


def test_grade_from_class_name():
    assert grade_from_class_name("A12 [ADV]/2") == "12"
    assert grade_from_class_name("Lab") == ""


def test_create_summary_as_draft(teacher_client, teacher, classroom, subject):
    quiz_date = next_weekday(TUESDAY)
    response = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, quiz_date, 2),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == ApprovalStatus.DRAFT
    assert body["teacherId"] == teacher.id
    assert body["grade"] == "10"
    assert body["quizDay"] == "Tuesday"
    assert body["quizTime"] == 2
    assert body["weekStartDate"] == get_week_dates("TERM_1", 3)[0].isoformat()


def test_one_summary_per_class_subject_week(teacher_client, classroom, subject):
    api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject))

    response = api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject))

    assert response.status_code == 400
    assert response.json()["message"] == (
        "A learning summary already exists for this class and subject in Week 3"
    )


def test_one_planned_quiz_per_class_per_day(teacher_client, other_teacher_client, classroom, subject):
    quiz_date = next_weekday(WEDNESDAY)
    api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject, quiz_date, 1))

    response = api(
        other_teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, quiz_date, 3, week=4),
    )

    assert response.status_code == 400
    assert "Each class can only have one quiz per day." in response.json()["message"]


def test_teacher_cannot_hold_two_quizzes_in_one_period(teacher_client, classroom, senior_classroom, subject):
    quiz_date = next_weekday(WEDNESDAY)
    api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject, quiz_date, 2))

    response = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(senior_classroom, subject, quiz_date, 2),
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("You already have a quiz scheduled for Period 2")


def test_quiz_period_limits_apply(teacher_client, classroom, subject):
    response = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, next_weekday(FRIDAY), 6),
    )

    assert response.json()["message"] == "Invalid period. Friday has max 4 periods."


def test_submit_books_quiz_and_emails_teacher(teacher_client, teacher, classroom, subject):
    quiz_date = next_weekday(TUESDAY)
    entry_id = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, quiz_date, 2),
    ).json()["id"]

    response = teacher_client.post(f"/api/learning-summaries/{entry_id}/submit")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == ApprovalStatus.APPROVED
    assert body["warning"] is None
    assert body["emailSent"] is True

    exam = ExamEvent.objects.get(pk=body["linkedExamId"])
    assert exam.title == "Quiz - MATH101"
    assert exam.exam_type == ExamEvent.Type.QUIZ
    assert exam.date == quiz_date
    assert exam.period == 2
    assert exam.created_by == teacher

    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["teacher_one@school.test"]
    assert "Booking Confirmation" in mail.outbox[0].subject


def test_submit_warns_when_master_schedule_is_taken(teacher_client, admin_user, classroom, subject):
    quiz_date = next_weekday(TUESDAY)
    ExamEvent.objects.create(
        title="Existing quiz",
        exam_type=ExamEvent.Type.QUIZ,
        date=quiz_date,
        period=5,
        classroom=classroom,
        subject=subject,
        created_by=admin_user,
    )
    entry_id = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, quiz_date, 2),
    ).json()["id"]

    body = teacher_client.post(f"/api/learning-summaries/{entry_id}/submit").json()

    assert body["status"] == ApprovalStatus.APPROVED
    assert body["linkedExamId"] is None
    assert "Only one quiz is allowed per class per day" in body["warning"]


def test_only_owner_edits_and_non_approver_edit_reverts_approval(
    teacher_client, other_teacher_client, classroom, subject
):
    entry_id = api(
        teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject)
    ).json()["id"]
    teacher_client.post(f"/api/learning-summaries/{entry_id}/submit")

    url = f"/api/learning-summaries/{entry_id}"
    assert api(other_teacher_client, "patch", url, {"upcomingTopics": "x"}).status_code == 403

    response = api(teacher_client, "patch", url, {"upcomingTopics": "Factorising"})
    assert response.status_code == 200
    assert response.json()["upcomingTopics"] == "Factorising"
    assert response.json()["status"] == ApprovalStatus.PENDING_APPROVAL


def test_lead_teacher_reviews_own_department_only(
    teacher_client, other_teacher_client, lead_client, classroom, senior_classroom, subject
):
    own = api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject)).json()
    foreign = api(
        other_teacher_client, "post", "/api/learning-summaries", summary_payload(senior_classroom, subject)
    ).json()

    response = api(lead_client, "post", f"/api/learning-summaries/{own['id']}/approve", {"comments": "Good"})
    assert response.status_code == 200
    assert response.json()["status"] == ApprovalStatus.APPROVED
    assert response.json()["approvalComments"] == "Good"

    response = lead_client.post(f"/api/learning-summaries/{foreign['id']}/approve")
    assert response.status_code == 403
    assert response.json()["message"] == (
        "Lead Teachers can only review entries from their own department"
    )

    assert teacher_client.post(f"/api/learning-summaries/{own['id']}/reject").status_code == 403


def test_reject_cancels_linked_quiz(teacher_client, admin_client, classroom, subject):
    entry_id = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, next_weekday(TUESDAY), 3),
    ).json()["id"]
    exam_id = teacher_client.post(f"/api/learning-summaries/{entry_id}/submit").json()["linkedExamId"]

    response = api(admin_client, "post", f"/api/learning-summaries/{entry_id}/reject", {"comments": "Clash"})

    assert response.json()["status"] == ApprovalStatus.REJECTED
    assert response.json()["linkedExamId"] is None
    assert ExamEvent.objects.get(pk=exam_id).status == ExamEvent.Status.CANCELLED


def test_delete_summary_removes_linked_quiz(teacher_client, classroom, subject):
    entry_id = api(
        teacher_client,
        "post",
        "/api/learning-summaries",
        summary_payload(classroom, subject, next_weekday(TUESDAY), 3),
    ).json()["id"]
    teacher_client.post(f"/api/learning-summaries/{entry_id}/submit")

    assert teacher_client.delete(f"/api/learning-summaries/{entry_id}").status_code == 200
    assert not LearningSummary.objects.exists()
    assert not ExamEvent.objects.exists()


def test_summaries_list_filters_by_week(teacher_client, classroom, subject):
    api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject, week=3))
    api(teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject, week=4))

    response = teacher_client.get("/api/learning-summaries?term=TERM_1&weekNumber=4")

    assert [s["weekNumber"] for s in response.json()] == [4]


def test_email_summaries_report(admin_client, teacher_client, classroom, subject):
    entry_id = api(
        teacher_client, "post", "/api/learning-summaries", summary_payload(classroom, subject)
    ).json()["id"]
    api(admin_client, "post", f"/api/learning-summaries/{entry_id}/approve")
    url = "/api/learning-summaries/email"

    assert api(teacher_client, "post", url, {"emails": ["a@b.test"]}).status_code == 403

    response = api(admin_client, "post", url, {"emails": [], "term": "TERM_1", "weekNumber": 3})
    assert response.json()["message"] == "At least one email address is required"

    response = api(admin_client, "post", url, {"emails": ["nope"], "term": "TERM_1", "weekNumber": 3})
    assert response.json()["message"] == "Invalid email addresses: nope"

    response = api(
        admin_client,
        "post",
        url,
        {"emails": ["head@school.test", "vp@school.test"], "term": "TERM_1", "weekNumber": 3},
    )
    assert response.status_code == 200
    message = mail.outbox[-1]
    assert message.to == ["head@school.test", "vp@school.test"]
    assert message.subject == "Learning Summaries Report - Term 1 Week 3"
    assert "Quadratic equations" in message.alternatives[0][0]


def test_support_session_rules(teacher_client, classroom, senior_classroom, subject):
    day = next_weekday(MONDAY)
    bad_link = support_payload(classroom, subject, day, teamsLink="teams.example/abc")
    response = api(teacher_client, "post", "/api/learning-support", bad_link)
    assert response.json()["message"] == "teams_link: Invalid Teams link URL"

    response = api(teacher_client, "post", "/api/learning-support", support_payload(classroom, subject, day))
    assert response.status_code == 201
    assert response.json()["sapetDay"] == "Monday"

    response = api(
        teacher_client, "post", "/api/learning-support", support_payload(classroom, subject, day, "15:30")
    )
    assert response.json()["message"].startswith("This class already has a SAPET session scheduled")

    response = api(
        teacher_client, "post", "/api/learning-support", support_payload(senior_classroom, subject, day)
    )
    assert response.json()["message"].startswith("You already have a SAPET session scheduled")


def test_support_attendance_roundtrip(teacher_client, other_teacher_client, principal_client, classroom, subject, students):
    support_id = api(
        teacher_client,
        "post",
        "/api/learning-support",
        support_payload(classroom, subject, next_weekday(MONDAY)),
    ).json()["id"]
    url = f"/api/learning-support/{support_id}/attendance"

    roster = teacher_client.get(f"/api/learning-support/{support_id}/students").json()
    assert {s["studentId"] for s in roster} == {"S1001", "S1002"}

    marks = {"attendance": [
        {"studentId": students[0].id, "status": "PRESENT"},
        {"studentId": students[1].id, "status": "ABSENT"},
    ]}
    assert api(teacher_client, "post", url, marks).status_code == 200

    replaced = {"attendance": [{"studentId": students[1].id, "status": "PRESENT"}]}
    body = api(teacher_client, "post", url, replaced).json()
    assert [(r["studentName"], r["status"]) for r in body] == [("Sara Khan", "PRESENT")]
    assert SapetAttendance.objects.count() == 1

    assert other_teacher_client.get(url).status_code == 403
    assert len(principal_client.get(url).json()) == 1

    invalid = {"attendance": [{"studentId": students[0].id, "status": "LATE"}]}
    assert api(teacher_client, "post", url, invalid).json()["message"] == "Invalid attendance status 'LATE'"


def test_email_support_timetable(admin_client, teacher_client, classroom, subject):
    support_id = api(
        teacher_client,
        "post",
        "/api/learning-support",
        support_payload(classroom, subject, next_weekday(MONDAY), location="Room 12"),
    ).json()["id"]
    teacher_client.post(f"/api/learning-support/{support_id}/submit")
    assert LearningSupport.objects.get().status == ApprovalStatus.APPROVED

    response = api(
        admin_client,
        "post",
        "/api/learning-support/email-timetable",
        {"emails": ["staff@school.test"], "term": "TERM_2", "weekNumber": 2},
    )

    assert response.status_code == 200
    assert mail.outbox[-1].subject == "SAPET Timetable - Term 2 Week 2"
    assert "Room 12" in mail.outbox[-1].alternatives[0][0]
