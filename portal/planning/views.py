import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from academics.forms import ExamEventForm
from academics.models import PERIOD_TAKEN_MESSAGE, ExamEvent
from academics.views import pdf_response
from base.api_utils import (
    api_login_required,
    first_form_error,
    form_data_from_payload,
    json_error,
    read_json,
)
from base.views import (
    ANALYTICS_ROLES,
    APPROVER_ROLES,
    PLANNING_ANALYTICS_ROLES,
    get_user_department,
    get_user_role,
)
from staff.models import Role
from students.models import Student
from .analytics import get_sapet_analytics, get_summary_analytics
from .forms import (
    SUMMARY_FIELD_MAP,
    SUPPORT_FIELD_MAP,
    LearningSummaryForm,
    LearningSupportForm,
)
from .models import ApprovalStatus, LearningSummary, LearningSupport, SapetAttendance, Term
from .notifications import (
    send_booking_notification,
    send_summaries_report,
    send_support_timetable,
)
from .pdf_utils import generate_summaries_pdf, generate_support_pdf

logger = logging.getLogger(__name__)

ENTRY_LABELS = {LearningSummary: "Learning summary", LearningSupport: "Learning support session"}


# ==================== HELPER FUNCTIONS ====================


def serialize_entry(entry) -> Dict[str, Any]:
    teacher = entry.teacher
    department = get_user_department(teacher)
    data = {
        "id": entry.id,
        "term": entry.term,
        "weekNumber": entry.week_number,
        "weekStartDate": entry.week_start_date.isoformat(),
        "weekEndDate": entry.week_end_date.isoformat(),
        "grade": entry.grade,
        "classId": entry.classroom_id,
        "subjectId": entry.subject_id,
        "teacherId": entry.teacher_id,
        "status": entry.status,
        "approvedById": entry.approved_by_id,
        "approvalComments": entry.approval_comments,
        "linkedExamId": entry.linked_exam_id,
        "createdAt": entry.created_at.isoformat(),
        "updatedAt": entry.updated_at.isoformat(),
        "class": {"id": entry.classroom_id, "name": entry.classroom.name},
        "subject": {
            "id": entry.subject_id,
            "name": entry.subject.name,
            "code": entry.subject.code,
        },
        "teacher": {
            "id": teacher.id,
            "name": teacher.get_full_name() or teacher.username,
            "department": department.name if department else None,
        },
    }
    if isinstance(entry, LearningSummary):
        data.update(
            {
                "upcomingTopics": entry.upcoming_topics,
                "quizDay": entry.quiz_day,
                "quizDate": entry.quiz_date.isoformat() if entry.quiz_date else None,
                "quizTime": entry.quiz_period,
            }
        )
    else:
        data.update(
            {
                "sessionType": entry.session_type,
                "teamsLink": entry.teams_link,
                "location": entry.location,
                "sapetDay": entry.sapet_day,
                "sapetDate": entry.sapet_date.isoformat() if entry.sapet_date else None,
                "sapetTime": entry.sapet_time,
            }
        )
    return data


def get_entry(model, entry_id):
    return (
        model.objects.select_related("classroom", "subject", "teacher", "linked_exam")
        .filter(pk=entry_id)
        .first()
    )


def review_error(user, entry) -> Optional[str]:
    """Why user may not approve or reject entry, or None when they may"""
    role = get_user_role(user)
    if role not in APPROVER_ROLES:
        return "Only Admin, Vice Principal, or Lead Teacher can review entries"
    if role == Role.LEAD_TEACHER:
        reviewer_department = get_user_department(user)
        teacher_department = get_user_department(entry.teacher)
        if (
            reviewer_department is None
            or teacher_department is None
            or reviewer_department != teacher_department
        ):
            return "Lead Teachers can only review entries from their own department"
    return None


def book_linked_quiz(summary: LearningSummary) -> Optional[str]:
    """Put the summary's quiz on the master schedule; returns a warning when it cannot be booked"""
    if summary.linked_exam and summary.linked_exam.status == ExamEvent.Status.SCHEDULED:
        return None
    if not summary.quiz_date:
        return None

    form = ExamEventForm(
        {
            "title": f"Quiz - {summary.subject.code}",
            "exam_type": ExamEvent.Type.QUIZ,
            "date": summary.quiz_date,
            "period": summary.quiz_period or 1,
            "classroom": summary.classroom_id,
            "subject": summary.subject_id,
            "notes": (
                f"Auto-created from Learning Summary (Week {summary.week_number}). "
                f"Topics: {summary.upcoming_topics or 'N/A'}"
            ),
        }
    )
    if not form.is_valid():
        warning = f"Quiz was not added to the master schedule: {first_form_error(form)}"
        logger.warning("Summary %s: %s", summary.id, warning)
        return warning

    exam = form.save(commit=False)
    exam.created_by = summary.teacher
    try:
        with transaction.atomic():
            exam.save()
    except IntegrityError:
        warning = f"Quiz was not added to the master schedule: {PERIOD_TAKEN_MESSAGE}"
        logger.warning("Summary %s: %s", summary.id, warning)
        return warning
    summary.linked_exam = exam
    return None


def cancel_linked_exam(entry):
    if entry.linked_exam is not None:
        entry.linked_exam.status = ExamEvent.Status.CANCELLED
        entry.linked_exam.save(update_fields=["status"])
        entry.linked_exam = None


def can_view_session(user, support: LearningSupport) -> bool:
    return support.teacher_id == user.id or get_user_role(user) in ANALYTICS_ROLES


def read_email_request(request):
    """Validate {emails, term, weekNumber}; returns (emails, term, week_number, error_response)"""
    payload, error = read_json(request)
    if error:
        return None, None, None, error

    emails = payload.get("emails")
    if not isinstance(emails, list) or not emails:
        return None, None, None, json_error("At least one email address is required")

    invalid = []
    for email in emails:
        try:
            validate_email(email)
        except ValidationError:
            invalid.append(str(email))
    if invalid:
        return None, None, None, json_error(f"Invalid email addresses: {', '.join(invalid)}")

    term = payload.get("term")
    if term not in Term.values:
        return None, None, None, json_error("Invalid term")
    try:
        week_number = int(payload.get("weekNumber"))
    except (TypeError, ValueError):
        return None, None, None, json_error("Invalid week number")
    return emails, term, week_number, None


# ==================== SHARED HANDLERS ====================


def list_entries(request, model):
    entries = model.objects.select_related("classroom", "subject", "teacher")
    term = request.GET.get("term")
    if term:
        entries = entries.filter(term=term)
    week_number = request.GET.get("weekNumber")
    if week_number:
        if not week_number.isdigit():
            return json_error("Invalid weekNumber")
        entries = entries.filter(week_number=int(week_number))
    return JsonResponse([serialize_entry(e) for e in entries], safe=False)


def create_entry(request, form_class, field_map):
    payload, error = read_json(request)
    if error:
        return error

    form = form_class(form_data_from_payload(payload, field_map), teacher=request.user)
    if not form.is_valid():
        return json_error(first_form_error(form))

    entry = form.save(commit=False)
    entry.teacher = request.user
    entry.status = ApprovalStatus.DRAFT
    entry.save()
    return JsonResponse(serialize_entry(entry), status=201)


def update_entry(request, entry, form_class, field_map):
    user = request.user
    if entry.teacher_id != user.id and review_error(user, entry):
        return json_error("You can only edit your own entries", status=403)

    payload, error = read_json(request)
    if error:
        return error

    form = form_class(
        form_data_from_payload(
            payload, field_map, instance=entry, fields=form_class._meta.fields
        ),
        instance=entry,
    )
    if not form.is_valid():
        return json_error(first_form_error(form))

    with transaction.atomic():
        entry = form.save(commit=False)
        rescheduled = {"quiz_date", "quiz_period", "sapet_date", "classroom"} & set(
            form.changed_data
        )
        if rescheduled and isinstance(entry, LearningSummary):
            cancel_linked_exam(entry)
        if entry.status == ApprovalStatus.APPROVED and get_user_role(user) not in APPROVER_ROLES:
            entry.status = ApprovalStatus.PENDING_APPROVAL
        entry.save()
    return JsonResponse(serialize_entry(entry))


def delete_entry(request, entry):
    if entry.teacher_id != request.user.id and get_user_role(request.user) != Role.ADMIN:
        return json_error("You can only delete your own entries", status=403)

    with transaction.atomic():
        if entry.linked_exam is not None:
            entry.linked_exam.delete()
        entry.delete()
    return JsonResponse({"message": f"{ENTRY_LABELS[type(entry)]} deleted successfully"})


def entry_detail(request, model, form_class, field_map, entry_id):
    entry = get_entry(model, entry_id)
    if entry is None:
        return json_error(f"{ENTRY_LABELS[model]} not found", status=404)

    if request.method == "GET":
        return JsonResponse(serialize_entry(entry))
    if request.method == "DELETE":
        return delete_entry(request, entry)
    return update_entry(request, entry, form_class, field_map)


def submit_entry(request, model, entry_id):
    """Confirm a booking: the entry is approved straight away and the teacher notified"""
    entry = get_entry(model, entry_id)
    if entry is None:
        return json_error(f"{ENTRY_LABELS[model]} not found", status=404)
    if entry.teacher_id != request.user.id and review_error(request.user, entry):
        return json_error("You can only submit your own entries", status=403)

    warning = None
    with transaction.atomic():
        entry.status = ApprovalStatus.APPROVED
        entry.approved_by = request.user
        if isinstance(entry, LearningSummary):
            warning = book_linked_quiz(entry)
        entry.save()

    email_sent = send_booking_notification(entry)
    return JsonResponse({**serialize_entry(entry), "warning": warning, "emailSent": email_sent})


def review_entry(request, model, entry_id, approve):
    entry = get_entry(model, entry_id)
    if entry is None:
        return json_error(f"{ENTRY_LABELS[model]} not found", status=404)

    error_message = review_error(request.user, entry)
    if error_message:
        return json_error(error_message, status=403)

    payload, error = read_json(request)
    if error:
        return error

    warning = None
    with transaction.atomic():
        if approve:
            entry.status = ApprovalStatus.APPROVED
            if isinstance(entry, LearningSummary):
                warning = book_linked_quiz(entry)
        else:
            entry.status = ApprovalStatus.REJECTED
            cancel_linked_exam(entry)
        entry.approved_by = request.user
        entry.approval_comments = payload.get("comments") or ""
        entry.save()

    logger.info(
        "%s %s %s by %s",
        ENTRY_LABELS[model],
        entry.id,
        entry.status.lower(),
        request.user,
    )
    return JsonResponse({**serialize_entry(entry), "warning": warning})


# ==================== LEARNING SUMMARIES ====================


@api_login_required
@require_http_methods(["GET", "POST"])
def learning_summaries(request: HttpRequest):
    if request.method == "GET":
        return list_entries(request, LearningSummary)
    return create_entry(request, LearningSummaryForm, SUMMARY_FIELD_MAP)


@api_login_required
@require_http_methods(["GET", "PATCH", "DELETE"])
def learning_summary_detail(request: HttpRequest, entry_id: int):
    return entry_detail(
        request, LearningSummary, LearningSummaryForm, SUMMARY_FIELD_MAP, entry_id
    )


@api_login_required
@require_POST
def submit_learning_summary(request: HttpRequest, entry_id: int):
    return submit_entry(request, LearningSummary, entry_id)


@api_login_required
@require_POST
def approve_learning_summary(request: HttpRequest, entry_id: int):
    return review_entry(request, LearningSummary, entry_id, approve=True)


@api_login_required
@require_POST
def reject_learning_summary(request: HttpRequest, entry_id: int):
    return review_entry(request, LearningSummary, entry_id, approve=False)


@api_login_required
@require_POST
def email_learning_summaries(request: HttpRequest):
    """Email the approved summaries of a teaching week"""
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Only administrators can send email reports", status=403)

    emails, term, week_number, error = read_email_request(request)
    if error:
        return error

    summaries = LearningSummary.objects.select_related(
        "classroom", "subject", "teacher"
    ).filter(term=term, week_number=week_number, status=ApprovalStatus.APPROVED)
    if not send_summaries_report(list(summaries), term, week_number, emails):
        return json_error("Failed to send email", status=500)
    return JsonResponse({"message": f"Report sent to {len(emails)} email(s)"})


# ==================== LEARNING SUPPORT ====================


@api_login_required
@require_http_methods(["GET", "POST"])
def learning_support(request: HttpRequest):
    if request.method == "GET":
        return list_entries(request, LearningSupport)
    return create_entry(request, LearningSupportForm, SUPPORT_FIELD_MAP)


@api_login_required
@require_http_methods(["GET", "PATCH", "DELETE"])
def learning_support_detail(request: HttpRequest, entry_id: int):
    return entry_detail(
        request, LearningSupport, LearningSupportForm, SUPPORT_FIELD_MAP, entry_id
    )


@api_login_required
@require_POST
def submit_learning_support(request: HttpRequest, entry_id: int):
    return submit_entry(request, LearningSupport, entry_id)


@api_login_required
@require_POST
def approve_learning_support(request: HttpRequest, entry_id: int):
    return review_entry(request, LearningSupport, entry_id, approve=True)


@api_login_required
@require_POST
def reject_learning_support(request: HttpRequest, entry_id: int):
    return review_entry(request, LearningSupport, entry_id, approve=False)


@api_login_required
@require_POST
def email_support_timetable(request: HttpRequest):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Only administrators can send timetable emails", status=403)

    emails, term, week_number, error = read_email_request(request)
    if error:
        return error

    sessions = (
        LearningSupport.objects.select_related("classroom", "subject", "teacher")
        .filter(term=term, week_number=week_number, status=ApprovalStatus.APPROVED)
        .order_by("sapet_date", "sapet_time")
    )
    if not send_support_timetable(list(sessions), term, week_number, emails):
        return json_error("Failed to send email", status=500)
    return JsonResponse({"message": f"Timetable sent to {len(emails)} email(s)"})


@api_login_required
@require_http_methods(["GET"])
def support_students(request: HttpRequest, entry_id: int):
    support = get_entry(LearningSupport, entry_id)
    if support is None:
        return json_error("Learning support session not found", status=404)
    if not can_view_session(request.user, support):
        return json_error("You can only view students for your own sessions", status=403)

    students = Student.objects.filter(classroom=support.classroom)
    return JsonResponse(
        [{"id": s.id, "name": s.name, "studentId": s.student_id} for s in students],
        safe=False,
    )


@api_login_required
@require_http_methods(["GET", "POST"])
def support_attendance(request: HttpRequest, entry_id: int):
    support = get_entry(LearningSupport, entry_id)
    if support is None:
        return json_error("Learning support session not found", status=404)
    if not can_view_session(request.user, support):
        return json_error(
            "Only the session teacher or administrators can access attendance", status=403
        )

    if request.method == "POST":
        payload, error = read_json(request)
        if error:
            return error
        records = payload.get("attendance")
        if not isinstance(records, list):
            return json_error("Attendance must be an array")

        class_students = set(
            Student.objects.filter(classroom=support.classroom).values_list("id", flat=True)
        )
        marks = {}
        for record in records:
            if not isinstance(record, dict):
                return json_error("Attendance must be an array of records")
            student_id = record.get("studentId")
            status = record.get("status")
            if student_id not in class_students:
                return json_error(f"Student {student_id} is not in this class")
            if status not in SapetAttendance.Status.values:
                return json_error(f"Invalid attendance status '{status}'")
            marks[student_id] = status

        with transaction.atomic():
            support.attendance.all().delete()
            SapetAttendance.objects.bulk_create(
                [
                    SapetAttendance(
                        learning_support=support,
                        student_id=student_id,
                        status=status,
                        marked_by=request.user,
                    )
                    for student_id, status in marks.items()
                ]
            )

    attendance = support.attendance.select_related("student")
    return JsonResponse(
        [
            {
                "id": record.id,
                "studentId": record.student_id,
                "studentName": record.student.name,
                "status": record.status,
                "markedById": record.marked_by_id,
                "markedAt": record.marked_at.isoformat(),
            }
            for record in attendance
        ],
        safe=False,
    )


# ==================== PDF EXPORTS ====================


def read_week_query(request):
    """Validate ?term=&weekNumber=; returns (term, week_number, error_response)"""
    term = request.GET.get("term")
    if term not in Term.values:
        return None, None, json_error("Invalid term")
    week_number = request.GET.get("weekNumber") or ""
    if not week_number.isdigit():
        return None, None, json_error("Invalid week number")
    return term, int(week_number), None


def approved_entries(model, term, week_number):
    return (
        model.objects.select_related("classroom", "subject", "teacher")
        .filter(term=term, week_number=week_number, status=ApprovalStatus.APPROVED)
        .order_by("grade", "classroom__name", "subject__code")
    )


@api_login_required
@require_GET
def summaries_pdf(request: HttpRequest):
    term, week_number, error = read_week_query(request)
    if error:
        return error
    entries = approved_entries(LearningSummary, term, week_number)
    return pdf_response(
        generate_summaries_pdf(term, week_number, list(entries)),
        f"learning-summaries-{term}-week{week_number}.pdf",
    )


@api_login_required
@require_GET
def support_pdf(request: HttpRequest):
    term, week_number, error = read_week_query(request)
    if error:
        return error
    entries = approved_entries(LearningSupport, term, week_number)
    return pdf_response(
        generate_support_pdf(term, week_number, list(entries)),
        f"learning-support-{term}-week{week_number}.pdf",
    )


# ==================== ANALYTICS ====================


@api_login_required
@require_GET
def sapet_analytics(request: HttpRequest):
    if get_user_role(request.user) not in PLANNING_ANALYTICS_ROLES:
        return json_error("Access denied", status=403)
    return JsonResponse(get_sapet_analytics())


@api_login_required
@require_GET
def learning_summary_analytics(request: HttpRequest):
    if get_user_role(request.user) not in PLANNING_ANALYTICS_ROLES:
        return json_error("Access denied", status=403)
    return JsonResponse(get_summary_analytics())
