import logging
from datetime import timedelta
from typing import Any, Dict, List

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.db.models.functions import TruncWeek
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods

from base.api_utils import (
    api_login_required,
    first_form_error,
    form_data_from_payload,
    json_error,
    parse_id_list,
    parse_iso_date,
    read_json,
)
from base.views import ANALYTICS_ROLES, get_user_role
from staff.models import Role
from students.models import Classroom
from .bell_schedules import get_period_time, serialize_bell_schedule
from .forms import EXAM_FIELD_MAP, ExamEventForm
from .models import PERIOD_TAKEN_MESSAGE, ExamEvent
from .pdf_utils import generate_schedule_pdf

logger = logging.getLogger(__name__)


# ==================== HELPER FUNCTIONS ====================


def display_name(user):
    return user.get_full_name() or user.username


def serialize_exam(exam: ExamEvent) -> Dict[str, Any]:
    return {
        "id": exam.id,
        "title": exam.title,
        "type": exam.exam_type,
        "date": exam.date.isoformat(),
        "period": exam.period,
        "periodTime": get_period_time(exam.classroom.name, exam.date, exam.period),
        "classId": exam.classroom_id,
        "subjectId": exam.subject_id,
        "createdByUserId": exam.created_by_id,
        "status": exam.status,
        "notes": exam.notes,
        "createdAt": exam.created_at.isoformat() if exam.created_at else None,
        "class": {"id": exam.classroom_id, "name": exam.classroom.name},
        "subject": {
            "id": exam.subject_id,
            "name": exam.subject.name,
            "code": exam.subject.code,
        },
        "createdBy": {"id": exam.created_by_id, "name": display_name(exam.created_by)},
    }


def week_bounds(day):
    """Monday and Sunday of the week containing day"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def scheduled_exams():
    return ExamEvent.objects.filter(status=ExamEvent.Status.SCHEDULED).select_related(
        "classroom", "subject", "created_by"
    )


def can_modify_exam(user, exam):
    return exam.created_by_id == user.id or get_user_role(user) == Role.ADMIN


def pdf_response(buffer, filename):
    response = HttpResponse(buffer.getvalue(), content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


# ==================== EXAM EVENTS ====================


@api_login_required
@require_http_methods(["GET", "POST"])
def exams(request: HttpRequest):
    if request.method == "POST":
        return create_exam(request)

    queryset = scheduled_exams()

    week_start = request.GET.get("weekStart")
    if week_start:
        start = parse_iso_date(week_start)
        if start is None:
            return json_error("Invalid weekStart date")
        monday, sunday = week_bounds(start)
        queryset = queryset.filter(date__range=(monday, sunday))

    for param, field in (("classId", "classroom_id"), ("teacherId", "created_by_id")):
        value = request.GET.get(param)
        if value:
            if not value.isdigit():
                return json_error(f"Invalid {param}")
            queryset = queryset.filter(**{field: int(value)})

    return JsonResponse(
        [serialize_exam(e) for e in queryset.order_by("date", "period")], safe=False
    )


def create_exam(request: HttpRequest):
    payload, error = read_json(request)
    if error:
        return error

    form = ExamEventForm(form_data_from_payload(payload, EXAM_FIELD_MAP))
    if not form.is_valid():
        return json_error(first_form_error(form))

    exam = form.save(commit=False)
    exam.created_by = request.user
    try:
        with transaction.atomic():
            exam.save()
    except IntegrityError:
        return json_error(PERIOD_TAKEN_MESSAGE)
    logger.info(
        "%s booked %s for %s on %s P%s",
        request.user,
        exam.exam_type,
        exam.classroom,
        exam.date,
        exam.period,
    )
    return JsonResponse(serialize_exam(exam), status=201)


@api_login_required
@require_http_methods(["GET", "PATCH"])
def exam_detail(request: HttpRequest, exam_id: int):
    exam = (
        ExamEvent.objects.select_related("classroom", "subject", "created_by")
        .filter(pk=exam_id)
        .first()
    )
    if exam is None:
        return json_error("Exam not found", status=404)

    if request.method == "GET":
        return JsonResponse(serialize_exam(exam))

    if not can_modify_exam(request.user, exam):
        return json_error("You can only modify your own bookings", status=403)

    payload, error = read_json(request)
    if error:
        return error

    form = ExamEventForm(
        form_data_from_payload(
            payload, EXAM_FIELD_MAP, instance=exam, fields=ExamEventForm._meta.fields
        ),
        instance=exam,
    )
    if not form.is_valid():
        return json_error(first_form_error(form))

    try:
        with transaction.atomic():
            exam = form.save()
    except IntegrityError:
        return json_error(PERIOD_TAKEN_MESSAGE)
    return JsonResponse(serialize_exam(exam))


@api_login_required
@require_http_methods(["PATCH", "POST"])
def cancel_exam(request: HttpRequest, exam_id: int):
    exam = (
        ExamEvent.objects.select_related("classroom", "subject", "created_by")
        .filter(pk=exam_id)
        .first()
    )
    if exam is None:
        return json_error("Exam not found", status=404)
    if not can_modify_exam(request.user, exam):
        return json_error("You can only modify your own bookings", status=403)

    exam.status = ExamEvent.Status.CANCELLED
    exam.save(update_fields=["status"])
    logger.info("Exam %s cancelled by %s", exam.id, request.user)
    return JsonResponse(serialize_exam(exam))


@require_GET
def bell_schedule(request: HttpRequest):
    return JsonResponse(serialize_bell_schedule(request.GET.get("className")))


# ==================== SCHEDULE PDF ====================


@api_login_required
@require_GET
def schedule_pdf(request: HttpRequest):
    """Weekly master schedule, one page per requested class or a single whole-school page"""
    start = parse_iso_date(request.GET.get("weekStart") or "")
    if start is None:
        return json_error("weekStart is required")
    monday, sunday = week_bounds(start)
    week_exams = scheduled_exams().filter(date__range=(monday, sunday))

    class_ids = parse_id_list(request.GET.get("classIds"))
    if request.GET.get("classId"):
        class_ids = parse_id_list(request.GET.get("classId"))

    if class_ids:
        classrooms = list(Classroom.objects.filter(id__in=class_ids))
        if not classrooms:
            return json_error("Class not found", status=404)
        pages = [
            {
                "title": f"Class Schedule: {classroom.name}",
                "exams": [e for e in week_exams if e.classroom_id == classroom.id],
                "grade_level": classroom.grade_level,
                "show_class": False,
                "show_teacher": True,
            }
            for classroom in classrooms
        ]
        filename = (
            f"schedule_{classrooms[0].id}_{monday}.pdf"
            if len(classrooms) == 1
            else f"schedule_classes_{monday}.pdf"
        )
    else:
        pages = [{"title": "Master Schedule: Whole School", "exams": list(week_exams)}]
        filename = f"schedule_school_{monday}.pdf"

    return pdf_response(generate_schedule_pdf(monday, pages), filename)


@api_login_required
@require_GET
def teacher_schedule_pdf(request: HttpRequest):
    start = parse_iso_date(request.GET.get("weekStart") or "")
    teacher_id = request.GET.get("teacherId") or ""
    if start is None or not teacher_id.isdigit():
        return json_error("weekStart and teacherId are required")

    teacher = User.objects.filter(pk=int(teacher_id)).first()
    if teacher is None:
        return json_error("Teacher not found", status=404)

    monday, sunday = week_bounds(start)
    teacher_exams = scheduled_exams().filter(
        created_by=teacher, date__range=(monday, sunday)
    )
    pages = [{"title": f"Teacher Schedule: {display_name(teacher)}", "exams": list(teacher_exams)}]
    return pdf_response(
        generate_schedule_pdf(monday, pages),
        f"teacher_schedule_{teacher.username}_{monday}.pdf",
    )


# ==================== ANALYTICS ====================


def type_counts():
    return {
        "homeworkCount": Count("id", filter=Q(exam_type=ExamEvent.Type.HOMEWORK)),
        "quizCount": Count("id", filter=Q(exam_type=ExamEvent.Type.QUIZ)),
        "examCount": Count("id", filter=Q(exam_type=ExamEvent.Type.EXAM)),
        "totalCount": Count("id"),
    }


def get_class_subject_analytics() -> List[Dict[str, Any]]:
    rows = (
        ExamEvent.objects.filter(status=ExamEvent.Status.SCHEDULED)
        .values(
            "classroom_id", "classroom__name", "subject_id", "subject__name", "subject__code"
        )
        .annotate(**type_counts())
        .order_by("classroom__name", "subject__name")
    )
    return [
        {
            "classId": row["classroom_id"],
            "className": row["classroom__name"],
            "subjectId": row["subject_id"],
            "subjectName": row["subject__name"],
            "subjectCode": row["subject__code"],
            "homeworkCount": row["homeworkCount"],
            "quizCount": row["quizCount"],
            "examCount": row["examCount"],
            "totalCount": row["totalCount"],
        }
        for row in rows
    ]


def teacher_name_from_row(row):
    full_name = f"{row['created_by__first_name']} {row['created_by__last_name']}".strip()
    return full_name or row["created_by__username"]


def get_teacher_analytics() -> List[Dict[str, Any]]:
    rows = (
        ExamEvent.objects.filter(status=ExamEvent.Status.SCHEDULED)
        .values(
            "created_by_id",
            "created_by__first_name",
            "created_by__last_name",
            "created_by__username",
            "classroom_id",
            "classroom__name",
        )
        .annotate(**type_counts())
    )
    results = [
        {
            "teacherId": row["created_by_id"],
            "teacherName": teacher_name_from_row(row),
            "classId": row["classroom_id"],
            "className": row["classroom__name"],
            "homeworkCount": row["homeworkCount"],
            "quizCount": row["quizCount"],
            "examCount": row["examCount"],
            "totalCount": row["totalCount"],
        }
        for row in rows
    ]
    return sorted(results, key=lambda r: (r["teacherName"], r["className"]))


def get_weekly_utilization() -> List[Dict[str, Any]]:
    rows = (
        ExamEvent.objects.filter(status=ExamEvent.Status.SCHEDULED)
        .annotate(week=TruncWeek("date"))
        .values(
            "week",
            "created_by_id",
            "created_by__first_name",
            "created_by__last_name",
            "created_by__username",
        )
        .annotate(**type_counts())
    )
    results = [
        {
            "weekStart": row["week"].isoformat()[:10],
            "teacherId": row["created_by_id"],
            "teacherName": teacher_name_from_row(row),
            "homeworkCount": row["homeworkCount"],
            "quizCount": row["quizCount"],
            "examCount": row["examCount"],
            "totalCount": row["totalCount"],
        }
        for row in rows
    ]
    results.sort(key=lambda r: r["teacherName"])
    results.sort(key=lambda r: r["weekStart"], reverse=True)
    return results


@api_login_required
@require_GET
def class_subject_analytics(request: HttpRequest):
    if get_user_role(request.user) not in ANALYTICS_ROLES:
        return json_error("Access denied", status=403)
    return JsonResponse(get_class_subject_analytics(), safe=False)


@api_login_required
@require_GET
def teacher_analytics(request: HttpRequest):
    if get_user_role(request.user) not in ANALYTICS_ROLES:
        return json_error("Access denied", status=403)
    return JsonResponse(get_teacher_analytics(), safe=False)


@api_login_required
@require_GET
def weekly_utilization(request: HttpRequest):
    if get_user_role(request.user) not in ANALYTICS_ROLES:
        return json_error("Access denied", status=403)
    return JsonResponse(get_weekly_utilization(), safe=False)
