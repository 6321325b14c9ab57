import csv
import logging
from io import BytesIO

import pandas as pd
from django.conf import settings
from django.contrib.auth import authenticate, login, logout, update_session_auth_hash
from django.contrib.auth.models import User
from django.db import transaction
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST

from academics.models import ExamEvent
from certificates.models import Certificate
from planning.models import LearningSummary, LearningSupport, SapetAttendance
from staff.models import Role, Staff
from students.models import Classroom, Student, Subject
from .api_utils import api_login_required, json_error, read_json
from .import_utils import (
    ROW_IMPORTERS,
    get_template_data,
    import_dataframe,
    read_upload,
)
from .models import LoginAudit

logger = logging.getLogger(__name__)

ADMIN_SECTION_ROLES = [Role.ADMIN, Role.PRINCIPAL, Role.VICE_PRINCIPAL]
ANALYTICS_ROLES = [Role.ADMIN, Role.PRINCIPAL, Role.VICE_PRINCIPAL, Role.LEAD_TEACHER]
APPROVER_ROLES = [Role.ADMIN, Role.VICE_PRINCIPAL, Role.LEAD_TEACHER]
PLANNING_ANALYTICS_ROLES = [
    Role.ADMIN,
    Role.PRINCIPAL,
    Role.VICE_PRINCIPAL,
    Role.COORDINATOR,
    Role.LEAD_TEACHER,
]


def get_user_role(user):
    if not user.is_authenticated:
        return None
    try:
        return user.staff.role
    except Staff.DoesNotExist:
        return Role.ADMIN if user.is_superuser else Role.TEACHER


def get_user_department(user):
    try:
        return user.staff.department
    except Staff.DoesNotExist:
        return None


def serialize_user(user):
    try:
        staff = user.staff
    except Staff.DoesNotExist:
        staff = None
    department = staff.department if staff else None
    return {
        "id": user.id,
        "username": user.username,
        "name": user.get_full_name() or user.username,
        "email": user.email,
        "role": get_user_role(user),
        "department": department.name if department else None,
        "isActive": user.is_active,
        "createdAt": user.date_joined.isoformat(),
        "lastAccessedAt": (
            staff.last_accessed_at.isoformat()
            if staff and staff.last_accessed_at
            else None
        ),
    }


# ==================== AUTHENTICATION ====================


@require_POST
def login_view(request: HttpRequest):
    payload, error = read_json(request)
    if error:
        return error

    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        return json_error("Username and password are required")

    user = authenticate(request, username=username, password=password)
    if user is None:
        existing = User.objects.filter(username=username).first()
        if existing and not existing.is_active and existing.check_password(password):
            return json_error("User account is inactive.", status=401)
        return json_error("Invalid username or password", status=401)

    login(request, user)
    logger.info("User %s logged in", user.username)
    return JsonResponse(serialize_user(user))


@require_POST
def logout_view(request: HttpRequest):
    logout(request)
    return HttpResponse(status=200)


@ensure_csrf_cookie
@require_GET
def current_user(request: HttpRequest):
    if not request.user.is_authenticated:
        return json_error("Not authenticated", status=401)
    return JsonResponse(serialize_user(request.user))


@api_login_required
@require_POST
def change_password(request: HttpRequest):
    payload, error = read_json(request)
    if error:
        return error

    current_password = payload.get("currentPassword") or ""
    new_password = payload.get("newPassword") or ""
    if not current_password or not new_password:
        return json_error("Current password and new password are required")
    if len(new_password) < 6:
        return json_error("New password must be at least 6 characters")
    if not request.user.check_password(current_password):
        return json_error("Current password is incorrect")

    request.user.set_password(new_password)
    request.user.save()
    update_session_auth_hash(request, request.user)
    return JsonResponse({"message": "Password changed successfully"})


# ==================== AUDIT ====================


@api_login_required
@require_GET
def login_audit(request: HttpRequest):
    """Most recent logins, newest first"""
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    entries = LoginAudit.objects.all()[: settings.LOGIN_AUDIT_LIMIT]
    return JsonResponse(
        [
            {
                "id": entry.id,
                "userId": entry.user_id,
                "username": entry.username,
                "ipAddress": entry.ip_address,
                "userAgent": entry.user_agent,
                "loginAt": entry.login_at.isoformat(),
                "success": entry.success,
            }
            for entry in entries
        ],
        safe=False,
    )


# ==================== FACTORY RESET ====================


@transaction.atomic
def factory_reset_data():
    """Wipe operational data, keeping admin accounts, departments and certificate templates"""
    deleted = {
        "loginAudits": LoginAudit.objects.all().delete()[0],
        "certificates": Certificate.objects.all().delete()[0],
        "sapetAttendance": SapetAttendance.objects.all().delete()[0],
        "learningSummaries": LearningSummary.objects.all().delete()[0],
        "learningSupport": LearningSupport.objects.all().delete()[0],
        "exams": ExamEvent.objects.all().delete()[0],
        "students": Student.objects.all().delete()[0],
        "subjects": Subject.objects.all().delete()[0],
        "classes": Classroom.objects.all().delete()[0],
    }
    non_admins = User.objects.filter(is_superuser=False).exclude(staff__role=Role.ADMIN)
    deleted["users"] = non_admins.count()
    non_admins.delete()
    logger.warning("Factory reset completed: %s", deleted)
    return deleted


@api_login_required
@require_POST
def factory_reset(request: HttpRequest):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    deleted = factory_reset_data()
    return JsonResponse(
        {"message": "Factory reset completed successfully", "deleted": deleted}
    )


# ==================== BULK IMPORT ====================


@api_login_required
@require_POST
def bulk_import(request: HttpRequest, import_type: str):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)
    if import_type not in ROW_IMPORTERS:
        return json_error("Unknown import type", status=404)

    upload = request.FILES.get("file")
    if upload is None:
        return json_error("No file uploaded")

    df, error = read_upload(upload)
    if error:
        return json_error(error)

    return JsonResponse(import_dataframe(df, import_type))


@api_login_required
@require_GET
def bulk_import_template(request: HttpRequest, import_type: str):
    """Download the CSV (or ?format=excel workbook) template for an import type"""
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)
    if import_type not in ROW_IMPORTERS:
        return json_error("Unknown import type", status=404)

    data = get_template_data(import_type)

    if request.GET.get("format") == "excel":
        output = BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            pd.DataFrame(data).to_excel(writer, sheet_name="Template", index=False)

        output.seek(0)
        response = HttpResponse(
            output.read(),
            content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        response["Content-Disposition"] = (
            f'attachment; filename="{import_type}_template.xlsx"'
        )
        return response

    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = (
        f'attachment; filename="{import_type}_template.csv"'
    )

    writer = csv.writer(response)
    writer.writerow(data.keys())
    writer.writerows(zip(*data.values()))
    return response


# ==================== ERROR HANDLERS ====================


def csrf_failure(request: HttpRequest, reason=""):
    logger.warning("CSRF check failed for %s: %s", request.path, reason)
    return json_error("CSRF verification failed. Refresh the page and try again.", status=403)


def page_not_found(request: HttpRequest, exception=None):
    return json_error("Not found", status=404)


def server_error(request: HttpRequest):
    return json_error("Internal server error", status=500)
