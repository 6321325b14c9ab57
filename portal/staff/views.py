import logging
import math

from django.conf import settings
from django.contrib.auth.models import User
from django.db.models import Count
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from base.api_utils import (
    api_login_required,
    first_form_error,
    form_data_from_payload,
    json_error,
    read_json,
)
from base.views import get_user_role, serialize_user
from .forms import (
    STAFF_FIELD_MAP,
    DepartmentForm,
    PasswordResetForm,
    StaffCreateForm,
    StaffEditForm,
)
from .models import Department, Role, Staff, create_staff_account

logger = logging.getLogger(__name__)

DEPARTMENT_FIELD_MAP = {
    "name": "name",
    "displayName": "display_name",
    "isActive": "is_active",
}


# ==================== HELPER FUNCTIONS ====================


def get_staff_for_user(user):
    staff, _ = Staff.objects.get_or_create(
        user=user,
        defaults={"role": Role.ADMIN if user.is_superuser else Role.TEACHER},
    )
    return staff


def serialize_department(department, staff_count=None):
    return {
        "id": department.id,
        "name": department.name,
        "displayName": department.display_name,
        "isActive": department.is_active,
        "createdAt": department.created_at.isoformat(),
        "staffCount": staff_count if staff_count is not None else department.staff.count(),
    }


def days_since(moment, now):
    return math.ceil(abs((now - moment).total_seconds()) / 86400)


def get_inactive_accounts(now=None):
    """Non-admin accounts that have never opened the portal"""
    now = now or timezone.now()
    grace_days = settings.INACTIVE_GRACE_DAYS
    never_accessed = (
        Staff.objects.select_related("user", "department")
        .exclude(role=Role.ADMIN)
        .filter(last_accessed_at__isnull=True)
        .order_by("user__date_joined")
    )

    accounts = []
    for staff in never_accessed:
        days = days_since(staff.user.date_joined, now)
        accounts.append(
            {
                **serialize_user(staff.user),
                "daysSinceCreation": days,
                "pastGracePeriod": days >= grace_days,
            }
        )

    active = [account for account in accounts if account["isActive"]]
    return {
        "gracePeriodDays": grace_days,
        "accounts": accounts,
        "pastGraceCount": sum(1 for a in active if a["pastGracePeriod"]),
        "withinGraceCount": sum(1 for a in active if not a["pastGracePeriod"]),
    }


# ==================== STAFF ====================


@api_login_required
@require_GET
def user_list(request: HttpRequest):
    users = (
        User.objects.select_related("staff", "staff__department")
        .order_by("first_name", "last_name", "username")
    )
    return JsonResponse([serialize_user(user) for user in users], safe=False)


@api_login_required
@require_POST
def create_user(request: HttpRequest):
    """Admin view for adding a staff account with the default password"""
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    payload, error = read_json(request)
    if error:
        return error

    form = StaffCreateForm(form_data_from_payload(payload, STAFF_FIELD_MAP))
    if not form.is_valid():
        return json_error(first_form_error(form))

    staff = create_staff_account(**form.cleaned_data)
    logger.info("Staff account %s created by %s", staff.user.username, request.user)
    return JsonResponse(serialize_user(staff.user), status=201)


@api_login_required
@require_http_methods(["PATCH", "DELETE"])
def user_detail(request: HttpRequest, user_id: int):
    """Admin view for editing or deactivating a staff account"""
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return json_error("User not found", status=404)

    if request.method == "DELETE":
        if user == request.user:
            return json_error("You cannot delete your own account")
        user.is_active = False
        user.save(update_fields=["is_active"])
        logger.info("Staff account %s deactivated by %s", user.username, request.user)
        return JsonResponse({"message": "User deactivated successfully"})

    payload, error = read_json(request)
    if error:
        return error

    staff = get_staff_for_user(user)
    data = StaffEditForm.initial_data(staff)
    data.update(form_data_from_payload(payload, STAFF_FIELD_MAP))
    data.pop("username", None)

    form = StaffEditForm(data, staff=staff)
    if not form.is_valid():
        return json_error(first_form_error(form))

    form.save()
    return JsonResponse(serialize_user(user))


@api_login_required
@require_POST
def reset_password(request: HttpRequest, user_id: int):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return json_error("User not found", status=404)

    payload, error = read_json(request)
    if error:
        return error

    form = PasswordResetForm({"new_password": payload.get("newPassword") or ""})
    if not form.is_valid():
        return json_error(form.errors["new_password"][0])

    user.set_password(form.cleaned_data["new_password"])
    user.save()
    logger.info("Password reset for %s by %s", user.username, request.user)
    return JsonResponse({"message": "Password reset successfully"})


# ==================== DEPARTMENTS ====================


@api_login_required
@require_http_methods(["GET", "POST"])
def departments(request: HttpRequest):
    if request.method == "GET":
        queryset = Department.objects.annotate(staff_count=Count("staff"))
        return JsonResponse(
            [serialize_department(d, d.staff_count) for d in queryset], safe=False
        )

    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    payload, error = read_json(request)
    if error:
        return error

    data = form_data_from_payload(payload, DEPARTMENT_FIELD_MAP)
    data.setdefault("is_active", True)
    form = DepartmentForm(data)
    if not form.is_valid():
        return json_error(first_form_error(form))

    department = form.save()
    return JsonResponse(serialize_department(department, 0), status=201)


@api_login_required
@require_http_methods(["PATCH", "DELETE"])
def department_detail(request: HttpRequest, department_id: int):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    department = Department.objects.filter(pk=department_id).first()
    if department is None:
        return json_error("Department not found", status=404)

    if request.method == "DELETE":
        staff_count = department.staff.count()
        if staff_count:
            return json_error(
                f"Cannot delete department. {staff_count} staff member(s) are assigned to it. Reassign them first."
            )
        department.delete()
        return JsonResponse({"message": "Department deleted successfully"})

    payload, error = read_json(request)
    if error:
        return error

    form = DepartmentForm(
        form_data_from_payload(payload, DEPARTMENT_FIELD_MAP, instance=department),
        instance=department,
    )
    if not form.is_valid():
        return json_error(first_form_error(form))

    department = form.save()
    return JsonResponse(serialize_department(department))


# ==================== INACTIVE ACCOUNTS ====================


@api_login_required
@require_GET
def inactive_accounts(request: HttpRequest):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)
    return JsonResponse(get_inactive_accounts())


@api_login_required
@require_POST
def deactivate_account(request: HttpRequest, user_id: int):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return json_error("User not found", status=404)

    user.is_active = False
    user.save(update_fields=["is_active"])
    logger.info("Inactive account %s deactivated by %s", user.username, request.user)
    return JsonResponse(serialize_user(user))
