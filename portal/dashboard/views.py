from django.contrib.auth.models import User
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from academics.models import ExamEvent
from academics.views import scheduled_exams, serialize_exam, week_bounds
from base.api_utils import api_login_required
from base.views import ADMIN_SECTION_ROLES, ANALYTICS_ROLES, APPROVER_ROLES, get_user_role
from planning.models import ApprovalStatus, LearningSummary, LearningSupport
from staff.models import Role
from students.models import Classroom, Student, Subject


def get_dashboard_sections(role):
    """Get available navigation sections based on user role"""
    main_items = [
        {"name": "Dashboard", "url": "/", "icon": "layout-dashboard"},
        {"name": "Master Schedule", "url": "/schedule", "icon": "calendar"},
    ]
    if role in (Role.TEACHER, Role.COORDINATOR):
        main_items.append({"name": "My Exams", "url": "/my-exams", "icon": "book-open"})
    main_items += [
        {"name": "Learning Summaries", "url": "/learning-summaries", "icon": "notebook"},
        {"name": "Learning Support", "url": "/learning-support", "icon": "life-buoy"},
        {"name": "My Certificates", "url": "/my-certificates", "icon": "award"},
    ]
    sections = [{"title": "Main", "items": main_items}]

    if role in ANALYTICS_ROLES:
        sections.append(
            {
                "title": "Analytics",
                "items": [
                    {"name": "Class Analytics", "url": "/analytics", "icon": "bar-chart"},
                    {
                        "name": "Teacher Analytics",
                        "url": "/analytics/teachers",
                        "icon": "users",
                    },
                    {
                        "name": "Weekly Utilization",
                        "url": "/analytics/weekly-utilization",
                        "icon": "trending-up",
                    },
                ],
            }
        )

    if role in ADMIN_SECTION_ROLES:
        admin_items = [
            {"name": "Users", "url": "/admin/users", "icon": "users"},
            {"name": "Subjects", "url": "/admin/subjects", "icon": "book"},
            {"name": "Classes", "url": "/admin/classes", "icon": "school"},
            {"name": "Students", "url": "/admin/students", "icon": "graduation-cap"},
            {"name": "Departments", "url": "/admin/departments", "icon": "building"},
        ]
        if role == Role.ADMIN:
            admin_items += [
                {"name": "Bulk Import", "url": "/admin/bulk-import", "icon": "upload"},
                {"name": "Certificates", "url": "/admin/certificates", "icon": "award"},
                {
                    "name": "Inactive Accounts",
                    "url": "/admin/inactive-accounts",
                    "icon": "user-x",
                },
                {"name": "Login Audit", "url": "/admin/login-audit", "icon": "shield"},
            ]
        sections.append({"title": "Administration", "items": admin_items})

    return sections


def pending_approval_count():
    return sum(
        model.objects.filter(status=ApprovalStatus.PENDING_APPROVAL).count()
        for model in (LearningSummary, LearningSupport)
    )


def get_dashboard_data(user, role, today=None):
    """Get role-specific dashboard statistics"""
    today = today or timezone.localdate()
    monday, sunday = week_bounds(today)
    week_exams = scheduled_exams().filter(date__range=(monday, sunday))
    my_upcoming = scheduled_exams().filter(created_by=user, date__gte=today)

    stats = {
        "weekBookings": week_exams.count(),
        "weekQuizzes": week_exams.filter(exam_type=ExamEvent.Type.QUIZ).count(),
        "myUpcomingBookings": my_upcoming.count(),
        "myDraftEntries": sum(
            model.objects.filter(teacher=user, status=ApprovalStatus.DRAFT).count()
            for model in (LearningSummary, LearningSupport)
        ),
    }
    if role in APPROVER_ROLES:
        stats["pendingApprovals"] = pending_approval_count()
    if role in ADMIN_SECTION_ROLES:
        stats.update(
            {
                "totalClasses": Classroom.objects.count(),
                "totalSubjects": Subject.objects.count(),
                "totalStudents": Student.objects.count(),
                "activeStaff": User.objects.filter(is_active=True).count(),
                "totalBookings": scheduled_exams().count(),
            }
        )

    return {
        "role": role,
        "weekStart": monday.isoformat(),
        "weekEnd": sunday.isoformat(),
        "stats": stats,
        "upcomingExams": [
            serialize_exam(e) for e in my_upcoming.order_by("date", "period")[:5]
        ],
    }


@api_login_required
@require_GET
def navigation(request: HttpRequest):
    role = get_user_role(request.user)
    return JsonResponse({"role": role, "sections": get_dashboard_sections(role)})


@api_login_required
@require_GET
def dashboard_home(request: HttpRequest):
    """Role-specific counters for the landing page"""
    user = request.user
    return JsonResponse(get_dashboard_data(user, get_user_role(user)))
