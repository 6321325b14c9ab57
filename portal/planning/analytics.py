from typing import Any, Dict, List

from django.db.models import Count, Q
from django.db.models.functions import Trim

from .models import ApprovalStatus, LearningSummary, LearningSupport, SapetAttendance, Term
from .term_utils import WEEKDAY_NAMES


def status_counts() -> Dict[str, Count]:
    return {
        "total": Count("id"),
        "approved": Count("id", filter=Q(status=ApprovalStatus.APPROVED)),
        "pending": Count("id", filter=Q(status=ApprovalStatus.PENDING_APPROVAL)),
        "draft": Count("id", filter=Q(status=ApprovalStatus.DRAFT)),
        "rejected": Count("id", filter=Q(status=ApprovalStatus.REJECTED)),
    }


def status_distribution(queryset) -> Dict[str, int]:
    totals = queryset.aggregate(**status_counts())
    return {key: totals[key] for key in ("draft", "pending", "approved", "rejected")}


def teacher_name_from_row(row) -> str:
    full_name = f"{row['teacher__first_name']} {row['teacher__last_name']}".strip()
    return full_name or row["teacher__username"]


def per_teacher_rows(queryset):
    return (
        queryset.values(
            "teacher_id", "teacher__first_name", "teacher__last_name", "teacher__username"
        )
        .annotate(**status_counts())
        .order_by("teacher__first_name", "teacher__last_name", "teacher__username")
    )


def term_week_counts(queryset) -> Dict[str, int]:
    """Entry counts keyed like "Term 1 - Week 3" """
    rows = (
        queryset.values("term", "week_number")
        .annotate(count=Count("id"))
        .order_by("term", "week_number")
    )
    return {
        f"{Term(row['term']).label} - Week {row['week_number']}": row["count"]
        for row in rows
    }


def get_sapet_analytics() -> Dict[str, Any]:
    sessions = LearningSupport.objects.all()
    distribution = status_distribution(sessions)

    online = sessions.annotate(link=Trim("teams_link")).exclude(link="").count()
    total = sessions.count()

    attendance = SapetAttendance.objects.aggregate(
        total=Count("id"),
        present=Count("id", filter=Q(status=SapetAttendance.Status.PRESENT)),
        absent=Count("id", filter=Q(status=SapetAttendance.Status.ABSENT)),
    )
    rate = round(attendance["present"] / attendance["total"] * 100, 1) if attendance["total"] else 0

    by_day = {"Saturday": 0, "Sunday": 0, "Other": 0}
    for row in sessions.exclude(sapet_day="").values("sapet_day").annotate(count=Count("id")):
        key = row["sapet_day"] if row["sapet_day"] in ("Saturday", "Sunday") else "Other"
        by_day[key] += row["count"]

    per_session = (
        SapetAttendance.objects.values("learning_support_id")
        .annotate(
            present=Count("id", filter=Q(status=SapetAttendance.Status.PRESENT)),
            absent=Count("id", filter=Q(status=SapetAttendance.Status.ABSENT)),
            total=Count("id"),
        )
        .order_by("learning_support_id")
    )

    return {
        "summary": {
            "totalSessions": total,
            "approvedSessions": distribution["approved"],
            "pendingSessions": distribution["pending"],
            "inSchoolSessions": total - online,
            "onlineSessions": online,
            "totalStudentsTracked": attendance["total"],
            "attendanceRate": rate,
            "presentCount": attendance["present"],
            "absentCount": attendance["absent"],
        },
        "sessionsPerTeacher": [
            {
                "teacherName": teacher_name_from_row(row),
                "totalSessions": row["total"],
                "approvedSessions": row["approved"],
                "pendingSessions": row["pending"],
                "draftSessions": row["draft"],
            }
            for row in per_teacher_rows(sessions)
        ],
        "sessionsByClass": [
            {"className": row["classroom__name"], "count": row["count"]}
            for row in sessions.values("classroom__name")
            .annotate(count=Count("id"))
            .order_by("classroom__name")
        ],
        "sessionsByDay": by_day,
        "sessionsByTermWeek": term_week_counts(sessions),
        "statusDistribution": distribution,
        "attendancePerSession": [
            {
                "sessionId": row["learning_support_id"],
                "present": row["present"],
                "absent": row["absent"],
                "total": row["total"],
            }
            for row in per_session
        ],
    }


def get_summary_analytics() -> Dict[str, Any]:
    summaries = LearningSummary.objects.all()
    distribution = status_distribution(summaries)
    total = summaries.count()

    with_quiz = summaries.exclude(quiz_day="").filter(quiz_date__isnull=False)

    by_term = {term: 0 for term in Term.values}
    for row in summaries.values("term").annotate(count=Count("id")):
        by_term[row["term"]] = row["count"]

    by_day = {day: 0 for day in WEEKDAY_NAMES}
    for row in summaries.exclude(quiz_day="").values("quiz_day").annotate(count=Count("id")):
        by_day[row["quiz_day"]] = by_day.get(row["quiz_day"], 0) + row["count"]

    per_teacher: List[Dict[str, Any]] = [
        {
            "teacherId": row["teacher_id"],
            "teacherName": teacher_name_from_row(row),
            "totalEntries": row["total"],
            "approvedEntries": row["approved"],
            "pendingEntries": row["pending"],
            "draftEntries": row["draft"],
        }
        for row in per_teacher_rows(summaries)
    ]

    return {
        "summary": {
            "totalEntries": total,
            "approvedEntries": distribution["approved"],
            "pendingEntries": distribution["pending"],
            "draftEntries": distribution["draft"],
            "rejectedEntries": distribution["rejected"],
            "entriesWithQuiz": with_quiz.count(),
            "approvedWithQuiz": with_quiz.filter(status=ApprovalStatus.APPROVED).count(),
            "approvalRate": round(distribution["approved"] / total * 100) if total else 0,
        },
        "entriesPerTeacher": per_teacher,
        "entriesPerClass": [
            {"classId": row["classroom_id"], "className": row["classroom__name"], "count": row["count"]}
            for row in summaries.values("classroom_id", "classroom__name")
            .annotate(count=Count("id"))
            .order_by("classroom__name")
        ],
        "entriesPerSubject": [
            {"subjectId": row["subject_id"], "subjectName": row["subject__name"], "count": row["count"]}
            for row in summaries.values("subject_id", "subject__name")
            .annotate(count=Count("id"))
            .order_by("subject__name")
        ],
        "entriesByTerm": by_term,
        "entriesByTermWeek": term_week_counts(summaries),
        "quizzesByDay": by_day,
        "statusDistribution": distribution,
    }
