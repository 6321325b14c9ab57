from django.urls import path

from . import views

app_name = "planning"

urlpatterns = [
    path("learning-summaries", views.learning_summaries, name="learning_summaries"),
    path(
        "learning-summaries/email",
        views.email_learning_summaries,
        name="email_learning_summaries",
    ),
    path(
        "learning-summaries/<int:entry_id>",
        views.learning_summary_detail,
        name="learning_summary_detail",
    ),
    path(
        "learning-summaries/<int:entry_id>/submit",
        views.submit_learning_summary,
        name="submit_learning_summary",
    ),
    path(
        "learning-summaries/<int:entry_id>/approve",
        views.approve_learning_summary,
        name="approve_learning_summary",
    ),
    path(
        "learning-summaries/<int:entry_id>/reject",
        views.reject_learning_summary,
        name="reject_learning_summary",
    ),
    path("learning-support", views.learning_support, name="learning_support"),
    path(
        "learning-support/email-timetable",
        views.email_support_timetable,
        name="email_support_timetable",
    ),
    path(
        "learning-support/<int:entry_id>",
        views.learning_support_detail,
        name="learning_support_detail",
    ),
    path(
        "learning-support/<int:entry_id>/submit",
        views.submit_learning_support,
        name="submit_learning_support",
    ),
    path(
        "learning-support/<int:entry_id>/approve",
        views.approve_learning_support,
        name="approve_learning_support",
    ),
    path(
        "learning-support/<int:entry_id>/reject",
        views.reject_learning_support,
        name="reject_learning_support",
    ),
    path(
        "learning-support/<int:entry_id>/students",
        views.support_students,
        name="support_students",
    ),
    path(
        "learning-support/<int:entry_id>/attendance",
        views.support_attendance,
        name="support_attendance",
    ),
    path("academic-planning/pdf/summaries", views.summaries_pdf, name="summaries_pdf"),
    path("academic-planning/pdf/support", views.support_pdf, name="support_pdf"),
    path("analytics/sapet", views.sapet_analytics, name="sapet_analytics"),
    path(
        "analytics/learning-summaries",
        views.learning_summary_analytics,
        name="learning_summary_analytics",
    ),
]
