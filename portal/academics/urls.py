from django.urls import path

from . import views

app_name = "academics"

urlpatterns = [
    path("exams", views.exams, name="exams"),
    path("exams/<int:exam_id>", views.exam_detail, name="exam_detail"),
    path("exams/<int:exam_id>/cancel", views.cancel_exam, name="cancel_exam"),
    path("bell-schedule", views.bell_schedule, name="bell_schedule"),
    path("schedule/pdf", views.schedule_pdf, name="schedule_pdf"),
    path("schedule/teacher-pdf", views.teacher_schedule_pdf, name="teacher_schedule_pdf"),
    path("analytics", views.class_subject_analytics, name="analytics"),
    path("analytics/teachers", views.teacher_analytics, name="teacher_analytics"),
    path(
        "analytics/weekly-utilization",
        views.weekly_utilization,
        name="weekly_utilization",
    ),
]
