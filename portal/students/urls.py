from django.urls import path

from . import views

app_name = "students"

urlpatterns = [
    path("classes", views.classes, name="classes"),
    path("classes/<int:class_id>", views.class_detail, name="class_detail"),
    path("subjects", views.subjects, name="subjects"),
    path("subjects/<int:subject_id>", views.subject_detail, name="subject_detail"),
    path("students", views.students, name="students"),
    path("students/<int:student_id>", views.student_detail, name="student_detail"),
]
