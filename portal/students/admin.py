from django.contrib import admin

from .models import Classroom, Student, Subject


@admin.register(Classroom)
class ClassroomAdmin(admin.ModelAdmin):
    list_display = ("name", "grade_level")
    search_fields = ("name",)


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("code", "name")
    search_fields = ("code", "name")


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("student_id", "name", "classroom")
    list_filter = ("classroom",)
    search_fields = ("student_id", "name")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("classroom")
