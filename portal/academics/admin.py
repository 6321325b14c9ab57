from django.contrib import admin

from .models import ExamEvent


@admin.register(ExamEvent)
class ExamEventAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "exam_type",
        "date",
        "period",
        "classroom",
        "subject",
        "created_by",
        "status",
    )
    list_filter = ("exam_type", "status", "classroom", "subject")
    search_fields = ("title", "notes", "created_by__username")
    date_hierarchy = "date"

    def get_queryset(self, request):
        return (
            super()
            .get_queryset(request)
            .select_related("classroom", "subject", "created_by")
        )
