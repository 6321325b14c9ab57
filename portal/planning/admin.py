from django.contrib import admin

from .models import LearningSummary, LearningSupport, SapetAttendance


@admin.register(LearningSummary)
class LearningSummaryAdmin(admin.ModelAdmin):
    list_display = ("classroom", "subject", "teacher", "term", "week_number", "quiz_date", "status")
    list_filter = ("term", "status", "classroom")
    search_fields = ("teacher__username", "upcoming_topics")


@admin.register(LearningSupport)
class LearningSupportAdmin(admin.ModelAdmin):
    list_display = ("classroom", "subject", "teacher", "term", "week_number", "sapet_date", "status")
    list_filter = ("term", "status", "classroom")
    search_fields = ("teacher__username", "location")


@admin.register(SapetAttendance)
class SapetAttendanceAdmin(admin.ModelAdmin):
    list_display = ("learning_support", "student", "status", "marked_at")
    list_filter = ("status",)
