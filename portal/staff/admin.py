from django.contrib import admin

from .models import Department, Staff


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "department", "last_accessed_at")
    list_filter = ("role", "department")
    search_fields = ("user__username", "user__first_name", "user__last_name")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("user", "department")


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("name", "display_name", "is_active")
    search_fields = ("name", "display_name")
