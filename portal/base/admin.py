from django.contrib import admin

from .models import LoginAudit


@admin.register(LoginAudit)
class LoginAuditAdmin(admin.ModelAdmin):
    list_display = ("username", "login_at", "ip_address", "success")
    list_filter = ("success",)
    search_fields = ("username", "ip_address")
    readonly_fields = ("user", "username", "ip_address", "user_agent", "login_at", "success")
