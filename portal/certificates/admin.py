from django.contrib import admin

from .models import Certificate, CertificateTemplate


@admin.register(CertificateTemplate)
class CertificateTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "version", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ("public_id", "title", "recipient_name", "status", "issued_at", "expires_at")
    list_filter = ("status", "template")
    search_fields = ("public_id", "recipient_name", "title")
    readonly_fields = ("public_id", "payload")
