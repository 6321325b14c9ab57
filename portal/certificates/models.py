import uuid

from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone


def generate_public_id():
    return uuid.uuid4().hex[:12].upper()


class CertificateTemplate(models.Model):
    name = models.CharField(max_length=200)
    html_template = models.TextField()
    css_template = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} (v{self.version})"


class Certificate(models.Model):
    class Status(models.TextChoices):
        ISSUED = "ISSUED", "Issued"
        REVOKED = "REVOKED", "Revoked"
        EXPIRED = "EXPIRED", "Expired"

    public_id = models.CharField(
        max_length=20, unique=True, default=generate_public_id, editable=False
    )
    template = models.ForeignKey(
        CertificateTemplate, on_delete=models.PROTECT, related_name="certificates"
    )
    recipient = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="certificates"
    )
    issued_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="issued_certificates",
    )
    recipient_name = models.CharField(max_length=200)
    recipient_role = models.CharField(max_length=20)
    recipient_department = models.CharField(max_length=100, blank=True)
    title = models.CharField(max_length=200)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.ISSUED
    )
    issued_at = models.DateTimeField(default=timezone.now)
    revoked_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    payload = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-issued_at"]

    def __str__(self):
        return f"{self.public_id} - {self.title} ({self.recipient_name})"

    @property
    def effective_status(self):
        """Issued certificates past their expiry date report as expired"""
        if (
            self.status == self.Status.ISSUED
            and self.expires_at is not None
            and self.expires_at <= timezone.now()
        ):
            return self.Status.EXPIRED
        return self.status
