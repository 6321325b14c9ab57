from django.contrib.auth.models import User
from django.db import models


class LoginAudit(models.Model):
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="login_audits"
    )
    username = models.CharField(max_length=150)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    login_at = models.DateTimeField(auto_now_add=True)
    success = models.BooleanField(default=True)

    class Meta:
        ordering = ["-login_at"]

    def __str__(self):
        outcome = "success" if self.success else "failed"
        return f"{self.username} - {self.login_at:%Y-%m-%d %H:%M} - {outcome}"
