import re

from django.conf import settings
from django.contrib.auth.models import User
from django.db import models


class Role(models.TextChoices):
    TEACHER = "TEACHER", "Teacher"
    ADMIN = "ADMIN", "Admin"
    PRINCIPAL = "PRINCIPAL", "Principal"
    VICE_PRINCIPAL = "VICE_PRINCIPAL", "Vice Principal"
    COORDINATOR = "COORDINATOR", "Coordinator"
    LEAD_TEACHER = "LEAD_TEACHER", "Lead Teacher"


DEFAULT_DEPARTMENTS = [
    "SCIENCE",
    "MATHEMATICS",
    "ENGLISH",
    "ARABIC",
    "SOCIAL_STUDIES",
    "PHYSICAL_EDUCATION",
    "ARTS",
    "TECHNOLOGY",
    "ISLAMIC_STUDIES",
    "FRENCH",
]


def normalize_department_name(name):
    """SOCIAL studies -> SOCIAL_STUDIES"""
    return re.sub(r"\s+", "_", (name or "").strip()).upper()


class Department(models.Model):
    name = models.CharField(max_length=100, unique=True)
    display_name = models.CharField(max_length=150, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.display_name or self.name


class Staff(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="staff")
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.TEACHER)
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="staff",
    )
    last_accessed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "staff"

    def __str__(self):
        return self.name

    @property
    def name(self):
        return self.user.get_full_name() or self.user.username


def create_staff_account(
    name, username, email, role=Role.TEACHER, department=None, password=None
):
    """Create a Django user together with its staff profile"""
    first_name, _, last_name = name.strip().partition(" ")
    user = User.objects.create_user(
        username=username,
        email=email,
        password=password or settings.DEFAULT_STAFF_PASSWORD,
        first_name=first_name,
        last_name=last_name.strip(),
    )
    if role == Role.ADMIN:
        user.is_staff = True
        user.save(update_fields=["is_staff"])
    return Staff.objects.create(user=user, role=role, department=department)
