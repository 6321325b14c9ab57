from django.db import models

from academics.bell_schedules import get_grade_level


class Classroom(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def grade_level(self):
        return get_grade_level(self.name)


class Subject(models.Model):
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.code} - {self.name}"


class Student(models.Model):
    name = models.CharField(max_length=150)
    student_id = models.CharField(max_length=50, unique=True)
    classroom = models.ForeignKey(
        Classroom, on_delete=models.PROTECT, related_name="students"
    )

    class Meta:
        ordering = ["classroom__name", "name"]

    def __str__(self):
        return f"{self.name} ({self.student_id})"
