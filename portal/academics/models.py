from django.contrib.auth.models import User
from django.db import models

from students.models import Classroom, Subject

PERIOD_TAKEN_MESSAGE = (
    "This period already has a booking for this class. Please choose another period."
)


class ExamEvent(models.Model):
    class Type(models.TextChoices):
        HOMEWORK = "HOMEWORK", "Homework"
        QUIZ = "QUIZ", "Quiz"
        EXAM = "EXAM", "Exam"

    class Status(models.TextChoices):
        SCHEDULED = "SCHEDULED", "Scheduled"
        CANCELLED = "CANCELLED", "Cancelled"

    title = models.CharField(max_length=200)
    exam_type = models.CharField(max_length=10, choices=Type.choices)
    date = models.DateField()
    period = models.PositiveSmallIntegerField()
    classroom = models.ForeignKey(
        Classroom, on_delete=models.PROTECT, related_name="exam_events"
    )
    subject = models.ForeignKey(
        Subject, on_delete=models.PROTECT, related_name="exam_events"
    )
    created_by = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name="exam_events"
    )
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.SCHEDULED
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "period"]
        indexes = [models.Index(fields=["date", "classroom", "status"])]
        constraints = [
            models.UniqueConstraint(
                fields=["classroom", "date", "period"],
                condition=models.Q(status="SCHEDULED"),
                name="unique_scheduled_class_period",
                violation_error_message=PERIOD_TAKEN_MESSAGE,
            )
        ]

    def __str__(self):
        return f"{self.title} - {self.classroom} - {self.date} P{self.period}"
