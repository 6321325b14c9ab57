from django.contrib.auth.models import User
from django.db import models

from academics.models import ExamEvent
from students.models import Classroom, Student, Subject


class Term(models.TextChoices):
    TERM_1 = "TERM_1", "Term 1"
    TERM_2 = "TERM_2", "Term 2"
    TERM_3 = "TERM_3", "Term 3"


class ApprovalStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    PENDING_APPROVAL = "PENDING_APPROVAL", "Pending approval"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"


class PlanningEntry(models.Model):
    """Fields shared by the weekly planning records teachers submit for approval"""

    term = models.CharField(max_length=10, choices=Term.choices)
    week_number = models.PositiveSmallIntegerField()
    week_start_date = models.DateField()
    week_end_date = models.DateField()
    grade = models.CharField(max_length=10, blank=True)
    classroom = models.ForeignKey(
        Classroom, on_delete=models.PROTECT, related_name="%(class)s_entries"
    )
    subject = models.ForeignKey(
        Subject, on_delete=models.PROTECT, related_name="%(class)s_entries"
    )
    teacher = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="%(class)s_entries"
    )
    status = models.CharField(
        max_length=20, choices=ApprovalStatus.choices, default=ApprovalStatus.DRAFT
    )
    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    approval_comments = models.TextField(blank=True)
    linked_exam = models.ForeignKey(
        ExamEvent,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["term", "week_number", "classroom__name"]


class LearningSummary(PlanningEntry):
    upcoming_topics = models.TextField(blank=True)
    quiz_day = models.CharField(max_length=10, blank=True)
    quiz_date = models.DateField(null=True, blank=True)
    quiz_period = models.PositiveSmallIntegerField(null=True, blank=True)

    class Meta(PlanningEntry.Meta):
        verbose_name_plural = "learning summaries"

    def __str__(self):
        return f"{self.classroom} - {self.subject.code} - {self.term} W{self.week_number}"


class LearningSupport(PlanningEntry):
    session_type = models.CharField(max_length=50, blank=True)
    teams_link = models.CharField(max_length=500, blank=True)
    location = models.CharField(max_length=100, blank=True)
    sapet_day = models.CharField(max_length=10, blank=True)
    sapet_date = models.DateField(null=True, blank=True)
    sapet_time = models.CharField(max_length=20, blank=True)

    class Meta(PlanningEntry.Meta):
        verbose_name_plural = "learning support sessions"

    def __str__(self):
        return f"SAPET {self.classroom} - {self.subject.code} - {self.sapet_date or self.term}"


class SapetAttendance(models.Model):
    class Status(models.TextChoices):
        PRESENT = "PRESENT", "Present"
        ABSENT = "ABSENT", "Absent"

    learning_support = models.ForeignKey(
        LearningSupport, on_delete=models.CASCADE, related_name="attendance"
    )
    student = models.ForeignKey(
        Student, on_delete=models.CASCADE, related_name="sapet_attendance"
    )
    status = models.CharField(max_length=10, choices=Status.choices)
    marked_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    marked_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("learning_support", "student")
        ordering = ["student__name"]

    def __str__(self):
        return f"{self.student} - {self.status}"
