from typing import Optional

from django import forms
from django.core.exceptions import ValidationError
from django.utils import timezone

from students.models import Classroom, Subject
from .bell_schedules import FRI, get_day_key, max_periods_for
from .models import PERIOD_TAKEN_MESSAGE, ExamEvent

# JSON payload key -> form field
EXAM_FIELD_MAP = {
    "title": "title",
    "type": "exam_type",
    "date": "date",
    "period": "period",
    "classId": "classroom",
    "subjectId": "subject",
    "notes": "notes",
}


def check_booking_conflicts(
    classroom: Classroom,
    exam_date,
    period: int,
    exam_type: str,
    exclude_id: Optional[int] = None,
) -> Optional[str]:
    """Return the reason a booking clashes with the master schedule, if any"""
    scheduled = ExamEvent.objects.filter(
        classroom=classroom,
        date=exam_date,
        status=ExamEvent.Status.SCHEDULED,
    )
    if exclude_id:
        scheduled = scheduled.exclude(id=exclude_id)

    if scheduled.filter(period=period).exists():
        return PERIOD_TAKEN_MESSAGE

    if (
        exam_type == ExamEvent.Type.QUIZ
        and scheduled.filter(exam_type=ExamEvent.Type.QUIZ).exists()
    ):
        return "Only one quiz is allowed per class per day. Please choose another day."

    return None


class ExamEventForm(forms.ModelForm):
    """Create or reschedule a booking on the master schedule"""

    class Meta:
        model = ExamEvent
        fields = ["title", "exam_type", "date", "period", "classroom", "subject", "notes"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["classroom"].queryset = Classroom.objects.all()
        self.fields["subject"].queryset = Subject.objects.all()
        self.fields["classroom"].error_messages["invalid_choice"] = "Class not found"
        self.fields["subject"].error_messages["invalid_choice"] = "Subject not found"

    def clean_title(self):
        title = self.cleaned_data["title"].strip()
        if not title:
            raise ValidationError("Title is required")
        return title

    def clean(self):
        cleaned_data = super().clean()
        exam_date = cleaned_data.get("date")
        period = cleaned_data.get("period")
        classroom = cleaned_data.get("classroom")
        exam_type = cleaned_data.get("exam_type")

        if exam_date is None or period is None or classroom is None:
            return cleaned_data

        if exam_date.weekday() >= 5:
            raise ValidationError("Bookings are not allowed on weekends.")

        if not self.instance.pk and exam_date < timezone.localdate():
            raise ValidationError("Cannot book a date in the past.")

        max_period = max_periods_for(exam_date)
        if not 1 <= period <= max_period:
            day_label = "Friday" if get_day_key(exam_date) == FRI else "Mon-Thu"
            raise ValidationError(
                f"Invalid period. {day_label} has max {max_period} periods."
            )

        conflict = check_booking_conflicts(
            classroom, exam_date, period, exam_type, exclude_id=self.instance.pk
        )
        if conflict:
            raise ValidationError(conflict)

        return cleaned_data
