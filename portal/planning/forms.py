import re

from django import forms
from django.core.exceptions import ValidationError

from academics.bell_schedules import FRI, get_day_key, max_periods_for
from students.models import Classroom, Subject
from .models import LearningSummary, LearningSupport
from .term_utils import get_week_dates, grade_from_class_name, weekday_name

TEAMS_LINK_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)

COMMON_FIELD_MAP = {
    "term": "term",
    "weekNumber": "week_number",
    "grade": "grade",
    "classId": "classroom",
    "subjectId": "subject",
}

SUMMARY_FIELD_MAP = {
    **COMMON_FIELD_MAP,
    "upcomingTopics": "upcoming_topics",
    "quizDay": "quiz_day",
    "quizDate": "quiz_date",
    "quizTime": "quiz_period",
}

SUPPORT_FIELD_MAP = {
    **COMMON_FIELD_MAP,
    "sessionType": "session_type",
    "teamsLink": "teams_link",
    "location": "location",
    "sapetDay": "sapet_day",
    "sapetDate": "sapet_date",
    "sapetTime": "sapet_time",
}


class PlanningEntryForm(forms.ModelForm):
    """Shared validation for weekly planning entries; the owning teacher is passed in"""

    week_number = forms.IntegerField(min_value=1, max_value=20)

    def __init__(self, *args, teacher=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.teacher = teacher if teacher is not None else self.instance.teacher
        self.fields["classroom"].queryset = Classroom.objects.all()
        self.fields["subject"].queryset = Subject.objects.all()
        self.fields["classroom"].error_messages["invalid_choice"] = "Class not found"
        self.fields["subject"].error_messages["invalid_choice"] = "Subject not found"

    def same_week_entries(self, term, week_number):
        entries = self._meta.model.objects.filter(term=term, week_number=week_number)
        if self.instance.pk:
            entries = entries.exclude(pk=self.instance.pk)
        return entries

    def other_entries(self):
        entries = self._meta.model.objects.all()
        if self.instance.pk:
            entries = entries.exclude(pk=self.instance.pk)
        return entries

    def clean(self):
        cleaned_data = super().clean()
        term = cleaned_data.get("term")
        week_number = cleaned_data.get("week_number")
        classroom = cleaned_data.get("classroom")

        if term and week_number:
            self.instance.week_start_date, self.instance.week_end_date = get_week_dates(
                term, week_number
            )
        if classroom and not cleaned_data.get("grade"):
            cleaned_data["grade"] = grade_from_class_name(classroom.name)
        return cleaned_data


class LearningSummaryForm(PlanningEntryForm):
    class Meta:
        model = LearningSummary
        fields = [
            "term",
            "week_number",
            "grade",
            "classroom",
            "subject",
            "upcoming_topics",
            "quiz_day",
            "quiz_date",
            "quiz_period",
        ]

    def clean(self):
        cleaned_data = super().clean()
        term = cleaned_data.get("term")
        week_number = cleaned_data.get("week_number")
        classroom = cleaned_data.get("classroom")
        subject = cleaned_data.get("subject")
        quiz_date = cleaned_data.get("quiz_date")
        quiz_period = cleaned_data.get("quiz_period")

        if not (term and week_number and classroom and subject):
            return cleaned_data

        if (
            self.same_week_entries(term, week_number)
            .filter(classroom=classroom, subject=subject)
            .exists()
        ):
            raise ValidationError(
                f"A learning summary already exists for this class and subject in Week {week_number}"
            )

        if not quiz_date:
            cleaned_data["quiz_day"] = ""
            cleaned_data["quiz_period"] = None
            return cleaned_data

        if quiz_date.weekday() >= 5:
            raise ValidationError("Quizzes cannot be scheduled on weekends.")

        if quiz_period is not None:
            max_period = max_periods_for(quiz_date)
            if not 1 <= quiz_period <= max_period:
                day_label = "Friday" if get_day_key(quiz_date) == FRI else "Mon-Thu"
                raise ValidationError(
                    f"Invalid period. {day_label} has max {max_period} periods."
                )

        same_day = self.other_entries().filter(quiz_date=quiz_date)
        if same_day.filter(classroom=classroom).exists():
            raise ValidationError(
                f"This class already has a quiz scheduled for {quiz_date:%d/%m/%Y}. "
                "Each class can only have one quiz per day."
            )

        if (
            quiz_period is not None
            and same_day.filter(teacher=self.teacher, quiz_period=quiz_period).exists()
        ):
            raise ValidationError(
                f"You already have a quiz scheduled for Period {quiz_period} on {quiz_date:%d/%m/%Y}"
            )

        cleaned_data["quiz_day"] = weekday_name(quiz_date)
        return cleaned_data


class LearningSupportForm(PlanningEntryForm):
    class Meta:
        model = LearningSupport
        fields = [
            "term",
            "week_number",
            "grade",
            "classroom",
            "subject",
            "session_type",
            "teams_link",
            "location",
            "sapet_day",
            "sapet_date",
            "sapet_time",
        ]

    def clean_teams_link(self):
        teams_link = self.cleaned_data["teams_link"].strip()
        if teams_link and not TEAMS_LINK_PATTERN.match(teams_link):
            raise ValidationError("Invalid Teams link URL")
        return teams_link

    def clean(self):
        cleaned_data = super().clean()
        classroom = cleaned_data.get("classroom")
        sapet_date = cleaned_data.get("sapet_date")
        sapet_time = (cleaned_data.get("sapet_time") or "").strip()

        if not (classroom and sapet_date):
            return cleaned_data

        same_day = self.other_entries().filter(sapet_date=sapet_date)
        if same_day.filter(classroom=classroom).exists():
            raise ValidationError(
                f"This class already has a SAPET session scheduled for {sapet_date:%d/%m/%Y}"
            )

        if sapet_time and same_day.filter(teacher=self.teacher, sapet_time=sapet_time).exists():
            raise ValidationError(
                f"You already have a SAPET session scheduled for {sapet_date:%d/%m/%Y} at {sapet_time}"
            )

        cleaned_data["sapet_time"] = sapet_time
        cleaned_data["sapet_day"] = weekday_name(sapet_date)
        return cleaned_data
