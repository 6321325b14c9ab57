from django import forms
from django.core.exceptions import ValidationError

from .models import Classroom, Student, Subject

CLASSROOM_FIELD_MAP = {"name": "name"}
SUBJECT_FIELD_MAP = {"name": "name", "code": "code"}
STUDENT_FIELD_MAP = {"name": "name", "studentId": "student_id", "classId": "classroom"}


class ClassroomForm(forms.ModelForm):
    class Meta:
        model = Classroom
        fields = ["name"]
        error_messages = {
            "name": {"unique": "A class with this name already exists"},
        }

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        if not name:
            raise ValidationError("Class name is required")
        return name


class SubjectForm(forms.ModelForm):
    class Meta:
        model = Subject
        fields = ["name", "code"]
        error_messages = {
            "code": {"unique": "A subject with this code already exists"},
        }

    def clean_name(self):
        return self.cleaned_data["name"].strip()

    def clean_code(self):
        code = self.cleaned_data["code"].strip().upper()
        if not code:
            raise ValidationError("Subject code is required")
        return code


class StudentForm(forms.ModelForm):
    class Meta:
        model = Student
        fields = ["name", "student_id", "classroom"]
        error_messages = {
            "student_id": {"unique": "Student ID already exists"},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["classroom"].queryset = Classroom.objects.all()
        self.fields["classroom"].error_messages["invalid_choice"] = "Class not found"

    def clean_name(self):
        return self.cleaned_data["name"].strip()

    def clean_student_id(self):
        return self.cleaned_data["student_id"].strip()
