from django import forms
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError

from .models import Department, Role, Staff, normalize_department_name

STAFF_FIELD_MAP = {
    "name": "name",
    "username": "username",
    "email": "email",
    "role": "role",
    "department": "department",
    "isActive": "is_active",
}


class DepartmentChoiceField(forms.ModelChoiceField):
    """Accepts a department id or its name"""

    def to_python(self, value):
        if isinstance(value, str) and value.strip() and not value.strip().isdigit():
            department = Department.objects.filter(
                name=normalize_department_name(value)
            ).first()
            if department is None:
                raise ValidationError(f"Invalid department '{value}'")
            return department
        return super().to_python(value)


class StaffCreateForm(forms.Form):
    """Form for creating a staff account with the default password"""

    name = forms.CharField(max_length=150)
    username = forms.CharField(max_length=150)
    email = forms.EmailField()
    role = forms.ChoiceField(choices=Role.choices)
    department = DepartmentChoiceField(
        queryset=Department.objects.all(), required=False
    )

    def clean_username(self):
        username = self.cleaned_data["username"].strip().lower()
        if User.objects.filter(username__iexact=username).exists():
            raise ValidationError("Username already exists")
        return username

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("Email already exists")
        return email

    def full_clean(self):
        # roles are accepted in any case
        if self.is_bound and isinstance(self.data.get("role"), str):
            self.data = self.data.copy()
            self.data["role"] = self.data["role"].strip().upper()
        super().full_clean()


class StaffEditForm(forms.Form):
    """Form for editing a staff account"""

    name = forms.CharField(max_length=150)
    email = forms.EmailField()
    role = forms.ChoiceField(choices=Role.choices)
    is_active = forms.BooleanField(required=False)
    department = DepartmentChoiceField(
        queryset=Department.objects.all(), required=False
    )

    def __init__(self, *args, staff: Staff, **kwargs):
        self.staff = staff
        super().__init__(*args, **kwargs)

    @staticmethod
    def initial_data(staff: Staff):
        return {
            "name": staff.name,
            "email": staff.user.email,
            "role": staff.role,
            "is_active": staff.user.is_active,
            "department": staff.department_id or "",
        }

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        if (
            User.objects.filter(email__iexact=email)
            .exclude(pk=self.staff.user_id)
            .exists()
        ):
            raise ValidationError("Email already exists")
        return email

    def save(self):
        user = self.staff.user
        first_name, _, last_name = self.cleaned_data["name"].strip().partition(" ")
        user.first_name = first_name
        user.last_name = last_name.strip()
        user.email = self.cleaned_data["email"]
        user.is_active = self.cleaned_data["is_active"]
        user.save()

        self.staff.role = self.cleaned_data["role"]
        self.staff.department = self.cleaned_data["department"]
        self.staff.save()
        return self.staff


class DepartmentForm(forms.ModelForm):
    class Meta:
        model = Department
        fields = ["name", "display_name", "is_active"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["display_name"].required = False
        self.fields["is_active"].required = False

    def clean_name(self):
        name = normalize_department_name(self.cleaned_data["name"])
        if not name:
            raise ValidationError("Department name is required")
        duplicates = Department.objects.filter(name=name)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise ValidationError("Department already exists")
        return name

    def clean(self):
        cleaned_data = super().clean()
        name = cleaned_data.get("name")
        if name and not cleaned_data.get("display_name"):
            cleaned_data["display_name"] = name.replace("_", " ").title()
        return cleaned_data


class PasswordResetForm(forms.Form):
    new_password = forms.CharField(
        min_length=6,
        error_messages={
            "min_length": "Password must be at least 6 characters",
            "required": "Password must be at least 6 characters",
        },
    )
