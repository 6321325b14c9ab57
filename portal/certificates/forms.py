from django import forms
from django.contrib.auth.models import User

from .models import CertificateTemplate

TEMPLATE_FIELD_MAP = {
    "name": "name",
    "htmlTemplate": "html_template",
    "cssTemplate": "css_template",
    "isActive": "is_active",
}


class CertificateTemplateForm(forms.ModelForm):
    class Meta:
        model = CertificateTemplate
        fields = ["name", "html_template", "css_template", "is_active"]

    def save(self, commit=True):
        template = super().save(commit=False)
        if template.pk and {"html_template", "css_template"} & set(self.changed_data):
            template.version += 1
        if commit:
            template.save()
        return template


class IssueCertificatesForm(forms.Form):
    """Issue one certificate per recipient from an active template"""

    template = forms.ModelChoiceField(
        queryset=CertificateTemplate.objects.filter(is_active=True),
        error_messages={"invalid_choice": "Template not found or inactive"},
    )
    recipients = forms.ModelMultipleChoiceField(
        queryset=User.objects.all(),
        error_messages={
            "required": "At least one recipient is required",
            "invalid_choice": "Recipient %(value)s not found",
        },
    )
    title = forms.CharField(max_length=200)
    expires_at = forms.DateTimeField(required=False)
