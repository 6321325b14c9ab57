from django.urls import path

from . import views

app_name = "certificates"

urlpatterns = [
    path(
        "certificate-templates",
        views.certificate_templates,
        name="certificate_templates",
    ),
    path(
        "certificate-templates/<int:template_id>",
        views.certificate_template_detail,
        name="certificate_template_detail",
    ),
    path("certificates", views.certificates, name="certificates"),
    path("certificates/issue", views.issue_certificates, name="issue_certificates"),
    path(
        "certificates/<int:certificate_id>/revoke",
        views.revoke_certificate,
        name="revoke_certificate",
    ),
    path(
        "certificates/<str:public_id>/html",
        views.certificate_html,
        name="certificate_html",
    ),
    path(
        "certificates/<str:public_id>/pdf",
        views.certificate_pdf,
        name="certificate_pdf",
    ),
    path("my-certificates", views.my_certificates, name="my_certificates"),
    path("verify/<str:public_id>", views.verify_certificate, name="verify_certificate"),
]
