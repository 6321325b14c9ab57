from datetime import timedelta

import pytest
from django.test import Client
from django.utils import timezone

from certificates.models import Certificate, CertificateTemplate
from certificates.rendering import fill_placeholders
from conftest import api

TEMPLATE_HTML = (
    "<h1>{{ title }}</h1><p>Awarded to {{name}} ({{role}}, {{department}})</p>"
    "<p>{{certificate_id}} {{verify_url}} {{unknown_token}}</p>"
)


@pytest.fixture
def template(db):
    return CertificateTemplate.objects.create(
        name="Completion",
        html_template=TEMPLATE_HTML,
        css_template="h1 { color: navy; }",
    )


def issue(client, template, users, **extra):
    payload = {
        "templateId": template.id,
        "userIds": [u.id for u in users],
        "title": "Assessment Design Workshop",
    }
    payload.update(extra)
    return api(client, "post", "/api/certificates/issue", payload)


def test_placeholders_are_escaped_and_unknown_tokens_kept():
    html = fill_placeholders(
        "<p>{{ name }} - {{missing}}</p>", {"name": "<Tom & Jerry>"}
    )

    assert html == "<p>&lt;Tom &amp; Jerry&gt; - {{missing}}</p>"


def test_template_version_increments_on_content_change(admin_client):
    created = api(
        admin_client,
        "post",
        "/api/certificate-templates",
        {"name": "Award", "htmlTemplate": "<p>{{name}}</p>"},
    ).json()
    assert created["version"] == 1
    assert created["isActive"] is True

    url = f"/api/certificate-templates/{created['id']}"
    renamed = api(admin_client, "patch", url, {"name": "Award 2"}).json()
    assert renamed["version"] == 1

    updated = api(admin_client, "patch", url, {"cssTemplate": "p { margin: 0; }"}).json()
    assert updated["version"] == 2


def test_templates_are_admin_only(teacher_client):
    assert teacher_client.get("/api/certificate-templates").status_code == 403


def test_issue_snapshots_recipient_details(admin_client, admin_user, teacher, template, settings):
    response = issue(admin_client, template, [teacher])

    assert response.status_code == 201
    [body] = response.json()
    assert body["recipientName"] == "Teacher One"
    assert body["recipientRole"] == "TEACHER"
    assert body["recipientDepartment"] == "MATHEMATICS"
    assert body["status"] == "ISSUED"
    assert len(body["publicId"]) == 12

    certificate = Certificate.objects.get()
    assert certificate.issued_by == admin_user
    assert certificate.payload["verify_url"] == f"{settings.SITE_URL}/verify/{certificate.public_id}"


def test_issue_validates_template_and_recipients(admin_client, template):
    response = issue(admin_client, template, [])
    assert response.json()["message"] == "recipients: At least one recipient is required"

    template.is_active = False
    template.save()
    response = api(
        admin_client,
        "post",
        "/api/certificates/issue",
        {"templateId": template.id, "userIds": [1], "title": "X"},
    )
    assert response.json()["message"] == "template: Template not found or inactive"


def test_template_with_certificates_cannot_be_deleted(admin_client, teacher, template):
    issue(admin_client, template, [teacher])

    response = admin_client.delete(f"/api/certificate-templates/{template.id}")

    assert response.status_code == 400
    assert CertificateTemplate.objects.filter(pk=template.id).exists()


def test_rendered_html_embeds_css_and_values(admin_client, teacher, teacher_client, template):
    public_id = issue(admin_client, template, [teacher]).json()[0]["publicId"]

    response = teacher_client.get(f"/api/certificates/{public_id}/html")

    assert response.status_code == 200
    html = response.content.decode()
    assert "<style>h1 { color: navy; }</style>" in html
    assert "<h1>Assessment Design Workshop</h1>" in html
    assert "Awarded to Teacher One (TEACHER, MATHEMATICS)" in html
    assert "{{unknown_token}}" in html


def test_other_staff_cannot_view_certificate(admin_client, teacher, other_teacher_client, template):
    public_id = issue(admin_client, template, [teacher]).json()[0]["publicId"]

    assert other_teacher_client.get(f"/api/certificates/{public_id}/html").status_code == 403


def test_pdf_download_uses_pdfkit(admin_client, teacher, teacher_client, template, fake_pdfkit):
    public_id = issue(admin_client, template, [teacher]).json()[0]["publicId"]

    response = teacher_client.get(f"/api/certificates/{public_id}/pdf")

    assert response.status_code == 200
    assert response["Content-Type"] == "application/pdf"
    assert response.content == b"%PDF-1.4 fake"
    assert fake_pdfkit[0]["options"]["orientation"] == "landscape"
    assert "Teacher One" in fake_pdfkit[0]["html"]


def test_revoke_only_issued_certificates(admin_client, teacher, template):
    certificate_id = issue(admin_client, template, [teacher]).json()[0]["id"]
    url = f"/api/certificates/{certificate_id}/revoke"

    response = admin_client.post(url)
    assert response.status_code == 200
    assert response.json()["status"] == "REVOKED"
    assert response.json()["revokedAt"] is not None

    assert admin_client.post(url).json()["message"] == "Only issued certificates can be revoked"


def test_verify_reports_status(admin_client, teacher, template):
    public_id = issue(admin_client, template, [teacher]).json()[0]["publicId"]
    client = Client()

    body = client.get(f"/api/verify/{public_id}").json()
    assert body["valid"] is True
    assert body["status"] == "ISSUED"
    assert body["recipientName"] == "Teacher One"

    Certificate.objects.update(expires_at=timezone.now() - timedelta(days=1))
    body = client.get(f"/api/verify/{public_id}").json()
    assert body["valid"] is False
    assert body["status"] == "EXPIRED"

    response = client.get("/api/verify/DOESNOTEXIST")
    assert response.status_code == 404
    assert response.json()["status"] == "NOT_FOUND"


def test_my_certificates_lists_own_only(admin_client, teacher, other_teacher, teacher_client, template):
    issue(admin_client, template, [teacher, other_teacher])

    mine = teacher_client.get("/api/my-certificates").json()

    assert [c["recipientName"] for c in mine] == ["Teacher One"]
    assert len(admin_client.get("/api/certificates").json()) == 2
