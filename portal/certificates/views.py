import logging
from typing import Any, Dict

from django.db import transaction
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from base.api_utils import (
    api_login_required,
    first_form_error,
    form_data_from_payload,
    json_error,
    read_json,
)
from base.views import get_user_department, get_user_role
from staff.models import Role
from .forms import TEMPLATE_FIELD_MAP, CertificateTemplateForm, IssueCertificatesForm
from .models import Certificate, CertificateTemplate
from .rendering import build_payload, generate_certificate_pdf, render_certificate_html

logger = logging.getLogger(__name__)


# ==================== HELPER FUNCTIONS ====================


def isoformat_or_none(value):
    return value.isoformat() if value else None


def serialize_template(template: CertificateTemplate) -> Dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "htmlTemplate": template.html_template,
        "cssTemplate": template.css_template,
        "isActive": template.is_active,
        "version": template.version,
        "createdAt": template.created_at.isoformat(),
        "updatedAt": template.updated_at.isoformat(),
    }


def serialize_certificate(certificate: Certificate) -> Dict[str, Any]:
    return {
        "id": certificate.id,
        "publicId": certificate.public_id,
        "templateId": certificate.template_id,
        "templateName": certificate.template.name,
        "recipientUserId": certificate.recipient_id,
        "issuedByUserId": certificate.issued_by_id,
        "recipientName": certificate.recipient_name,
        "recipientRole": certificate.recipient_role,
        "recipientDepartment": certificate.recipient_department or None,
        "title": certificate.title,
        "status": certificate.effective_status,
        "issuedAt": certificate.issued_at.isoformat(),
        "revokedAt": isoformat_or_none(certificate.revoked_at),
        "expiresAt": isoformat_or_none(certificate.expires_at),
    }


def certificates_with_template():
    return Certificate.objects.select_related("template")


def get_viewable_certificate(request, public_id):
    """Return (certificate, error response); only the recipient and admins may view"""
    certificate = certificates_with_template().filter(public_id=public_id).first()
    if certificate is None:
        return None, json_error("Certificate not found", status=404)
    if (
        certificate.recipient_id != request.user.id
        and get_user_role(request.user) != Role.ADMIN
    ):
        return None, json_error("Access denied", status=403)
    return certificate, None


# ==================== TEMPLATES ====================


@api_login_required
@require_http_methods(["GET", "POST"])
def certificate_templates(request: HttpRequest):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    if request.method == "GET":
        return JsonResponse(
            [serialize_template(t) for t in CertificateTemplate.objects.all()], safe=False
        )

    payload, error = read_json(request)
    if error:
        return error
    payload.setdefault("isActive", True)

    form = CertificateTemplateForm(form_data_from_payload(payload, TEMPLATE_FIELD_MAP))
    if not form.is_valid():
        return json_error(first_form_error(form))
    template = form.save()
    return JsonResponse(serialize_template(template), status=201)


@api_login_required
@require_http_methods(["PATCH", "DELETE"])
def certificate_template_detail(request: HttpRequest, template_id: int):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    template = CertificateTemplate.objects.filter(pk=template_id).first()
    if template is None:
        return json_error("Template not found", status=404)

    if request.method == "DELETE":
        issued = template.certificates.count()
        if issued:
            return json_error(
                f"Cannot delete template. {issued} certificate(s) were issued from it."
            )
        template.delete()
        return JsonResponse({"message": "Template deleted successfully"})

    payload, error = read_json(request)
    if error:
        return error

    form = CertificateTemplateForm(
        form_data_from_payload(payload, TEMPLATE_FIELD_MAP, instance=template),
        instance=template,
    )
    if not form.is_valid():
        return json_error(first_form_error(form))
    template = form.save()
    return JsonResponse(serialize_template(template))


# ==================== CERTIFICATES ====================


@api_login_required
@require_GET
def certificates(request: HttpRequest):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)
    return JsonResponse(
        [serialize_certificate(c) for c in certificates_with_template()], safe=False
    )


@api_login_required
@require_GET
def my_certificates(request: HttpRequest):
    mine = certificates_with_template().filter(recipient=request.user)
    return JsonResponse([serialize_certificate(c) for c in mine], safe=False)


@api_login_required
@require_POST
def issue_certificates(request: HttpRequest):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    payload, error = read_json(request)
    if error:
        return error

    form = IssueCertificatesForm(
        form_data_from_payload(
            payload,
            {
                "templateId": "template",
                "userIds": "recipients",
                "title": "title",
                "expiresAt": "expires_at",
            },
        )
    )
    if not form.is_valid():
        return json_error(first_form_error(form))

    template = form.cleaned_data["template"]
    issued = []
    with transaction.atomic():
        for recipient in form.cleaned_data["recipients"]:
            department = get_user_department(recipient)
            certificate = Certificate(
                template=template,
                recipient=recipient,
                issued_by=request.user,
                recipient_name=recipient.get_full_name() or recipient.username,
                recipient_role=get_user_role(recipient),
                recipient_department=department.name if department else "",
                title=form.cleaned_data["title"],
                expires_at=form.cleaned_data["expires_at"],
            )
            certificate.payload = build_payload(certificate)
            certificate.save()
            issued.append(certificate)

    logger.info(
        "%s issued %d '%s' certificate(s) from template %s",
        request.user,
        len(issued),
        form.cleaned_data["title"],
        template.id,
    )
    return JsonResponse([serialize_certificate(c) for c in issued], safe=False, status=201)


@api_login_required
@require_POST
def revoke_certificate(request: HttpRequest, certificate_id: int):
    if get_user_role(request.user) != Role.ADMIN:
        return json_error("Access denied", status=403)

    certificate = certificates_with_template().filter(pk=certificate_id).first()
    if certificate is None:
        return json_error("Certificate not found", status=404)
    if certificate.status != Certificate.Status.ISSUED:
        return json_error("Only issued certificates can be revoked")

    certificate.status = Certificate.Status.REVOKED
    certificate.revoked_at = timezone.now()
    certificate.save(update_fields=["status", "revoked_at"])
    logger.info("Certificate %s revoked by %s", certificate.public_id, request.user)
    return JsonResponse(serialize_certificate(certificate))


@api_login_required
@require_GET
def certificate_html(request: HttpRequest, public_id: str):
    certificate, error = get_viewable_certificate(request, public_id)
    if error:
        return error
    return HttpResponse(render_certificate_html(certificate), content_type="text/html")


@api_login_required
@require_GET
def certificate_pdf(request: HttpRequest, public_id: str):
    certificate, error = get_viewable_certificate(request, public_id)
    if error:
        return error

    try:
        pdf = generate_certificate_pdf(certificate)
    except OSError:
        logger.exception("wkhtmltopdf failed for certificate %s", public_id)
        return json_error("Failed to generate certificate PDF", status=500)

    response = HttpResponse(pdf, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="certificate_{public_id}.pdf"'
    return response


@require_GET
def verify_certificate(request: HttpRequest, public_id: str):
    """Public check behind the verify link printed on each certificate"""
    certificate = Certificate.objects.filter(public_id=public_id.upper()).first()
    if certificate is None:
        return JsonResponse(
            {"valid": False, "status": "NOT_FOUND", "message": "Certificate not found"},
            status=404,
        )

    status = certificate.effective_status
    return JsonResponse(
        {
            "valid": status == Certificate.Status.ISSUED,
            "status": status,
            "certificateId": certificate.public_id,
            "recipientName": certificate.recipient_name,
            "recipientRole": certificate.recipient_role,
            "recipientDepartment": certificate.recipient_department or None,
            "title": certificate.title,
            "issuedAt": certificate.issued_at.isoformat(),
            "revokedAt": isoformat_or_none(certificate.revoked_at),
            "expiresAt": isoformat_or_none(certificate.expires_at),
        }
    )
