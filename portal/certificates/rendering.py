import re
from html import escape

import pdfkit
from django.conf import settings

PLACEHOLDER_PATTERN = re.compile(r"{{\s*(\w+)\s*}}")

CERTIFICATE_PDF_OPTIONS = {
    "page-size": "A4",
    "orientation": "landscape",
    "margin-top": "0.4in",
    "margin-right": "0.4in",
    "margin-bottom": "0.4in",
    "margin-left": "0.4in",
    "encoding": "UTF-8",
}


def verify_url(public_id):
    return f"{settings.SITE_URL.rstrip('/')}/verify/{public_id}"


def build_payload(certificate):
    """Values available to template placeholders, frozen at issue time"""
    return {
        "name": certificate.recipient_name,
        "role": certificate.recipient_role,
        "department": certificate.recipient_department,
        "title": certificate.title,
        "issued_at": certificate.issued_at.strftime("%d %B %Y"),
        "certificate_id": certificate.public_id,
        "verify_url": verify_url(certificate.public_id),
    }


def fill_placeholders(html_template, values):
    """Replace {{token}} with the escaped value; unknown tokens are left as written"""

    def replace(match):
        token = match.group(1)
        if token not in values:
            return match.group(0)
        return escape(str(values[token] or ""))

    return PLACEHOLDER_PATTERN.sub(replace, html_template)


def render_certificate_html(certificate):
    template = certificate.template
    values = certificate.payload or build_payload(certificate)
    body = fill_placeholders(template.html_template, values)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{escape(certificate.title)}</title>\n"
        f"<style>{template.css_template}</style>\n"
        "</head>\n<body>\n"
        f"{body}\n"
        "</body>\n</html>\n"
    )


def generate_certificate_pdf(certificate):
    """Render the certificate through wkhtmltopdf; returns the PDF bytes"""
    html = render_certificate_html(certificate)
    configuration = None
    if settings.WKHTMLTOPDF_PATH:
        configuration = pdfkit.configuration(wkhtmltopdf=settings.WKHTMLTOPDF_PATH)
    return pdfkit.from_string(
        html, False, options=CERTIFICATE_PDF_OPTIONS, configuration=configuration
    )
