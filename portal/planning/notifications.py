import logging
from smtplib import SMTPException
from typing import List

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from .models import LearningSummary, Term
from .term_utils import WEEKDAY_NAMES

logger = logging.getLogger(__name__)


def send_html_email(subject: str, html: str, recipients: List[str]) -> bool:
    """Send an HTML email with a plain-text fallback; delivery problems are logged, not raised"""
    try:
        send_mail(
            subject,
            strip_tags(html),
            settings.DEFAULT_FROM_EMAIL,
            recipients,
            html_message=html,
        )
    except (SMTPException, OSError):
        logger.exception("Failed to send email '%s' to %s", subject, recipients)
        return False
    return True


def send_booking_notification(entry) -> bool:
    """Tell the teacher their planning entry was confirmed"""
    teacher = entry.teacher
    if not teacher.email:
        logger.info("No email address for %s, skipping booking notification", teacher)
        return False

    entry_label = "Learning Summary" if isinstance(entry, LearningSummary) else "Learning Support"
    term_label = Term(entry.term).label
    html = render_to_string(
        "planning/booking_confirmation_email.html",
        {
            "entry": entry,
            "entry_label": entry_label,
            "term_label": term_label,
            "teacher_name": teacher.get_full_name() or teacher.username,
            "school_name": settings.SCHOOL_NAME,
        },
    )
    subject = (
        f"{entry_label} Booking Confirmation - {entry.classroom.name} "
        f"({term_label} Week {entry.week_number})"
    )
    return send_html_email(subject, html, [teacher.email])


def send_summaries_report(summaries, term: str, week_number: int, recipients: List[str]) -> bool:
    term_label = Term(term).label
    html = render_to_string(
        "planning/summaries_report_email.html",
        {"summaries": summaries, "term_label": term_label, "week_number": week_number},
    )
    return send_html_email(
        f"Learning Summaries Report - {term_label} Week {week_number}", html, recipients
    )


def send_support_timetable(sessions, term: str, week_number: int, recipients: List[str]) -> bool:
    sessions_by_day = [
        (day, [s for s in sessions if s.sapet_day == day]) for day in WEEKDAY_NAMES[:5]
    ]
    term_label = Term(term).label
    html = render_to_string(
        "planning/support_timetable_email.html",
        {
            "sessions_by_day": sessions_by_day,
            "term_label": term_label,
            "week_number": week_number,
        },
    )
    return send_html_email(
        f"SAPET Timetable - {term_label} Week {week_number}", html, recipients
    )
