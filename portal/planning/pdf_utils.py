from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from academics.bell_schedules import get_period_time
from academics.pdf_utils import BORDER_COLOR, PRIMARY_COLOR, get_styles
from .models import Term

ROW_SHADE = colors.HexColor("#F5F5F5")

SUMMARY_COLUMNS = [
    ("Grade", 0.5),
    ("Class", 1.0),
    ("Subject", 1.1),
    ("Code", 0.8),
    ("Teacher", 1.3),
    ("Topics", 2.6),
    ("Quiz Day", 0.8),
    ("Quiz Date", 0.8),
    ("Quiz Time", 0.9),
]

SUPPORT_COLUMNS = [
    ("Grade", 0.5),
    ("Code", 0.8),
    ("Class", 1.0),
    ("Teacher", 1.4),
    ("Teams Link", 3.4),
    ("SAPET Day", 0.9),
    ("SAPET Date", 0.9),
    ("SAPET Time", 0.9),
]


def display_name(user):
    return user.get_full_name() or user.username


def short_date(value):
    return f"{value:%b %d}" if value else "-"


def summary_row(entry):
    quiz_time = None
    if entry.quiz_date and entry.quiz_period:
        quiz_time = get_period_time(entry.classroom.name, entry.quiz_date, entry.quiz_period)
    return [
        entry.grade or "-",
        entry.classroom.name,
        entry.subject.name,
        entry.subject.code,
        display_name(entry.teacher),
        entry.upcoming_topics or "-",
        entry.quiz_day or "-",
        short_date(entry.quiz_date),
        quiz_time or (f"P{entry.quiz_period}" if entry.quiz_period else "-"),
    ]


def support_row(entry):
    return [
        entry.grade or "-",
        entry.subject.code,
        entry.classroom.name,
        display_name(entry.teacher),
        entry.teams_link or "-",
        entry.sapet_day or "-",
        short_date(entry.sapet_date),
        entry.sapet_time or "-",
    ]


def build_entry_table(columns, rows, styles):
    header = [Paragraph(escape(label), styles["header"]) for label, _ in columns]
    body = [[Paragraph(escape(str(cell)), styles["cell"]) for cell in row] for row in rows]
    table = Table([header] + body, colWidths=[width * inch for _, width in columns], repeatRows=1)

    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), PRIMARY_COLOR),
        ("GRID", (0, 0), (-1, -1), 0.5, BORDER_COLOR),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]
    for index in range(2, len(body) + 1, 2):
        commands.append(("BACKGROUND", (0, index), (-1, index), ROW_SHADE))
    table.setStyle(TableStyle(commands))
    return table


def generate_planning_pdf(title, term, week_number, columns, rows):
    """Landscape A4 table of approved planning entries for one teaching week"""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        rightMargin=0.5 * inch,
        title=title,
    )
    styles = get_styles()

    story = [
        Paragraph(escape(title), styles["title"]),
        Paragraph(
            f"{escape(settings.SCHOOL_NAME)} | {Term(term).label} - Week {week_number}",
            styles["subtitle"],
        ),
        Spacer(1, 6),
    ]
    if rows:
        story.append(build_entry_table(columns, rows, styles))
    else:
        story.append(Paragraph("No approved entries for this period.", styles["cell"]))

    story.append(Spacer(1, 10))
    story.append(
        Paragraph(
            f"Generated on {timezone.localtime():%b %d, %Y %H:%M}",
            styles["subtitle"],
        )
    )

    doc.build(story)
    buffer.seek(0)
    return buffer


def generate_summaries_pdf(term, week_number, entries):
    rows = [summary_row(entry) for entry in entries]
    return generate_planning_pdf("Learning Summaries", term, week_number, SUMMARY_COLUMNS, rows)


def generate_support_pdf(term, week_number, entries):
    rows = [support_row(entry) for entry in entries]
    return generate_planning_pdf(
        "Learning Support (SAPET Program)", term, week_number, SUPPORT_COLUMNS, rows
    )
