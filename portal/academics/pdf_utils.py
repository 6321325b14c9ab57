from datetime import timedelta
from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from .bell_schedules import BELL_SCHEDULES, FRI, MAX_PERIODS, MON_THU

PRIMARY_COLOR = colors.HexColor("#1E3A5F")
HEADER_TEXT = colors.white
BORDER_COLOR = colors.HexColor("#CBD5E1")
UNAVAILABLE_COLOR = colors.HexColor("#E5E7EB")
LIGHT_TEXT = colors.HexColor("#6B7280")

CLASS_PALETTE = [
    "#2563EB",
    "#DC2626",
    "#059669",
    "#D97706",
    "#7C3AED",
    "#DB2777",
    "#0891B2",
    "#65A30D",
    "#EA580C",
    "#4F46E5",
]

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def class_color(class_id):
    return CLASS_PALETTE[class_id % len(CLASS_PALETTE)]


def get_styles():
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ScheduleTitle",
            parent=styles["Heading1"],
            fontSize=16,
            textColor=PRIMARY_COLOR,
            fontName="Helvetica-Bold",
            spaceAfter=2,
        ),
        "subtitle": ParagraphStyle(
            "ScheduleSubtitle",
            parent=styles["Normal"],
            fontSize=9,
            textColor=LIGHT_TEXT,
            spaceAfter=8,
        ),
        "header": ParagraphStyle(
            "ScheduleHeader",
            parent=styles["Normal"],
            fontSize=9,
            textColor=HEADER_TEXT,
            fontName="Helvetica-Bold",
            alignment=1,
        ),
        "cell": ParagraphStyle(
            "ScheduleCell",
            parent=styles["Normal"],
            fontSize=7,
            leading=9,
        ),
        "period": ParagraphStyle(
            "SchedulePeriod",
            parent=styles["Normal"],
            fontSize=8,
            leading=10,
            fontName="Helvetica-Bold",
            alignment=1,
        ),
    }


def describe_exam(exam, show_class=True, show_teacher=False):
    parts = []
    if show_class:
        parts.append(
            f'<font color="{class_color(exam.classroom_id)}"><b>{escape(exam.classroom.name)}</b></font>'
        )
    parts.append(
        f"<b>{escape(exam.subject.code)}</b> {escape(exam.get_exam_type_display())}"
    )
    parts.append(escape(exam.title))
    if show_teacher:
        teacher_name = exam.created_by.get_full_name() or exam.created_by.username
        parts.append(f'<font color="#6B7280">{escape(teacher_name)}</font>')
    return "<br/>".join(parts)


def build_week_grid(week_start, exams, styles, grade_level=None, show_class=True, show_teacher=False):
    """Mon-Fri x P1-P8 table; Friday periods past the short day are shaded"""
    days = [week_start + timedelta(days=offset) for offset in range(5)]
    max_periods = MAX_PERIODS[MON_THU]

    cells = {}
    for exam in exams:
        cells.setdefault((exam.date, exam.period), []).append(exam)

    header = [Paragraph("Period", styles["header"])] + [
        Paragraph(f"{name}<br/>{day:%d %b}", styles["header"])
        for name, day in zip(WEEKDAYS, days)
    ]
    rows = [header]
    for period in range(1, max_periods + 1):
        label = f"P{period}"
        if grade_level:
            label += f"<br/><font size=6>{BELL_SCHEDULES[grade_level][MON_THU][period]}</font>"
        row = [Paragraph(label, styles["period"])]
        for day in days:
            if day.weekday() == 4 and period > MAX_PERIODS[FRI]:
                row.append("")
                continue
            entries = cells.get((day, period), [])
            row.append(
                Paragraph(
                    "<br/><br/>".join(
                        describe_exam(e, show_class=show_class, show_teacher=show_teacher)
                        for e in entries
                    ),
                    styles["cell"],
                )
            )
        rows.append(row)

    table = Table(
        rows,
        colWidths=[0.9 * inch] + [1.85 * inch] * 5,
        repeatRows=1,
    )
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), PRIMARY_COLOR),
                ("GRID", (0, 0), (-1, -1), 0.5, BORDER_COLOR),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("VALIGN", (0, 1), (0, -1), "MIDDLE"),
                ("BACKGROUND", (0, 1), (0, -1), colors.HexColor("#F1F5F9")),
                (
                    "BACKGROUND",
                    (5, MAX_PERIODS[FRI] + 1),
                    (5, max_periods),
                    UNAVAILABLE_COLOR,
                ),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    return table


def generate_schedule_pdf(week_start, pages):
    """
    Render one landscape A4 page per schedule.

    Args:
        week_start: Monday of the week being printed
        pages: list of dicts with "title", "exams" and optional "grade_level",
            "show_class" and "show_teacher" keys

    Returns:
        BytesIO buffer containing the PDF
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        topMargin=0.4 * inch,
        bottomMargin=0.4 * inch,
        leftMargin=0.4 * inch,
        rightMargin=0.4 * inch,
    )
    styles = get_styles()
    week_end = week_start + timedelta(days=4)
    story = []

    for index, page in enumerate(pages):
        if index:
            story.append(PageBreak())
        story.append(Paragraph(escape(page["title"]), styles["title"]))
        story.append(
            Paragraph(
                f"{escape(settings.SCHOOL_NAME)} | Week of "
                f"{week_start:%d %b %Y} - {week_end:%d %b %Y}",
                styles["subtitle"],
            )
        )
        story.append(Spacer(1, 4))
        story.append(
            build_week_grid(
                week_start,
                page["exams"],
                styles,
                grade_level=page.get("grade_level"),
                show_class=page.get("show_class", True),
                show_teacher=page.get("show_teacher", False),
            )
        )

    doc.build(story)
    buffer.seek(0)
    return buffer
