import re
from datetime import date, timedelta
from typing import Optional, Tuple

from django.utils import timezone

TERM_START_MONTHS = {"TERM_1": 9, "TERM_2": 1, "TERM_3": 5}

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

GRADE_NUMBER = re.compile(r"A(\d{1,2})")


def academic_year_start(today: date) -> int:
    """The academic year runs September to August"""
    return today.year if today.month >= 9 else today.year - 1


def get_week_dates(term: str, week_number: int, today: Optional[date] = None) -> Tuple[date, date]:
    """First and last day of a teaching week within the current academic year"""
    today = today or timezone.localdate()
    start_year = academic_year_start(today)
    month = TERM_START_MONTHS.get(term, 9)
    year = start_year if month >= 9 else start_year + 1
    week_start = date(year, month, 1) + timedelta(days=(week_number - 1) * 7)
    return week_start, week_start + timedelta(days=6)


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def grade_from_class_name(class_name: str) -> str:
    match = GRADE_NUMBER.search(class_name or "")
    return match.group(1) if match else ""
