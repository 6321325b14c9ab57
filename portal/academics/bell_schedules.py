import re
from datetime import date
from typing import Dict, List, Optional

GRADE_9_10 = "G9_10"
GRADE_11_12 = "G11_12"

MON_THU = "MON_THU"
FRI = "FRI"

# Periods are keyed by number, breaks by "breakN". Insertion order is display order.
BELL_SCHEDULES = {
    GRADE_9_10: {
        MON_THU: {
            1: "07:30–08:20",
            2: "08:25–09:15",
            "break1": "09:15–09:30",
            3: "09:30–10:20",
            4: "10:25–11:15",
            5: "11:20–12:10",
            "break2": "12:10–12:40",
            6: "12:40–13:30",
            7: "13:35–14:25",
            8: "14:30–15:10",
        },
        FRI: {
            1: "07:30–08:20",
            2: "08:25–09:15",
            "break1": "09:15–09:25",
            3: "09:25–10:15",
            4: "10:20–11:10",
        },
    },
    GRADE_11_12: {
        MON_THU: {
            1: "07:30–08:20",
            2: "08:25–09:15",
            3: "09:20–10:10",
            "break1": "10:10–10:25",
            4: "10:25–11:15",
            5: "11:20–12:10",
            6: "12:15–13:05",
            "break2": "13:05–13:35",
            7: "13:35–14:25",
            8: "14:30–15:10",
        },
        FRI: {
            1: "07:30–08:20",
            2: "08:25–09:15",
            3: "09:20–10:10",
            "break1": "10:10–10:20",
            4: "10:20–11:10",
        },
    },
}

MAX_PERIODS = {MON_THU: 8, FRI: 4}

GRADE_PATTERN = re.compile(r"A(10|11|12|9)")


def get_grade_level(class_name: Optional[str]) -> str:
    """Grades 9-10 and 11-12 ring different bells; unknown names default to 9-10"""
    match = GRADE_PATTERN.search(class_name or "")
    if match and int(match.group(1)) > 10:
        return GRADE_11_12
    return GRADE_9_10


def get_day_key(day: date) -> str:
    return FRI if day.weekday() == 4 else MON_THU


def max_periods_for(day: date) -> int:
    return MAX_PERIODS[get_day_key(day)]


def get_period_time(class_name: str, day: date, period: int) -> Optional[str]:
    schedule = BELL_SCHEDULES[get_grade_level(class_name)][get_day_key(day)]
    return schedule.get(period)


def serialize_bell_schedule(class_name: Optional[str]) -> Dict[str, object]:
    grade_level = get_grade_level(class_name)
    days: Dict[str, List[Dict[str, object]]] = {}
    for day_key, slots in BELL_SCHEDULES[grade_level].items():
        days[day_key] = [
            {
                "period": slot if isinstance(slot, int) else None,
                "label": f"P{slot}" if isinstance(slot, int) else "Break",
                "time": time_range,
                "isBreak": not isinstance(slot, int),
            }
            for slot, time_range in slots.items()
        ]
    return {"gradeLevel": grade_level, "days": days}
