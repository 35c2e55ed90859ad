"""
Translate raw request parameters into ledger filters.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from errors import ValidationError


@dataclass
class AttendanceFilter:
    search: Optional[str] = None
    start: Optional[datetime] = None
    end_before: Optional[datetime] = None  # exclusive


def _parse_day(value: str, field: str) -> date:
    # Accepts "2024-05-01" as well as a full ISO timestamp; only the day is kept.
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD")


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def next_day_start(day: date) -> datetime:
    return start_of_day(day + timedelta(days=1))


def build_attendance_filter(search: Optional[str] = None,
                            start_date: Optional[str] = None,
                            end_date: Optional[str] = None) -> AttendanceFilter:
    """
    Blank parameters mean "no constraint". Dates are calendar days in local
    time and both are inclusive: records from the start day's midnight up to,
    but not including, the midnight after the end day.
    """
    search = search.strip() if search else None
    start_date = start_date.strip() if start_date else None
    end_date = end_date.strip() if end_date else None

    return AttendanceFilter(
        search=search or None,
        start=start_of_day(_parse_day(start_date, "startDate")) if start_date else None,
        end_before=next_day_start(_parse_day(end_date, "endDate")) if end_date else None,
    )


def parse_person_id(raw) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError("Invalid person ID")
