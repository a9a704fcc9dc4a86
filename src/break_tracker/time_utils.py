"""
Time Utilities for Break Tracking

Minute arithmetic over 24-hour "HH:MM" strings, shift and break durations
with midnight wrap, and the display encodings used by the timesheet and
the CSV export.
"""

import re
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .data_manager import BreakEntry


MINUTES_PER_DAY = 24 * 60

# H:MM or HH:MM, 24-hour
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class TimeParseError(ValueError):
    """Raised when a time-of-day string is not a valid 24-hour HH:MM value"""
    pass


def parse_time_to_minutes(time_str: Optional[str]) -> int:
    """
    Convert "HH:MM" to minutes since midnight.

    Missing values (None or empty) count as 0 so optional break fields never
    raise. A non-empty value that is not a valid 24-hour time raises
    TimeParseError.
    """
    if not time_str:
        return 0

    match = TIME_RE.match(time_str.strip())
    if not match:
        raise TimeParseError(f"Invalid time '{time_str}', expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise TimeParseError(f"Time '{time_str}' is out of range")

    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Minutes since midnight to zero-padded HH:MM, wrapping past midnight"""
    hours, mins = divmod(minutes % MINUTES_PER_DAY, 60)
    return f"{hours:02d}:{mins:02d}"


def duration_minutes(start: Optional[str], end: Optional[str]) -> int:
    """Minutes from start to end; an end earlier than start wraps past midnight"""
    if not start or not end:
        return 0

    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)

    if end_minutes >= start_minutes:
        return end_minutes - start_minutes
    return (MINUTES_PER_DAY - start_minutes) + end_minutes


def shift_hours(shift_start: Optional[str], shift_end: Optional[str]) -> float:
    """Shift length in hours, 0.0 when either bound is missing"""
    return duration_minutes(shift_start, shift_end) / 60


def net_worked_minutes(entry: "BreakEntry") -> int:
    """Shift minutes minus both breaks and any outside-therapy time"""
    if not entry.shift_start or not entry.shift_end:
        return 0

    return (
        duration_minutes(entry.shift_start, entry.shift_end)
        - duration_minutes(entry.break1_start, entry.break1_end)
        - duration_minutes(entry.break2_start, entry.break2_end)
        - duration_minutes(entry.outside_therapy_start, entry.outside_therapy_end)
    )


def format_minutes_pseudo_decimal(total_minutes: int) -> str:
    """
    Render minutes as "H.MM" where MM is the literal minute count.

    7 hours 5 minutes renders as "7.05", not "7.08". Exported timesheets
    carry this encoding, so it must not be changed to decimal hours.
    """
    sign = "-" if total_minutes < 0 else ""
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours}.{minutes:02d}"


def net_worked_hours(entry: "BreakEntry") -> str:
    """Net worked time of an entry in "H.MM" form, "0.00" without shift bounds"""
    if not entry.shift_start or not entry.shift_end:
        return "0.00"
    return format_minutes_pseudo_decimal(net_worked_minutes(entry))


def format_shift_hours(hours: float) -> str:
    """Fractional hours to "H.MM hrs" (8.5 -> "8.30 hrs")"""
    whole_hours = int(hours // 1)
    minutes = round((hours - whole_hours) * 60)
    if minutes == 60:
        whole_hours += 1
        minutes = 0
    return f"{whole_hours}.{minutes:02d} hrs"


def format_time_12h(time_str: Optional[str]) -> str:
    """24-hour "HH:MM" to "H:MM AM/PM"; unparseable input comes back unchanged"""
    if not time_str:
        return ""

    parts = time_str.split(":")
    if len(parts) != 2 or not parts[0].strip().isdigit():
        return time_str

    hour = int(parts[0])
    ampm = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{parts[1]} {ampm}"


def format_outside_therapy_time(start: Optional[str], end: Optional[str],
                                reason: Optional[str] = None) -> str:
    if not start or not end:
        return ""

    formatted = f"{format_time_12h(start)} - {format_time_12h(end)}"
    return f"{formatted} ({reason})" if reason else formatted
