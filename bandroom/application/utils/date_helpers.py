from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def date_key(day: date) -> str:
    return day.strftime("%Y-%m-%d")


def parse_date_key(value: str) -> date | None:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def format_date_label(day: date) -> str:
    """12/20 (Wed)"""
    return f"{day.month}/{day.day} ({WEEKDAY_NAMES[day.weekday()]})"


def format_date_key_label(value: str) -> str:
    day = parse_date_key(value)
    return format_date_label(day) if day else value


def tomorrow_key(now: datetime, timezone: ZoneInfo) -> str:
    return date_key(now.astimezone(timezone).date() + timedelta(days=1))
