# utils/helpers.py
from datetime import datetime
from typing import Optional

from core.constants import LATENCY_GRADES


def parse_count(value, max_count: int) -> Optional[int]:
    """Return value as an int in 1..max_count, or None if it is not one"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(value, float) and value != count:
        return None
    if not 1 <= count <= max_count:
        return None
    return count


def latency_grade(latency_ms: int) -> str:
    for limit, grade in LATENCY_GRADES:
        if latency_ms < limit:
            return grade
    return 'poor'


def format_timestamp(value, fmt: str = '%Y-%m-%d %H:%M:%S') -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime(fmt)


def format_duration(start: datetime, end: datetime) -> str:
    total_seconds = int((end - start).total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h {minutes}m {seconds}s"
