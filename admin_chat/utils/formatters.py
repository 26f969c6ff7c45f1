import math
from datetime import datetime
from typing import Optional

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Human readable size: 1536 → 1.5 KB"""
    if size <= 0:
        return "0 Bytes"
    i = min(int(math.floor(math.log(size, 1024))), len(_SIZE_UNITS) - 1)
    value = round(size / math.pow(1024, i), 2)
    return f"{value:g} {_SIZE_UNITS[i]}"


def to_local(timestamp: datetime) -> datetime:
    """Same instant on the machine's local clock; naive values are taken as local already."""
    return timestamp.astimezone()


def format_time(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Clock time for today's messages (3:05 PM), short date otherwise (Mar 5)"""
    timestamp = to_local(timestamp)
    now = to_local(now) if now is not None else datetime.now().astimezone()
    if timestamp.date() == now.date():
        suffix = "AM" if timestamp.hour < 12 else "PM"
        return f"{timestamp.hour % 12 or 12}:{timestamp.minute:02d} {suffix}"
    return f"{timestamp.strftime('%b')} {timestamp.day}"


def format_full_date(timestamp: datetime) -> str:
    """Date separator label: Monday, March 4, 2024"""
    timestamp = to_local(timestamp)
    return f"{timestamp.strftime('%A')}, {timestamp.strftime('%B')} {timestamp.day}, {timestamp.year}"
