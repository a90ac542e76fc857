# services/api/core/dates.py
"""
Date/time normalization for spreadsheet cells.

Cells arrive in many shapes: ISO strings from the Apps Script JSON
serializer, "DD/MM/YYYY" strings typed by users, "M/D/YYYY H:MM:SS" strings
formatted by Sheets, raw serial day numbers, or plain garbage. Everything that
parses or prints a date goes through this module.

Ambiguous slash dates are read as DD/MM/YYYY first; dateutil only falls back
to MM/DD/YYYY when the DD/MM reading is not a valid calendar date.

None of the public functions raise. Values that parse but cannot be moved
between timezones (the ends of the datetime range) count as unparsable.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Google Sheets / Excel day zero
_SHEETS_EPOCH = datetime(1899, 12, 30)

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SERIAL_RE = re.compile(r"^\d{4,6}(\.\d+)?$")

# Missing fields default to midnight, never to "now"
_DEFAULT = datetime(1970, 1, 1)

_display_tz = ZoneInfo("Asia/Kolkata")


def set_display_timezone(name: str) -> None:
    """Configure the timezone used for display and for naive values."""
    global _display_tz
    try:
        _display_tz = ZoneInfo(name)
    except Exception as e:
        logger.error(f"Unknown display timezone {name!r}, keeping {_display_tz.key}: {e}")


def get_display_timezone() -> ZoneInfo:
    return _display_tz


def format_dmy(d: date) -> str:
    """DD/MM/YYYY with a four-digit year (strftime drops the padding below 1000)."""
    return f"{d.day:02d}/{d.month:02d}/{d.year:04d}"


# ========== Parsing ==========

def _from_iso(s: str) -> Optional[datetime]:
    try:
        return date_parser.isoparse(s)
    except (ValueError, OverflowError):
        pass
    # "2024-05-01 10:00 something": keep the date part
    try:
        return date_parser.isoparse(s[:10])
    except (ValueError, OverflowError):
        return None


def _from_text(s: str) -> Optional[datetime]:
    try:
        return date_parser.parse(s, dayfirst=True, default=_DEFAULT)
    except (ValueError, OverflowError):
        return None


def _from_serial(n: float) -> Optional[datetime]:
    # 1..2958465 covers 1900-01-01 .. 9999-12-31
    if n <= 0 or n > 2958465:
        return None
    return _SHEETS_EPOCH + timedelta(days=n)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a cell into a datetime.

    Returns an aware datetime for inputs that carry an offset, a naive one
    (meaning "display timezone") otherwise, and None when nothing fits.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    s = str(value).strip()
    if not s:
        return None

    if _SERIAL_RE.match(s):
        return _from_serial(float(s))
    # bare short numbers are not dates
    if s.isdigit():
        return None

    if _ISO_RE.match(s):
        return _from_iso(s)
    return _from_text(s)


def _to_display_tz(dt: datetime) -> Optional[datetime]:
    if dt.tzinfo is None:
        return dt
    try:
        return dt.astimezone(_display_tz)
    except (OverflowError, ValueError):
        return None


def _to_utc(dt: datetime) -> Optional[datetime]:
    try:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=_display_tz)
        return dt.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def _log_unparsable(value: Any) -> None:
    logger.warning(f"Could not parse date value {value!r}; leaving it as-is")


# ========== Public API ==========

def to_display_date(value: Any) -> str:
    """Format as DD/MM/YYYY, or return the input unchanged if it does not parse."""
    if value is None:
        return ""
    dt = parse_datetime(value)
    local = _to_display_tz(dt) if dt is not None else None
    if local is None:
        if str(value).strip():
            _log_unparsable(value)
        return str(value)
    return format_dmy(local)


def to_display_datetime(value: Any, *, midnight_as_now: bool = False, now: Optional[datetime] = None) -> str:
    """
    Format as "DD/MM/YYYY || HH:MM:SS".

    With midnight_as_now=True a stored 00:00:00 is replaced by the current
    wall-clock time (legacy display for rows that only stored a date).
    """
    if value is None:
        return ""
    dt = parse_datetime(value)
    local = _to_display_tz(dt) if dt is not None else None
    if local is None:
        if str(value).strip():
            _log_unparsable(value)
        return str(value)

    clock = local.time()
    if midnight_as_now and clock == time(0, 0, 0):
        current = now or datetime.now(_display_tz)
        clock = current.time()
    return f"{format_dmy(local)} || {clock.strftime('%H:%M:%S')}"


def to_sort_instant(value: Any) -> datetime:
    """Aware UTC instant for ordering; anything unparsable sorts as the epoch."""
    dt = parse_datetime(value)
    utc = _to_utc(dt) if dt is not None else None
    if utc is None:
        if value is not None and str(value).strip():
            _log_unparsable(value)
        return EPOCH
    return utc


def to_iso_timestamp(value: Any) -> str:
    """
    Canonical "YYYY-MM-DDTHH:MM:SS.mmmZ" form used as a row key in
    approve/reject/markDeleted calls. Unparsable input is returned as a string.
    """
    dt = parse_datetime(value)
    utc = _to_utc(dt) if dt is not None else None
    if utc is None:
        return "" if value is None else str(value)
    return (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}T"
        f"{utc.strftime('%H:%M:%S')}.{utc.microsecond // 1000:03d}Z"
    )


def same_instant(a: Any, b: Any) -> bool:
    """True when both values parse to the same instant (or are equal strings)."""
    if str(a).strip() == str(b).strip():
        return True
    da, db = parse_datetime(a), parse_datetime(b)
    if da is None or db is None:
        return False
    ua, ub = _to_utc(da), _to_utc(db)
    return ua is not None and ua == ub


def now_iso() -> str:
    """Creation timestamp for new rows, in the display timezone with offset."""
    return datetime.now(_display_tz).replace(microsecond=0).isoformat()


def today() -> date:
    return datetime.now(_display_tz).date()
