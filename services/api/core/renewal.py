# services/api/core/renewal.py
from __future__ import annotations

import re
from datetime import date
from typing import Optional

from core import dates

_SPLIT_RE = re.compile(r"[/-]")


def parse_renewal_date(value: str | None) -> Optional[date]:
    """
    Parse a renewal date.

    Accepts DD/MM/YYYY (what the sheets store) and YYYY-MM-DD (what a browser
    date input posts). Returns None when the parts do not form a real date.
    """
    if not value:
        return None
    parts = [p.strip() for p in _SPLIT_RE.split(str(value).strip())]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None

    if len(parts[0]) == 4:
        year, month, day = parts
    else:
        day, month, year = parts
    if len(year) != 4:
        return None

    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def is_expired(renewal_date: str | None, today: Optional[date] = None) -> bool:
    """
    True when the renewal date is strictly before today.

    A renewal due today is not expired, and an unparsable date is never
    reported as expired.
    """
    due = parse_renewal_date(renewal_date)
    if due is None:
        return False
    return due < (today or dates.today())


def days_until_renewal(renewal_date: str | None, today: Optional[date] = None) -> Optional[int]:
    due = parse_renewal_date(renewal_date)
    if due is None:
        return None
    return (due - (today or dates.today())).days


def to_sheet_renewal_date(value: str | None) -> str:
    """Normalize a form value to the DD/MM/YYYY form stored in the sheets."""
    due = parse_renewal_date(value)
    if due is None:
        return ""
    return dates.format_dmy(due)
