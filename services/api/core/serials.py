# services/api/core/serials.py
"""
Serial number allocation: "<PREFIX>-<NNN>" per document category.

Known limitation: the starting point is read from the sheets and then
incremented locally, and nothing makes that atomic with the inserts that
follow. Two people submitting at the same moment can get the same serial.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "DN"

CATEGORY_PREFIXES: Dict[str, str] = {
    "Personal": "PN",
    "Company": "CN",
    "Director": "DN",
}

_SERIAL_RE = re.compile(r"^([A-Z]+)-(\d+)$")


def build_prefix_table(extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Built-in categories plus organization-specific ones from settings."""
    table = dict(CATEGORY_PREFIXES)
    for category, prefix in (extra or {}).items():
        if category and prefix:
            table[category.strip()] = prefix.strip().upper()
    return table


def prefix_for(category: str, table: Optional[Mapping[str, str]] = None) -> str:
    table = table if table is not None else CATEGORY_PREFIXES
    prefix = table.get((category or "").strip())
    if prefix is None:
        logger.warning(f"Unknown category {category!r}, using default serial prefix {DEFAULT_PREFIX}")
        return DEFAULT_PREFIX
    return prefix


def format_serial(prefix: str, number: int) -> str:
    return f"{prefix}-{number:03d}"


def parse_serial(serial_no: str) -> Optional[tuple[str, int]]:
    m = _SERIAL_RE.match((serial_no or "").strip())
    if not m:
        return None
    return m.group(1), int(m.group(2))


def next_serials_from_existing(
    serials: Iterable[str],
    table: Optional[Mapping[str, str]] = None,
) -> Dict[str, int]:
    """
    Fallback path: scan issued serials and return the next number per
    category key ("personal", "company", ...), i.e. max + 1 for its prefix.
    """
    table = table if table is not None else CATEGORY_PREFIXES
    highest: Dict[str, int] = {}
    for s in serials:
        parsed = parse_serial(s)
        if not parsed:
            continue
        prefix, n = parsed
        if n > highest.get(prefix, 0):
            highest[prefix] = n

    return {
        category.lower(): highest.get(prefix, 0) + 1
        for category, prefix in table.items()
    }


class SerialAllocator:
    """
    Hands out serials for one submission batch.

    Seeded once from a {category_key: next_number} snapshot; every allocate()
    call returns the current number for the category's prefix and bumps it, so
    a batch gets consecutive numbers in submission order.
    """

    def __init__(self, next_serials: Mapping[str, int], table: Optional[Mapping[str, str]] = None):
        self.table = dict(table if table is not None else CATEGORY_PREFIXES)
        self._counters: Dict[str, int] = {}

        by_key = {category.lower(): prefix for category, prefix in self.table.items()}
        for key, value in (next_serials or {}).items():
            prefix = by_key.get(str(key).strip().lower())
            if prefix is None:
                logger.warning(f"nextSerials has unknown category key {key!r}; ignoring it")
                continue
            try:
                n = int(value)
            except (TypeError, ValueError):
                logger.warning(f"nextSerials[{key!r}] is not a number: {value!r}")
                continue
            # several categories may share a prefix; never go backwards
            self._counters[prefix] = max(n, self._counters.get(prefix, 0))

    def peek(self, category: str) -> int:
        prefix = prefix_for(category, self.table)
        return self._counters.get(prefix, 1)

    def allocate(self, category: str) -> str:
        prefix = prefix_for(category, self.table)
        if prefix not in self._counters:
            logger.warning(f"No starting serial for prefix {prefix}; starting at 1")
            self._counters[prefix] = 1
        n = self._counters[prefix]
        self._counters[prefix] = n + 1
        serial = format_serial(prefix, n)
        logger.info(f"Allocated serial {serial} for category {category!r}")
        return serial
