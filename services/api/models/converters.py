# services/api/models/converters.py
"""
Row <-> model conversion for the spreadsheet tabs.

The endpoint returns every tab as a list of positional rows. Column positions
are only ever looked up through the layouts below.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from . import ApprovalDocument, Document, RenewalUpdate

logger = logging.getLogger(__name__)


class RowDecodeError(ValueError):
    """A sheet row that cannot be turned into a document."""

    def __init__(self, sheet: str, row_number: int, reason: str):
        self.sheet = sheet
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"{sheet} row {row_number}: {reason}")


# ========== Sheet layouts ==========

@dataclass(frozen=True)
class SheetLayout:
    """Ordered column names of one tab; position in the tuple = column index."""
    name: str
    columns: Tuple[str, ...]

    def index(self, column: str) -> int:
        return self.columns.index(column)

    @property
    def width(self) -> int:
        return len(self.columns)


_COMMON = (
    "timestamp",
    "serial_no",
    "name",
    "type",
    "category",
    "company",
    "tags",
    "person_name",
    "needs_renewal",
    "renewal_date",
)

DOCUMENTS_LAYOUT = SheetLayout(
    "documents",
    _COMMON + ("image_url", "file_size", "email", "mobile", "deleted"),
)

RENEWAL_LAYOUT = SheetLayout(
    "renewal",
    _COMMON + ("original_serial_no", "image_url", "email", "mobile", "deleted"),
)

APPROVAL_LAYOUT = SheetLayout(
    "approval",
    _COMMON + ("file_size", "image_url", "email", "mobile", "status", "submitted_by"),
)


# ========== Cell helpers ==========

def _cell_str(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        # phone numbers come back from the JSON serializer as 9876543210.0
        return str(int(v))
    return str(v).strip()


def bool_from_sheet(v: Any) -> bool:
    """
    Renewal flag cell -> bool.
    Only "TRUE" and "Yes" (as written by the forms) count; a JSON true from a
    checkbox cell is accepted too.
    """
    if v is True:
        return True
    return _cell_str(v) in ("TRUE", "Yes")


def tags_from_sheet(v: Any) -> List[str]:
    """
    "a, b ,c" -> ["a", "b", "c"].
    Order is kept and duplicates are not removed.
    """
    s = _cell_str(v)
    if not s:
        return []
    return [t.strip() for t in s.split(",")]


def _named(row: List[Any], layout: SheetLayout) -> Dict[str, Any]:
    cells = list(row) + [""] * (layout.width - len(row))
    return {col: cells[i] for i, col in enumerate(layout.columns)}


# ========== Decoding ==========

D = TypeVar("D", bound=Document)


def _decode(row: Any, layout: SheetLayout, sheet: str, row_number: int, cls: Type[D], **extra: Any) -> D:
    if not isinstance(row, (list, tuple)):
        raise RowDecodeError(sheet, row_number, f"expected a list of cells, got {type(row).__name__}")

    cells = _named(list(row), layout)
    timestamp = cells["timestamp"]
    serial_no = _cell_str(cells["serial_no"])
    if not _cell_str(timestamp) and not serial_no:
        raise RowDecodeError(sheet, row_number, "empty timestamp and serial number")

    return cls(
        serial_no=serial_no,
        timestamp=_cell_str(timestamp),
        name=_cell_str(cells["name"]),
        type=_cell_str(cells["type"]),
        category=_cell_str(cells["category"]),
        company=_cell_str(cells["company"]),
        tags=tags_from_sheet(cells["tags"]),
        person_name=_cell_str(cells["person_name"]),
        email=_cell_str(cells.get("email")),
        mobile=_cell_str(cells.get("mobile")),
        needs_renewal=bool_from_sheet(cells["needs_renewal"]),
        renewal_date=_cell_str(cells["renewal_date"]),
        image_url=_cell_str(cells.get("image_url")),
        file_size=_cell_str(cells.get("file_size")),
        source_sheet=sheet,
        row_serial_no=serial_no,
        row_timestamp=_cell_str(timestamp),
        is_deleted=bool(_cell_str(cells.get("deleted"))),
        **{k: _cell_str(cells.get(v)) for k, v in extra.items()},
    )


def document_from_row(row: Any, sheet: str, row_number: int = 0) -> Document:
    return _decode(row, DOCUMENTS_LAYOUT, sheet, row_number, Document)


def renewal_update_from_row(row: Any, sheet: str, row_number: int = 0) -> RenewalUpdate:
    return _decode(
        row, RENEWAL_LAYOUT, sheet, row_number, RenewalUpdate,
        original_serial_no="original_serial_no",
    )


def approval_document_from_row(row: Any, sheet: str, row_number: int = 0) -> ApprovalDocument:
    return _decode(
        row, APPROVAL_LAYOUT, sheet, row_number, ApprovalDocument,
        status="status",
        submitted_by="submitted_by",
    )


def decode_rows(data: Optional[List[Any]], sheet: str, decoder) -> List[Any]:
    """
    Decode a fetched tab. data[0] is the header row and is skipped.
    Bad rows are logged and dropped.
    """
    out: List[Any] = []
    if not data:
        return out
    for i, row in enumerate(data[1:], start=2):  # sheet row numbers, header = 1
        try:
            out.append(decoder(row, sheet, i))
        except RowDecodeError as e:
            logger.warning(f"Skipping row: {e}")
    return out


# ========== Encoding ==========

def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def row_from_values(layout: SheetLayout, values: Dict[str, Any]) -> List[Any]:
    """Build a row in the layout's column order; missing columns are ''."""
    row: List[Any] = []
    for col in layout.columns:
        v = values.get(col, "")
        if col == "needs_renewal" and isinstance(v, bool):
            v = _yes_no(v)
        elif col == "tags" and isinstance(v, list):
            v = ", ".join(v)
        row.append("" if v is None else v)
    return row


def document_values(doc: Document) -> Dict[str, Any]:
    return {
        "timestamp": doc.timestamp,
        "serial_no": doc.serial_no,
        "name": doc.name,
        "type": doc.type,
        "category": doc.category,
        "company": doc.company,
        "tags": list(doc.tags),
        "person_name": doc.person_name,
        "needs_renewal": doc.needs_renewal,
        "renewal_date": doc.renewal_date,
        "image_url": doc.image_url,
        "file_size": doc.file_size,
        "email": doc.email,
        "mobile": doc.mobile,
    }
