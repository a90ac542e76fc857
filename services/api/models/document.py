# services/api/models/document.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Document:
    """
    Domain model for one logical document.

    Decoded from a row of the `Documents` sheet (or an overlay / approval row).
    `id` is only a 1-based position in the last reconciled list and must not be
    stored anywhere; `serial_no` is the human-facing key.
    """
    serial_no: str
    timestamp: str = ""

    name: str = ""
    type: str = ""
    category: str = ""
    company: str = ""
    tags: List[str] = field(default_factory=list)
    person_name: str = ""          # person / company / director name
    email: str = ""
    mobile: str = ""

    needs_renewal: bool = False
    renewal_date: str = ""         # DD/MM/YYYY
    image_url: str = ""
    file_size: str = ""

    source_sheet: str = ""
    # key of the sheet row this record was decoded from; renewals change
    # serial_no/timestamp but never these
    row_serial_no: str = ""
    row_timestamp: str = ""
    is_deleted: bool = False
    id: int = 0


@dataclass
class RenewalUpdate(Document):
    """
    Row of the renewal overlay sheet.

    `serial_no` is the serial the document carries after the update,
    `original_serial_no` points back at the base row.
    """
    original_serial_no: str = ""


@dataclass
class ApprovalDocument(Document):
    """Row of the approval sheet, waiting for an admin decision."""
    status: str = ""
    submitted_by: str = ""

    @property
    def is_pending(self) -> bool:
        return not self.status or self.status.strip().lower() == "pending"


@dataclass
class ShareRecord:
    """One share action made through this service (email or WhatsApp)."""
    method: str                    # "email" | "whatsapp"
    recipient: str
    serial_nos: List[str]
    document_names: List[str]
    shared_at: str
    recipient_name: Optional[str] = None
    shared_by: Optional[str] = None
