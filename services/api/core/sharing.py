# services/api/core/sharing.py
from __future__ import annotations

import re
import threading
from typing import Iterable, List, Optional
from urllib.parse import quote

from core import dates
from core.validation import normalize_phone
from models import Document, ShareRecord

_DRIVE_FILE_RE = re.compile(r"/file/d/([^/?#]+)")
_DRIVE_ID_RE = re.compile(r"[?&]id=([^&#]+)")

WHATSAPP_INTRO = "I'm sharing these documents with you: "


def drive_file_id(url: str) -> Optional[str]:
    if not url:
        return None
    m = _DRIVE_FILE_RE.search(url) or _DRIVE_ID_RE.search(url)
    return m.group(1) if m else None


def format_image_url(url: str) -> str:
    """Drive share link -> direct view link; other URLs pass through."""
    file_id = drive_file_id(url)
    if file_id and "drive.google.com" in url:
        return f"https://drive.google.com/uc?export=view&id={file_id}"
    return url or ""


def download_url(url: str) -> str:
    file_id = drive_file_id(url)
    if file_id and "drive.google.com" in url:
        return f"https://drive.google.com/uc?export=download&id={file_id}"
    return url or ""


def whatsapp_link(number: str, document_names: Iterable[str]) -> str:
    digits = normalize_phone(number).lstrip("+")
    text = WHATSAPP_INTRO + ", ".join(document_names)
    return f"https://wa.me/{digits}?text={quote(text)}"


def share_payload(docs: Iterable[Document]) -> List[dict]:
    """Documents as sent to shareViaEmail."""
    return [
        {"serialNo": d.serial_no, "name": d.name, "imageUrl": d.image_url}
        for d in docs
    ]


class ShareLog:
    """
    Shares made through this process, newest first.
    In memory only; lost on restart.
    """

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._records: List[ShareRecord] = []
        self._lock = threading.Lock()

    def record(
        self,
        method: str,
        recipient: str,
        docs: List[Document],
        *,
        recipient_name: Optional[str] = None,
        shared_by: Optional[str] = None,
    ) -> ShareRecord:
        rec = ShareRecord(
            method=method,
            recipient=recipient,
            serial_nos=[d.serial_no for d in docs],
            document_names=[d.name for d in docs],
            shared_at=dates.now_iso(),
            recipient_name=recipient_name,
            shared_by=shared_by,
        )
        with self._lock:
            self._records.insert(0, rec)
            del self._records[self.max_entries:]
        return rec

    def list(self, limit: Optional[int] = None) -> List[ShareRecord]:
        with self._lock:
            records = list(self._records)
        return records[:limit] if limit else records

    def __len__(self) -> int:
        return len(self._records)
