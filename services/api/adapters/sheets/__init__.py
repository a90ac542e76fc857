# services/api/adapters/sheets/__init__.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from core import dates
from core.drive_client import DriveUploadError, upload_file_to_drive
from core.email_sender import render_share_body, send_documents_email
from core.serials import build_prefix_table, next_serials_from_existing
from models import Document
from models.converters import (
    APPROVAL_LAYOUT,
    DOCUMENTS_LAYOUT,
    RENEWAL_LAYOUT,
    SheetLayout,
    approval_document_from_row,
    document_values,
    row_from_values,
)
from ..base import DocumentRepository, RemoteHTTPError, RemoteResponseError

logger = logging.getLogger(__name__)

# ========== Sheet schema (HEADERS) ==========

_LABELS = {
    "timestamp": "Timestamp",
    "serial_no": "Serial No",
    "name": "Document Name",
    "type": "Document Type",
    "category": "Category",
    "company": "Company/Department",
    "tags": "Tags",
    "person_name": "Person/Entity Name",
    "needs_renewal": "Needs Renewal",
    "renewal_date": "Renewal Date",
    "image_url": "Image URL",
    "file_size": "File Size",
    "email": "Email",
    "mobile": "Mobile",
    "deleted": "Deleted",
    "original_serial_no": "Original Serial No",
    "status": "Status",
    "submitted_by": "Submitted By",
}


def headers_for(layout: SheetLayout) -> List[str]:
    return [_LABELS[c] for c in layout.columns]


SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def _sa_client_from_json_or_path(google_sa_json: str) -> gspread.Client:
    """
    Accepts either:
      - absolute/relative path to a service-account JSON file, OR
      - a literal JSON string.
    Returns an authorized gspread Client.
    """
    if not google_sa_json:
        raise ValueError("GOOGLE_SA_JSON is required (path to file or inline JSON).")

    try:
        parsed = json.loads(google_sa_json)
        creds = Credentials.from_service_account_info(parsed, scopes=SCOPES)
    except json.JSONDecodeError:
        # Not JSON; treat as file path
        creds = Credentials.from_service_account_file(google_sa_json, scopes=SCOPES)
    return gspread.authorize(creds)


# ========== Retry decorator for Google Sheets API calls ==========
def retry_sheets_api(func):
    """Decorator to retry Sheets API calls with exponential backoff on quota errors."""
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((gspread.exceptions.APIError,)),
        reraise=True,
    )
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


class SheetsAdapter(DocumentRepository):
    """
    Talks to the spreadsheet directly (gspread + Drive + SMTP) instead of going
    through the Apps Script endpoint. Same tabs, same column layouts.

    gspread is blocking, so every call runs in a worker thread.
    """

    def __init__(self, settings, *, client: Optional[gspread.Client] = None) -> None:
        has_creds = client is not None or settings.google_sa_json or settings.google_sa_json_base64
        if not has_creds or not settings.sheets_spreadsheet_id:
            raise ValueError("SheetsAdapter requires GOOGLE_SA_JSON and SHEETS_SPREADSHEET_ID")

        self.settings = settings
        self.gc = client
        self.ss: Optional[gspread.Spreadsheet] = None
        self.ws: dict[str, gspread.Worksheet] = {}
        self.layouts: dict[str, SheetLayout] = {
            settings.documents_sheet: DOCUMENTS_LAYOUT,
            settings.renewal_sheet: RENEWAL_LAYOUT,
            settings.approval_sheet: APPROVAL_LAYOUT,
        }

    # ========== Lifecycle ==========

    def _connect(self) -> None:
        if self.gc is None:
            self.gc = _sa_client_from_json_or_path(self.settings.resolved_google_sa_json())
        self.ss = self.gc.open_by_key(self.settings.sheets_spreadsheet_id)
        for tab in self.layouts:
            self.ws[tab] = self._ensure_worksheet(tab)
            self._ensure_headers(tab)
        logger.info(f"✓ Connected to spreadsheet {self.settings.sheets_spreadsheet_id} ({len(self.ws)} tabs)")

    async def boot(self) -> None:
        if self.ss is None:
            await self._call(self._connect)

    async def close(self) -> None:
        self.ws.clear()
        self.ss = None

    async def _call(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except gspread.exceptions.APIError as e:
            code = getattr(e.response, "status_code", None)
            logger.error(f"✗ Sheets API error: {e}")
            raise RemoteHTTPError(f"Google Sheets request failed: {e}", status_code=code) from e

    # ========== Worksheet helpers ==========

    def _ensure_worksheet(self, name: str) -> gspread.Worksheet:
        try:
            return self.ss.worksheet(name)
        except gspread.WorksheetNotFound:
            return self.ss.add_worksheet(
                title=name,
                rows=200,
                cols=self.layouts[name].width + 2,
            )

    def _ensure_headers(self, name: str) -> None:
        # Columns are positional; only label an empty tab
        ws = self.ws[name]
        values = ws.get_values("1:1")
        if not values or not any(values[0]):
            ws.update("A1", [headers_for(self.layouts[name])])

    def _worksheet(self, tab: str) -> gspread.Worksheet:
        ws = self.ws.get(tab)
        if ws is None:
            raise RemoteResponseError(f"Unknown sheet: {tab}")
        return ws

    @retry_sheets_api
    def _get_all_values(self, tab: str) -> list[list[Any]]:
        """All rows of a tab, header first. WITH RETRY."""
        return self._worksheet(tab).get_all_values()

    @retry_sheets_api
    def _append_rows(self, tab: str, rows: list[list[Any]]) -> None:
        """Append rows to tab. WITH RETRY."""
        if rows:
            self._worksheet(tab).append_rows(rows, value_input_option="USER_ENTERED")

    @retry_sheets_api
    def _update_cell(self, tab: str, row_idx: int, column: str, value: Any) -> None:
        """Update one cell, addressed by layout column name. WITH RETRY."""
        col_idx = self.layouts[tab].index(column) + 1
        self._worksheet(tab).update_cell(row_idx, col_idx, value)

    @retry_sheets_api
    def _serial_column(self, tab: str) -> list[str]:
        return self._worksheet(tab).col_values(self.layouts[tab].index("serial_no") + 1)

    def _find_row(self, tab: str, serial_no: str, timestamp: str) -> tuple[int, list[Any]]:
        """
        1-based row index and cells of the row keyed by (serial_no, timestamp).
        Serials are reused by renewals, so the timestamp is part of the key.
        """
        rows = self._get_all_values(tab)
        layout = self.layouts[tab]
        s_idx, t_idx = layout.index("serial_no"), layout.index("timestamp")
        for i, row in enumerate(rows[1:], start=2):
            if len(row) <= s_idx or str(row[s_idx]).strip() != serial_no:
                continue
            if dates.same_instant(row[t_idx], timestamp):
                return i, row
        raise RemoteResponseError(f"Row not found in {tab}: {serial_no} @ {timestamp}")

    # ========== Sync operations ==========

    def _next_serials(self) -> Dict[str, int]:
        serials: List[str] = []
        for tab in self.layouts:
            serials.extend(self._serial_column(tab)[1:])
        table = build_prefix_table(self.settings.extra_category_prefixes)
        return next_serials_from_existing(serials, table)

    def _mark_deleted(self, sheet: str, serial_no: str, timestamp: str) -> None:
        row_idx, _ = self._find_row(sheet, serial_no, timestamp)
        self._update_cell(sheet, row_idx, "deleted", f"Deleted {dates.now_iso()}")
        logger.info(f"✓ Marked {serial_no} deleted in {sheet} (row {row_idx})")

    def _decide(self, sheet: str, serial_no: str, timestamp: str, approved: bool) -> None:
        row_idx, row = self._find_row(sheet, serial_no, timestamp)
        pending = approval_document_from_row(row, sheet, row_idx)
        if not pending.is_pending:
            raise RemoteResponseError(f"{serial_no} is already {pending.status}")

        if approved:
            self._append_rows(
                self.settings.documents_sheet,
                [row_from_values(DOCUMENTS_LAYOUT, document_values(pending))],
            )
        self._update_cell(sheet, row_idx, "status", "Approved" if approved else "Rejected")
        logger.info(f"✓ {'Approved' if approved else 'Rejected'} {serial_no}")

    def _append_renewal(self, document: Document, renewal_date: str, needs_renewal: bool, image_url: Optional[str]) -> None:
        values = document_values(document)
        values.update(
            timestamp=dates.now_iso(),
            original_serial_no=document.serial_no,
            renewal_date=renewal_date,
            needs_renewal=needs_renewal,
            image_url=image_url or document.image_url,
        )
        self._append_rows(self.settings.renewal_sheet, [row_from_values(RENEWAL_LAYOUT, values)])

    @retry_sheets_api
    def _ping(self) -> None:
        self._worksheet(self.settings.documents_sheet).acell("A1")

    # ========== DocumentRepository API ==========

    async def fetch_sheet(self, sheet: str) -> List[List[Any]]:
        return await self._call(self._get_all_values, sheet)

    async def get_next_serials(self) -> Dict[str, int]:
        serials = await self._call(self._next_serials)
        logger.info(f"Next available serial numbers: {serials}")
        return serials

    async def insert_row(self, sheet: str, row: List[Any]) -> None:
        await self._call(self._append_rows, sheet, [row])

    async def upload_file(self, file_name: str, mime_type: str, data: bytes) -> str:
        try:
            return await asyncio.to_thread(
                upload_file_to_drive,
                data=data,
                file_name=file_name,
                mime_type=mime_type,
                folder_id=self.settings.drive_folder_id or None,
            )
        except DriveUploadError as e:
            raise RemoteResponseError(str(e)) from e

    async def mark_deleted(self, sheet: str, serial_no: str, timestamp: str) -> None:
        await self._call(self._mark_deleted, sheet, serial_no, timestamp)

    async def approve(self, sheet: str, serial_no: str, timestamp: str) -> None:
        await self._call(self._decide, sheet, serial_no, timestamp, True)

    async def reject(self, sheet: str, serial_no: str, timestamp: str) -> None:
        await self._call(self._decide, sheet, serial_no, timestamp, False)

    async def update_renewal(
        self,
        document: Document,
        *,
        renewal_date: str,
        needs_renewal: bool,
        image_url: Optional[str] = None,
    ) -> None:
        await self._call(self._append_renewal, document, renewal_date, needs_renewal, image_url)

    async def share_via_email(
        self,
        *,
        recipient_email: str,
        recipient_name: str,
        subject: str,
        message: str,
        documents: List[Dict[str, str]],
    ) -> None:
        s = self.settings
        ok = await send_documents_email(
            to_email=recipient_email,
            subject=subject,
            body_html=render_share_body(recipient_name, message, documents),
            smtp_host=s.smtp_host,
            smtp_port=s.smtp_port,
            smtp_user=s.smtp_user,
            smtp_password=s.smtp_password,
            from_email=s.smtp_from_email or s.smtp_user,
            from_name=s.smtp_from_name,
            bcc_emails=s.get_bcc_list(),
        )
        if not ok:
            raise RemoteResponseError("Failed to send email")

    async def ping(self) -> None:
        await self._call(self._ping)
