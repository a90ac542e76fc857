# services/api/adapters/appscript/__init__.py
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from core import dates
from models import Document
from ..base import DocumentRepository, RemoteHTTPError, RemoteResponseError

logger = logging.getLogger(__name__)


class AppScriptAdapter(DocumentRepository):
    """
    Client for the spreadsheet-backed Apps Script web app.

    - GET  ?sheet=<name>&action=fetch        -> {success, data}
    - GET  ?action=getNextSerials            -> {success, nextSerials}
    - POST action=insert|uploadFile|markDeleted|approve|reject|
           updateRenewal|shareViaEmail       -> {success, error?/message?}

    No retries: a failed call is reported to the caller as-is.
    """

    def __init__(
        self,
        read_url: str,
        write_url: Optional[str] = None,
        *,
        folder_id: str = "",
        timeout: float = 30.0,
        renewal_sheet: str = "Updated Renewal",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not read_url:
            raise ValueError("AppScriptAdapter requires APPSCRIPT_URL")
        self.read_url = read_url
        self.write_url = write_url or read_url
        self.folder_id = folder_id
        self.timeout = timeout
        self.renewal_sheet = renewal_sheet
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # ========== Lifecycle ==========

    async def boot(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                # Apps Script answers with a 302 to googleusercontent.com
                follow_redirects=True,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ========== Core request ==========

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        what: str = "request",
    ) -> Dict[str, Any]:
        if self._client is None:
            await self.boot()

        try:
            response = await self._client.request(method, url, params=params, data=data)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"✗ {what}: timeout after {self.timeout}s")
            raise RemoteHTTPError(f"{what} timed out") from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            logger.error(f"✗ {what}: HTTP {code}")
            raise RemoteHTTPError(f"{what} failed: HTTP error! status: {code}", status_code=code) from e
        except httpx.RequestError as e:
            logger.error(f"✗ {what}: {e}")
            raise RemoteHTTPError(f"{what} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"✗ {what}: response is not JSON ({response.text[:200]!r})")
            raise RemoteResponseError(f"{what} failed: malformed response from server") from e

        if not isinstance(payload, dict):
            raise RemoteResponseError(f"{what} failed: malformed response from server")

        if not payload.get("success"):
            message = payload.get("error") or payload.get("message") or f"{what} failed"
            logger.error(f"✗ {what}: {message}")
            raise RemoteResponseError(str(message))

        return payload

    async def _post(self, action: str, fields: Dict[str, Any], what: str) -> Dict[str, Any]:
        data = {"action": action}
        data.update({k: v for k, v in fields.items() if v is not None})
        return await self._request("POST", self.write_url, data=data, what=what)

    # ========== DocumentRepository API ==========

    async def fetch_sheet(self, sheet: str) -> List[List[Any]]:
        payload = await self._request(
            "GET",
            self.read_url,
            params={"sheet": sheet, "action": "fetch"},
            what=f"Fetch {sheet}",
        )
        data = payload.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise RemoteResponseError(f"Fetch {sheet} failed: malformed response from server")
        return data

    async def get_next_serials(self) -> Dict[str, int]:
        payload = await self._request(
            "GET",
            self.write_url,
            params={"action": "getNextSerials"},
            what="Get next serial numbers",
        )
        serials = payload.get("nextSerials")
        if not isinstance(serials, dict):
            raise RemoteResponseError("Failed to get next serial numbers")
        logger.info(f"Next available serial numbers: {serials}")
        return serials

    async def insert_row(self, sheet: str, row: List[Any]) -> None:
        await self._post(
            "insert",
            {"sheetName": sheet, "rowData": json.dumps(row)},
            what=f"Insert into {sheet}",
        )

    async def upload_file(self, file_name: str, mime_type: str, data: bytes) -> str:
        payload = await self._post(
            "uploadFile",
            {
                "fileName": file_name,
                "mimeType": mime_type or "application/octet-stream",
                "folderId": self.folder_id,
                "base64Data": base64.b64encode(data).decode("ascii"),
            },
            what=f"Upload {file_name}",
        )
        url = payload.get("fileUrl")
        if not url:
            raise RemoteResponseError("File upload failed")
        logger.info(f"✓ Uploaded {file_name} ({len(data)} bytes)")
        return url

    async def _keyed_action(self, action: str, sheet: str, serial_no: str, timestamp: str, what: str) -> None:
        await self._post(
            action,
            {
                "sheetName": sheet,
                "serialNo": serial_no,
                "timestamp": dates.to_iso_timestamp(timestamp),
            },
            what=what,
        )

    async def mark_deleted(self, sheet: str, serial_no: str, timestamp: str) -> None:
        await self._keyed_action("markDeleted", sheet, serial_no, timestamp, f"Delete {serial_no}")

    async def approve(self, sheet: str, serial_no: str, timestamp: str) -> None:
        await self._keyed_action("approve", sheet, serial_no, timestamp, f"Approve {serial_no}")

    async def reject(self, sheet: str, serial_no: str, timestamp: str) -> None:
        await self._keyed_action("reject", sheet, serial_no, timestamp, f"Reject {serial_no}")

    async def update_renewal(
        self,
        document: Document,
        *,
        renewal_date: str,
        needs_renewal: bool,
        image_url: Optional[str] = None,
    ) -> None:
        await self._post(
            "updateRenewal",
            {
                "sheetName": self.renewal_sheet,
                "serialNo": document.serial_no,
                "timestamp": dates.to_iso_timestamp(document.timestamp),
                "renewalDate": renewal_date,
                "needsRenewal": "Yes" if needs_renewal else "No",
                "imageUrl": image_url or None,
            },
            what=f"Update renewal for {document.serial_no}",
        )

    async def share_via_email(
        self,
        *,
        recipient_email: str,
        recipient_name: str,
        subject: str,
        message: str,
        documents: List[Dict[str, str]],
    ) -> None:
        await self._post(
            "shareViaEmail",
            {
                "recipientEmail": recipient_email,
                "recipientName": recipient_name,
                "subject": subject,
                "message": message,
                "documents": json.dumps(documents),
            },
            what=f"Share {len(documents)} documents with {recipient_email}",
        )

    async def ping(self) -> None:
        if self._client is None:
            raise RemoteHTTPError("HTTP client is not started")
