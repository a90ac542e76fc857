"""
Tests for the Apps Script client, against httpx.MockTransport.
"""
import asyncio
import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from adapters.appscript import AppScriptAdapter
from adapters.base import RemoteHTTPError, RemoteResponseError
from models import Document

READ_URL = "https://script.example.com/read/exec"
WRITE_URL = "https://script.example.com/write/exec"


def _adapter(handler, **kw):
    return AppScriptAdapter(READ_URL, WRITE_URL, folder_id="folder-1", transport=httpx.MockTransport(handler), **kw)


def _run(adapter, coro_fn):
    async def main():
        await adapter.boot()
        try:
            return await coro_fn()
        finally:
            await adapter.close()
    return asyncio.run(main())


def _form(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestReads:
    """GET actions."""

    def test_fetch_sheet(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={"success": True, "data": [["h"], ["r1"]]})

        adapter = _adapter(handler)
        data = _run(adapter, lambda: adapter.fetch_sheet("Documents"))

        assert data == [["h"], ["r1"]]
        assert seen["url"].host == "script.example.com"
        assert seen["url"].path == "/read/exec"
        assert seen["url"].params["sheet"] == "Documents"
        assert seen["url"].params["action"] == "fetch"

    def test_follows_redirect(self):
        def handler(request):
            if request.url.host == "script.example.com":
                return httpx.Response(302, headers={"Location": "https://echo.example.org/final"})
            return httpx.Response(200, json={"success": True, "data": []})

        adapter = _adapter(handler)
        assert _run(adapter, lambda: adapter.fetch_sheet("Documents")) == []

    def test_next_serials_from_write_deployment(self):
        def handler(request):
            assert request.url.path == "/write/exec"
            assert request.url.params["action"] == "getNextSerials"
            return httpx.Response(200, json={"success": True, "nextSerials": {"personal": 8}})

        adapter = _adapter(handler)
        assert _run(adapter, adapter.get_next_serials) == {"personal": 8}

    def test_next_serials_malformed(self):
        adapter = _adapter(lambda r: httpx.Response(200, json={"success": True, "nextSerials": [1]}))
        with pytest.raises(RemoteResponseError):
            _run(adapter, adapter.get_next_serials)


class TestErrors:
    """Error taxonomy."""

    def test_http_status(self):
        adapter = _adapter(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(RemoteHTTPError) as exc:
            _run(adapter, lambda: adapter.fetch_sheet("Documents"))
        assert exc.value.status_code == 500
        assert "500" in exc.value.message

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = _adapter(handler)
        with pytest.raises(RemoteHTTPError):
            _run(adapter, lambda: adapter.fetch_sheet("Documents"))

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        adapter = _adapter(handler)
        with pytest.raises(RemoteHTTPError) as exc:
            _run(adapter, lambda: adapter.fetch_sheet("Documents"))
        assert "timed out" in exc.value.message

    def test_not_json(self):
        adapter = _adapter(lambda r: httpx.Response(200, text="<html>login</html>"))
        with pytest.raises(RemoteResponseError) as exc:
            _run(adapter, lambda: adapter.fetch_sheet("Documents"))
        assert "malformed" in exc.value.message

    def test_success_false_uses_server_message(self):
        adapter = _adapter(lambda r: httpx.Response(200, json={"success": False, "error": "Sheet not found"}))
        with pytest.raises(RemoteResponseError) as exc:
            _run(adapter, lambda: adapter.fetch_sheet("Nope"))
        assert exc.value.message == "Sheet not found"

    def test_success_false_generic_message(self):
        adapter = _adapter(lambda r: httpx.Response(200, json={"success": False}))
        with pytest.raises(RemoteResponseError) as exc:
            _run(adapter, lambda: adapter.insert_row("Documents", []))
        assert exc.value.message == "Insert into Documents failed"

    def test_requires_url(self):
        with pytest.raises(ValueError):
            AppScriptAdapter("")


class TestWrites:
    """POST actions are form-encoded and go to the write deployment."""

    def _capture(self, reply=None):
        captured = []

        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/write/exec"
            captured.append(_form(request))
            return httpx.Response(200, json=reply or {"success": True})

        return captured, handler

    def test_insert(self):
        captured, handler = self._capture()
        adapter = _adapter(handler)
        _run(adapter, lambda: adapter.insert_row("Approval Documents", ["a", "PN-001"]))

        assert captured[0]["action"] == "insert"
        assert captured[0]["sheetName"] == "Approval Documents"
        assert json.loads(captured[0]["rowData"]) == ["a", "PN-001"]

    def test_upload(self):
        captured, handler = self._capture({"success": True, "fileUrl": "https://drive.google.com/file/d/abc/view"})
        adapter = _adapter(handler)
        url = _run(adapter, lambda: adapter.upload_file("scan.pdf", "application/pdf", b"%PDF"))

        assert url == "https://drive.google.com/file/d/abc/view"
        assert captured[0]["folderId"] == "folder-1"
        assert base64.b64decode(captured[0]["base64Data"]) == b"%PDF"

    def test_upload_without_url_fails(self):
        captured, handler = self._capture({"success": True})
        adapter = _adapter(handler)
        with pytest.raises(RemoteResponseError):
            _run(adapter, lambda: adapter.upload_file("scan.pdf", "application/pdf", b"x"))

    @pytest.mark.parametrize("method,action", [
        ("mark_deleted", "markDeleted"),
        ("approve", "approve"),
        ("reject", "reject"),
    ])
    def test_keyed_actions_send_iso_timestamp(self, method, action):
        captured, handler = self._capture()
        adapter = _adapter(handler)
        _run(adapter, lambda: getattr(adapter, method)("Approval Documents", "PN-001", "01/05/2024 10:00:00"))

        assert captured[0] == {
            "action": action,
            "sheetName": "Approval Documents",
            "serialNo": "PN-001",
            "timestamp": "2024-05-01T04:30:00.000Z",
        }

    def test_update_renewal(self):
        captured, handler = self._capture()
        adapter = _adapter(handler)
        doc = Document(serial_no="CN-002", timestamp="2024-05-01T04:30:00.000Z")
        _run(adapter, lambda: adapter.update_renewal(doc, renewal_date="01/01/2026", needs_renewal=True))

        form = captured[0]
        assert form["action"] == "updateRenewal"
        assert form["sheetName"] == "Updated Renewal"
        assert form["needsRenewal"] == "Yes"
        assert form["renewalDate"] == "01/01/2026"
        assert "imageUrl" not in form

    def test_share_via_email(self):
        captured, handler = self._capture()
        adapter = _adapter(handler)
        docs = [{"serialNo": "PN-001", "name": "Passport", "imageUrl": "u"}]
        _run(adapter, lambda: adapter.share_via_email(
            recipient_email="r@x.co", recipient_name="R", subject="S", message="M", documents=docs,
        ))
        assert captured[0]["recipientEmail"] == "r@x.co"
        assert json.loads(captured[0]["documents"]) == docs

    def test_ping_requires_boot(self):
        adapter = _adapter(lambda r: httpx.Response(200, json={"success": True}))
        with pytest.raises(RemoteHTTPError):
            asyncio.run(adapter.ping())
