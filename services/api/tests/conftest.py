"""
Shared fixtures: an in-memory repository and a TestClient wired to it.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from adapters.base import DocumentRepository, RemoteResponseError
from settings import Settings

DOC_HEADER = ["Timestamp", "Serial No", "Document Name", "Document Type", "Category", "Company",
              "Tags", "Person", "Needs Renewal", "Renewal Date", "Image URL", "File Size",
              "Email", "Mobile", "Deleted"]
RENEWAL_HEADER = ["Timestamp", "Serial No", "Document Name", "Document Type", "Category", "Company",
                  "Tags", "Person", "Needs Renewal", "Renewal Date", "Original Serial No",
                  "Image URL", "Email", "Mobile", "Deleted"]
APPROVAL_HEADER = ["Timestamp", "Serial No", "Document Name", "Document Type", "Category", "Company",
                   "Tags", "Person", "Needs Renewal", "Renewal Date", "File Size", "Image URL",
                   "Email", "Mobile", "Status", "Submitted By"]


def doc_row(serial, timestamp, name="Doc", category="Personal", needs_renewal="No",
            renewal_date="", image_url="", deleted="", tags="", person="", email="a@b.co",
            mobile="9876543210", doc_type="ID", company=""):
    return [timestamp, serial, name, doc_type, category, company, tags, person, needs_renewal,
            renewal_date, image_url, "0.10 MB", email, mobile, deleted]


def renewal_row(serial, timestamp, original, renewal_date="", needs_renewal="Yes",
                image_url="", name="Doc", category="Personal", deleted=""):
    return [timestamp, serial, name, "ID", category, "", "", "", needs_renewal, renewal_date,
            original, image_url, "a@b.co", "9876543210", deleted]


def approval_row(serial, timestamp, name="Doc", person="", status="Pending", submitted_by="user",
                 category="Personal"):
    return [timestamp, serial, name, "ID", category, "", "", person, "No", "", "0.10 MB", "",
            "a@b.co", "9876543210", status, submitted_by]


class FakeRepository(DocumentRepository):
    """In-memory stand-in for the spreadsheet endpoint; records every call."""

    def __init__(self, sheets: Optional[Dict[str, List[List[Any]]]] = None,
                 next_serials: Optional[Dict[str, int]] = None):
        self.sheets = sheets if sheets is not None else {
            "Documents": [DOC_HEADER],
            "Updated Renewal": [RENEWAL_HEADER],
            "Approval Documents": [APPROVAL_HEADER],
        }
        self.next_serials = next_serials or {"personal": 1, "company": 1, "director": 1}
        self.calls: List[tuple] = []
        self.inserted: List[tuple] = []
        self.uploads: List[tuple] = []
        self.fail_insert_at: Optional[int] = None
        self.fail_upload = False
        self.booted = False
        self.closed = False

    async def boot(self) -> None:
        self.booted = True

    async def close(self) -> None:
        self.closed = True

    async def fetch_sheet(self, sheet):
        self.calls.append(("fetch", sheet))
        return [list(r) for r in self.sheets.get(sheet, [])]

    async def get_next_serials(self):
        self.calls.append(("getNextSerials",))
        return dict(self.next_serials)

    async def insert_row(self, sheet, row):
        self.calls.append(("insert", sheet))
        if self.fail_insert_at is not None and len(self.inserted) == self.fail_insert_at:
            raise RemoteResponseError("Sheet is locked")
        self.inserted.append((sheet, row))
        self.sheets.setdefault(sheet, [[]]).append(row)

    async def upload_file(self, file_name, mime_type, data):
        self.calls.append(("upload", file_name))
        if self.fail_upload is True or self.fail_upload == file_name:
            raise RemoteResponseError("File upload failed")
        self.uploads.append((file_name, mime_type, data))
        return f"https://drive.google.com/file/d/id-{len(self.uploads)}/view"

    async def mark_deleted(self, sheet, serial_no, timestamp):
        self.calls.append(("markDeleted", sheet, serial_no, timestamp))

    async def approve(self, sheet, serial_no, timestamp):
        self.calls.append(("approve", sheet, serial_no, timestamp))

    async def reject(self, sheet, serial_no, timestamp):
        self.calls.append(("reject", sheet, serial_no, timestamp))

    async def update_renewal(self, document, *, renewal_date, needs_renewal, image_url=None):
        self.calls.append(("updateRenewal", document.serial_no, renewal_date, needs_renewal, image_url))

    async def share_via_email(self, *, recipient_email, recipient_name, subject, message, documents):
        self.calls.append(("shareViaEmail", recipient_email, recipient_name, subject, documents))

    async def ping(self):
        return None

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        appscript_url="https://script.example.com/exec",
        login_users={"admin": "admin123", "asha": "pw"},
        admin_users=["admin"],
        display_timezone="Asia/Kolkata",
    )


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def client(settings, repo):
    from main import create_app

    app = create_app(settings=settings, repository=repo)
    with TestClient(app) as c:
        yield c


def login(client, username="admin", password="admin123") -> Dict[str, str]:
    resp = client.post("/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client)


@pytest.fixture
def user_headers(client):
    return login(client, "asha", "pw")
