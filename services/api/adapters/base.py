"""
Repository interface for the document vault.
Defines the contract that every storage backend must implement.
"""

from typing import Any, Dict, List, Optional, Protocol

from models import Document


# ========== Errors ==========

class RepositoryError(Exception):
    """Base class for failures talking to the backing store."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RemoteHTTPError(RepositoryError):
    """Network failure, timeout or non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteResponseError(RepositoryError):
    """The endpoint answered, but with invalid JSON or success:false."""


# ========== Protocol ==========

class DocumentRepository(Protocol):
    """
    Protocol defining the interface for all storage backends.

    This allows swapping between the Apps Script endpoint and a direct Google
    Sheets connection without changing the routers or the core logic.

    Rows are positional lists in the column order of the target sheet
    (see models.converters). Fetches return the header row as data[0].
    """

    async def boot(self) -> None:
        """Open connections / clients."""
        ...

    async def close(self) -> None:
        """Release connections / clients."""
        ...

    async def fetch_sheet(self, sheet: str) -> List[List[Any]]:
        """
        Return every row of a tab, header row first.
        """
        ...

    async def get_next_serials(self) -> Dict[str, int]:
        """
        Return the next free serial number per category key, e.g.
        {"personal": 8, "company": 3, "director": 1}.
        """
        ...

    async def insert_row(self, sheet: str, row: List[Any]) -> None:
        """
        Append one row to a tab.
        """
        ...

    async def upload_file(self, file_name: str, mime_type: str, data: bytes) -> str:
        """
        Store a file and return a shareable URL.
        """
        ...

    async def mark_deleted(self, sheet: str, serial_no: str, timestamp: str) -> None:
        """
        Set the deletion marker on the row keyed by (serial_no, timestamp).
        """
        ...

    async def approve(self, sheet: str, serial_no: str, timestamp: str) -> None:
        """
        Approve a pending row of the approval tab; it becomes a document.
        """
        ...

    async def reject(self, sheet: str, serial_no: str, timestamp: str) -> None:
        """
        Reject a pending row of the approval tab.
        """
        ...

    async def update_renewal(
        self,
        document: Document,
        *,
        renewal_date: str,
        needs_renewal: bool,
        image_url: Optional[str] = None,
    ) -> None:
        """
        Record a renewal action for a document by appending an overlay row.
        The base row is never edited in place.
        """
        ...

    async def share_via_email(
        self,
        *,
        recipient_email: str,
        recipient_name: str,
        subject: str,
        message: str,
        documents: List[Dict[str, str]],
    ) -> None:
        """
        Email links to the given documents ([{serialNo, name, imageUrl}]).
        """
        ...

    async def ping(self) -> None:
        """
        Cheap readiness check; raises RepositoryError when unreachable.
        """
        ...
