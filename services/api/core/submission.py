# services/api/core/submission.py
"""
Add-document batch: validate -> allocate serials -> upload files -> insert rows.

Rows go to the approval tab (status "Pending") when approval is required,
straight into the documents tab otherwise. Inserts are sequential and stop at
the first failure; rows already written stay written.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from adapters.base import DocumentRepository, RepositoryError
from core import dates
from core.renewal import to_sheet_renewal_date
from core.serials import SerialAllocator, build_prefix_table, next_serials_from_existing
from core.validation import SubmissionValidationError, validate_submission
from models.converters import APPROVAL_LAYOUT, DOCUMENTS_LAYOUT, row_from_values, tags_from_sheet

logger = logging.getLogger(__name__)


class BatchSubmissionError(Exception):
    """A batch failed part-way through; `inserted` rows are already persisted."""

    def __init__(self, failed_serial: str, inserted: List[str], message: str):
        self.failed_serial = failed_serial
        self.inserted = inserted
        self.message = message
        super().__init__(f"{failed_serial}: {message}")


@dataclass
class SubmittedDocument:
    serial_no: str
    name: str
    image_url: str = ""


@dataclass
class SubmissionResult:
    sheet: str
    status: str
    documents: List[SubmittedDocument] = field(default_factory=list)


def format_file_size(num_bytes: int) -> str:
    """Size as stored in the sheet, e.g. "1.25 MB"."""
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def decode_file_payloads(items: Sequence[Any]) -> List[Optional[bytes]]:
    """base64 payloads -> bytes; every bad payload is reported at once."""
    out: List[Optional[bytes]] = []
    errors: List[Dict[str, Any]] = []
    for i, item in enumerate(items):
        if item.file is None:
            out.append(None)
            continue
        try:
            out.append(base64.b64decode(item.file.base64_data, validate=True))
        except (binascii.Error, ValueError):
            out.append(None)
            errors.append({"index": i, "field": "file", "message": f"File {item.file.file_name} is not valid base64"})
    if errors:
        raise SubmissionValidationError(errors)
    return out


async def _issued_serials(repository: DocumentRepository, settings) -> List[str]:
    serials: List[str] = []
    for sheet in (settings.documents_sheet, settings.renewal_sheet, settings.approval_sheet):
        rows = await repository.fetch_sheet(sheet)
        for row in rows[1:]:
            if isinstance(row, (list, tuple)) and len(row) > 1:
                serials.append(str(row[1]).strip())
    return serials


async def load_allocator(repository: DocumentRepository, settings) -> SerialAllocator:
    """
    Seed an allocator for one batch.

    "server": ask the endpoint (getNextSerials). Prefixes the endpoint does
              not count (organization-specific categories) are filled in by
              scanning the tabs.
    "scan":   read every tab and continue after the highest serial issued.
    """
    table = build_prefix_table(settings.extra_category_prefixes)

    if settings.serial_strategy == "scan":
        return SerialAllocator(next_serials_from_existing(await _issued_serials(repository, settings), table), table)

    next_serials = dict(await repository.get_next_serials())
    reported = {str(k).strip().lower() for k in next_serials}
    covered = {prefix for category, prefix in table.items() if category.lower() in reported}
    missing = [category for category, prefix in table.items() if prefix not in covered]
    if missing:
        logger.info(f"getNextSerials has no counter for {missing}; scanning the sheets for them")
        scanned = next_serials_from_existing(await _issued_serials(repository, settings), table)
        for category in missing:
            next_serials[category.lower()] = scanned[category.lower()]

    return SerialAllocator(next_serials, table)


def _row_values(item: Any, serial_no: str, image_url: str, file_size: str, timestamp: str) -> Dict[str, Any]:
    tags = item.tags if isinstance(item.tags, list) else tags_from_sheet(item.tags)
    return {
        "timestamp": timestamp,
        "serial_no": serial_no,
        "name": item.name.strip(),
        "type": item.type or "",
        "category": item.category,
        "company": item.company or "",
        "tags": [t for t in tags if t],
        "person_name": item.entity_name or "",
        "needs_renewal": bool(item.needs_renewal),
        "renewal_date": to_sheet_renewal_date(item.renewal_date) if item.needs_renewal else "",
        "image_url": image_url,
        "file_size": file_size,
        "email": item.email.strip(),
        "mobile": item.mobile.strip(),
    }


async def submit_documents(
    items: Sequence[Any],
    repository: DocumentRepository,
    settings,
    *,
    submitted_by: str = "user",
) -> SubmissionResult:
    """
    Raises:
        SubmissionValidationError: nothing was sent to the repository
        RepositoryError: serial allocation or an upload failed, nothing inserted
        BatchSubmissionError: an insert failed; earlier rows are persisted
    """
    validate_submission(items)
    payloads = decode_file_payloads(items)

    allocator = await load_allocator(repository, settings)
    serials = [allocator.allocate(item.category) for item in items]

    async def _upload(item: Any, data: Optional[bytes]) -> str:
        if data is None:
            return ""
        return await repository.upload_file(item.file.file_name, item.file.mime_type, data)

    # every upload settles before a failure is reported
    results = await asyncio.gather(
        *(_upload(item, data) for item, data in zip(items, payloads)),
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        orphaned = [r for r in results if isinstance(r, str) and r]
        logger.error(f"✗ {len(failures)} upload(s) failed; nothing inserted, {len(orphaned)} uploaded file(s) left unlinked")
        raise failures[0]
    urls = list(results)

    if settings.require_approval:
        sheet, layout, status = settings.approval_sheet, APPROVAL_LAYOUT, "Pending"
    else:
        sheet, layout, status = settings.documents_sheet, DOCUMENTS_LAYOUT, "Stored"

    result = SubmissionResult(sheet=sheet, status=status)
    inserted: List[str] = []
    for item, serial_no, url, data in zip(items, serials, urls, payloads):
        values = _row_values(
            item,
            serial_no,
            url,
            format_file_size(len(data)) if data is not None else "",
            dates.now_iso(),
        )
        if settings.require_approval:
            values.update(status="Pending", submitted_by=submitted_by)

        try:
            await repository.insert_row(sheet, row_from_values(layout, values))
        except RepositoryError as e:
            logger.error(f"✗ Insert of {serial_no} failed after {len(inserted)} rows: {e.message}")
            raise BatchSubmissionError(serial_no, inserted, e.message) from e

        inserted.append(serial_no)
        result.documents.append(SubmittedDocument(serial_no=serial_no, name=values["name"], image_url=url))

    logger.info(f"✓ Submitted {len(inserted)} documents to {sheet}: {', '.join(inserted)}")
    return result
