# services/api/core/reconcile.py
"""
Merge the base `Documents` tab with the `Updated Renewal` overlay tab into one
list of logical documents.

    1. decode base rows
    2. decode overlay rows
    3. fold each overlay row into the base row it references (by its own
       serial or its original serial); unmatched overlay rows become
       documents of their own
    4. drop soft-deleted records
    5. sort newest first
    6. number the result 1..n

No writes happen here.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core import dates
from models import ApprovalDocument, Document, RenewalUpdate
from models.converters import (
    approval_document_from_row,
    decode_rows,
    document_from_row,
    renewal_update_from_row,
)

logger = logging.getLogger(__name__)


def _apply_update(doc: Document, update: RenewalUpdate) -> None:
    if update.serial_no:
        doc.serial_no = update.serial_no
    doc.renewal_date = update.renewal_date
    doc.needs_renewal = update.needs_renewal
    if update.image_url:
        doc.image_url = update.image_url
    doc.timestamp = update.timestamp


def _synthetic_from_update(update: RenewalUpdate) -> Document:
    return Document(
        serial_no=update.serial_no or update.original_serial_no,
        timestamp=update.timestamp,
        name=update.name,
        type=update.type,
        category=update.category,
        company=update.company,
        tags=list(update.tags),
        person_name=update.person_name,
        email=update.email,
        mobile=update.mobile,
        needs_renewal=update.needs_renewal,
        renewal_date=update.renewal_date,
        image_url=update.image_url,
        file_size=update.file_size,
        source_sheet=update.source_sheet,
        row_serial_no=update.row_serial_no,
        row_timestamp=update.row_timestamp,
        is_deleted=update.is_deleted,
    )


def merge_documents(base: List[Document], updates: List[RenewalUpdate]) -> List[Document]:
    """
    Fold overlay records into base records. Returns a new list; inputs are not
    modified. Deleted records are still present in the result.
    """
    merged = [replace(d, tags=list(d.tags)) for d in base]

    # every serial a record has carried -> record
    aliases: Dict[str, Document] = {}
    for doc in merged:
        if doc.serial_no:
            aliases.setdefault(doc.serial_no, doc)

    # oldest first, so the newest renewal action ends up on top
    ordered = sorted(updates, key=lambda u: dates.to_sort_instant(u.timestamp))

    synthetic: List[Document] = []
    for update in ordered:
        target: Optional[Document] = None
        for key in (update.serial_no, update.original_serial_no):
            if key and key in aliases:
                target = aliases[key]
                break

        if target is None:
            logger.info(
                f"Renewal row {update.serial_no or '?'} "
                f"(original {update.original_serial_no or '?'}) has no base row; showing it on its own"
            )
            doc = _synthetic_from_update(update)
            synthetic.insert(0, doc)
            if doc.serial_no:
                aliases.setdefault(doc.serial_no, doc)
            if update.original_serial_no:
                aliases.setdefault(update.original_serial_no, doc)
            continue

        _apply_update(target, update)
        aliases.setdefault(target.serial_no, target)

    return synthetic + merged


def reconcile(base: List[Document], updates: List[RenewalUpdate]) -> List[Document]:
    """Merge, drop soft-deleted records, sort newest first and renumber ids."""
    merged = merge_documents(base, updates)
    visible = [d for d in merged if not d.is_deleted]
    visible.sort(key=lambda d: dates.to_sort_instant(d.timestamp), reverse=True)
    for i, doc in enumerate(visible, start=1):
        doc.id = i
    return visible


def reconcile_rows(
    base_rows: Optional[List[Any]],
    overlay_rows: Optional[List[Any]],
    *,
    base_sheet: str = "Documents",
    overlay_sheet: str = "Updated Renewal",
) -> List[Document]:
    """Raw fetched tabs (header row included) -> reconciled documents."""
    base = decode_rows(base_rows, base_sheet, document_from_row)
    updates = decode_rows(overlay_rows, overlay_sheet, renewal_update_from_row)
    docs = reconcile(base, updates)
    logger.debug(f"Reconciled {len(base)} base + {len(updates)} renewal rows into {len(docs)} documents")
    return docs


async def fetch_documents(repository, settings) -> List[Document]:
    """Fetch both tabs and reconcile them. Every call hits the backend."""
    base_rows, overlay_rows = await asyncio.gather(
        repository.fetch_sheet(settings.documents_sheet),
        repository.fetch_sheet(settings.renewal_sheet),
    )
    return reconcile_rows(
        base_rows,
        overlay_rows,
        base_sheet=settings.documents_sheet,
        overlay_sheet=settings.renewal_sheet,
    )


async def fetch_pending_approvals(repository, settings) -> List[ApprovalDocument]:
    """Approval rows still waiting for a decision, newest first."""
    rows = await repository.fetch_sheet(settings.approval_sheet)
    pending = [
        d for d in decode_rows(rows, settings.approval_sheet, approval_document_from_row)
        if d.is_pending and not d.is_deleted
    ]
    pending.sort(key=lambda d: dates.to_sort_instant(d.timestamp), reverse=True)
    for i, doc in enumerate(pending, start=1):
        doc.id = i
    return pending
