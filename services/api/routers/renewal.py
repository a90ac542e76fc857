# services/api/routers/renewal.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from core.filters import ALL, RENEWAL, filter_documents, resolve_category_filter, select_by_serial
from core.reconcile import fetch_documents
from core.renewal import to_sheet_renewal_date
from core.submission import decode_file_payloads
from core.validation import validate_renewal_update
from dependencies import AppSettings, CurrentSession, Repository
from schemas import ActionOut, DocumentListOut, RenewalUpdateRequest, documents_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents/renewal", tags=["renewal"])


@router.get("", response_model=DocumentListOut)
async def list_renewals(
    repo: Repository,
    settings: AppSettings,
    session: CurrentSession,
    filter: Optional[str] = Query(None, description="Renewal (default) | All"),
    search: str = Query(""),
):
    category = resolve_category_filter(filter_value=filter, default=RENEWAL, allowed=(ALL, RENEWAL))
    docs = await fetch_documents(repo, settings)
    visible = filter_documents(docs, search, category)
    return DocumentListOut(
        filter=category,
        search=search,
        total=len(visible),
        documents=documents_out(visible, settings),
    )


@router.post("/update", response_model=ActionOut)
async def update_renewal(
    body: RenewalUpdateRequest,
    repo: Repository,
    settings: AppSettings,
    session: CurrentSession,
):
    """
    Record a renewal: new date / flag and optionally a replacement scan.
    Appends an overlay row; the original row is left untouched.
    """
    validate_renewal_update(body.needs_renewal, body.renewal_date)

    docs = await fetch_documents(repo, settings)
    found, _ = select_by_serial(docs, [body.serial_no])
    if not found:
        raise HTTPException(status_code=404, detail=f"Document {body.serial_no} not found")
    doc = found[0]

    image_url = None
    if body.file is not None:
        data = decode_file_payloads([body])[0]
        image_url = await repo.upload_file(body.file.file_name, body.file.mime_type, data)

    renewal_date = to_sheet_renewal_date(body.renewal_date) if body.needs_renewal else ""
    await repo.update_renewal(
        doc,
        renewal_date=renewal_date,
        needs_renewal=body.needs_renewal,
        image_url=image_url,
    )
    logger.info(f"✓ {session.username} updated renewal of {doc.serial_no} -> {renewal_date or 'none'}")
    return ActionOut(serial_no=doc.serial_no, message="Renewal updated")
