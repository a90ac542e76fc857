# services/api/routers/shared.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query

from core.filters import select_by_serial
from core.reconcile import fetch_documents
from core.sharing import share_payload, whatsapp_link
from core.validation import validate_email_share, validate_whatsapp_share
from dependencies import AppSettings, CurrentSession, Repository, Shares
from models import Document
from schemas import (
    EmailShareOut,
    EmailShareRequest,
    ShareRecordOut,
    SharedListOut,
    WhatsAppShareOut,
    WhatsAppShareRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sharing"])


async def _selected(repo, settings, serial_nos: List[str]) -> List[Document]:
    docs = await fetch_documents(repo, settings)
    found, missing = select_by_serial(docs, serial_nos)
    if missing:
        raise HTTPException(status_code=404, detail=f"Documents not found: {', '.join(missing)}")
    return found


@router.get("/shared", response_model=SharedListOut)
async def list_shared(shares: Shares, session: CurrentSession, limit: int = Query(0, ge=0)):
    records = shares.list(limit or None)
    return SharedListOut(total=len(shares), shares=[ShareRecordOut.from_record(r) for r in records])


@router.post("/share/email", response_model=EmailShareOut)
async def share_email(
    body: EmailShareRequest,
    repo: Repository,
    settings: AppSettings,
    shares: Shares,
    session: CurrentSession,
):
    validate_email_share(body.to, body.name, body.serial_nos)
    docs = await _selected(repo, settings, body.serial_nos)

    await repo.share_via_email(
        recipient_email=body.to.strip(),
        recipient_name=body.name.strip(),
        subject=body.subject,
        message=body.message,
        documents=share_payload(docs),
    )
    rec = shares.record(
        "email",
        body.to.strip(),
        docs,
        recipient_name=body.name.strip(),
        shared_by=session.username,
    )
    logger.info(f"✓ {session.username} emailed {len(docs)} documents to {rec.recipient}")
    return EmailShareOut(share=ShareRecordOut.from_record(rec))


@router.post("/share/whatsapp", response_model=WhatsAppShareOut)
async def share_whatsapp(
    body: WhatsAppShareRequest,
    repo: Repository,
    settings: AppSettings,
    shares: Shares,
    session: CurrentSession,
):
    """Build the wa.me link; the client opens it."""
    validate_whatsapp_share(body.number, body.serial_nos)
    docs = await _selected(repo, settings, body.serial_nos)

    link = whatsapp_link(body.number, [d.name for d in docs])
    rec = shares.record("whatsapp", body.number.strip(), docs, shared_by=session.username)
    return WhatsAppShareOut(link=link, share=ShareRecordOut.from_record(rec))
