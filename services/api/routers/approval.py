# services/api/routers/approval.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Query

from core import dates
from core.filters import matches_search
from core.reconcile import fetch_pending_approvals
from dependencies import AdminSession, AppSettings, CurrentSession, Repository
from schemas import ActionOut, ApprovalAction, ApprovalDocumentOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents/approval", tags=["approval"])


@router.get("", response_model=List[ApprovalDocumentOut])
async def list_pending(
    repo: Repository,
    settings: AppSettings,
    session: CurrentSession,
    search: str = Query(""),
):
    """
    Pending submissions. Admins see all of them, everyone else only the rows
    filed under their own name.
    """
    pending = await fetch_pending_approvals(repo, settings)
    user = session.username.strip().lower()
    visible = [
        d for d in pending
        if (session.is_admin or d.person_name.strip().lower() == user) and matches_search(d, search)
    ]
    today = dates.today()
    return [
        ApprovalDocumentOut.from_document(d, midnight_as_now=settings.display_midnight_as_now, today=today)
        for d in visible
    ]


@router.post("/approve", response_model=ActionOut)
async def approve(body: ApprovalAction, repo: Repository, settings: AppSettings, session: AdminSession):
    await repo.approve(settings.approval_sheet, body.serial_no, body.timestamp)
    logger.info(f"✓ {session.username} approved {body.serial_no}")
    return ActionOut(serial_no=body.serial_no, message="Document approved")


@router.post("/reject", response_model=ActionOut)
async def reject(body: ApprovalAction, repo: Repository, settings: AppSettings, session: AdminSession):
    await repo.reject(settings.approval_sheet, body.serial_no, body.timestamp)
    logger.info(f"{session.username} rejected {body.serial_no}")
    return ActionOut(serial_no=body.serial_no, message="Document rejected")
