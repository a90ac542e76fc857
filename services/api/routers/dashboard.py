# services/api/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter

from core import dates
from core.filters import RENEWAL, filter_documents
from core.reconcile import fetch_documents
from core.stats import dashboard_stats
from dependencies import AppSettings, CurrentSession, Repository, Shares
from schemas import DashboardOut, DashboardStats, ShareRecordOut, documents_out

router = APIRouter(tags=["dashboard"])

PANEL_SIZE = 4


@router.get("/", response_model=DashboardOut)
async def dashboard(repo: Repository, settings: AppSettings, shares: Shares, session: CurrentSession):
    """Counts, latest uploads, upcoming renewals and latest shares."""
    docs = await fetch_documents(repo, settings)
    today = dates.today()

    renewals = filter_documents(docs, "", RENEWAL)[:PANEL_SIZE]
    return DashboardOut(
        stats=DashboardStats(**dashboard_stats(docs, today)),
        recent=documents_out(docs[:PANEL_SIZE], settings, today),
        renewals=documents_out(renewals, settings, today),
        shared=[ShareRecordOut.from_record(r) for r in shares.list(PANEL_SIZE)],
    )
