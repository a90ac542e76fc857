# services/api/routers/documents.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status

from adapters.base import RepositoryError
from core.filters import document_filters, filter_documents, resolve_category_filter, select_by_serial
from core.reconcile import fetch_documents
from core.serials import build_prefix_table
from core.submission import format_file_size, submit_documents
from dependencies import AppSettings, CurrentSession, Repository
from schemas import (
    DeleteOut,
    DeleteRequest,
    DeleteResult,
    DocumentBatchSubmit,
    DocumentListOut,
    FileUploadOut,
    SubmissionOut,
    SubmittedDocumentOut,
    documents_out,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=DocumentListOut)
async def list_documents(
    repo: Repository,
    settings: AppSettings,
    session: CurrentSession,
    type: Optional[str] = Query(None, description="personal | company | director"),
    filter: Optional[str] = Query(None, description="All | Personal | Company | Director | <extra category> | Renewal"),
    search: str = Query("", description="Free-text search"),
    refresh: Optional[str] = Query(None, description="Ignored; every call refetches"),
):
    """
    All documents, reconciled with renewal updates, newest first.
    ?filter= wins over ?type=; unknown values fall back to All.
    """
    allowed = document_filters(build_prefix_table(settings.extra_category_prefixes))
    category = resolve_category_filter(doc_type=type, filter_value=filter, allowed=allowed)
    docs = await fetch_documents(repo, settings)
    visible = filter_documents(docs, search, category)
    return DocumentListOut(
        filter=category,
        search=search,
        total=len(visible),
        documents=documents_out(visible, settings),
    )


@router.post("/add", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED)
async def add_documents(
    body: DocumentBatchSubmit,
    repo: Repository,
    settings: AppSettings,
    session: CurrentSession,
):
    """
    Validate the whole batch, allocate serials, upload files, insert rows.
    With approval enabled the rows wait in the approval sheet.
    """
    result = await submit_documents(body.documents, repo, settings, submitted_by=session.username)
    return SubmissionOut(
        sheet=result.sheet,
        status=result.status,
        documents=[
            SubmittedDocumentOut(serial_no=d.serial_no, name=d.name, image_url=d.image_url)
            for d in result.documents
        ],
    )


@router.post("/files", response_model=FileUploadOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    repo: Repository,
    session: CurrentSession,
    file: UploadFile = File(...),
):
    """Upload one file on its own and return its link."""
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    file_name = file.filename or "document"
    url = await repo.upload_file(file_name, file.content_type or "application/octet-stream", data)
    return FileUploadOut(file_name=file_name, file_url=url, file_size=format_file_size(len(data)))


@router.post("/delete", response_model=DeleteOut)
async def delete_documents(
    body: DeleteRequest,
    repo: Repository,
    settings: AppSettings,
    session: CurrentSession,
):
    """
    Soft-delete documents. Each serial is attempted and reported on its own;
    the row that is marked is the one the document was decoded from.
    """
    docs = await fetch_documents(repo, settings)
    found, missing = select_by_serial(docs, body.serial_nos)

    results: List[DeleteResult] = [
        DeleteResult(serial_no=s, deleted=False, error="Document not found") for s in missing
    ]
    for doc in found:
        try:
            await repo.mark_deleted(doc.source_sheet, doc.row_serial_no, doc.row_timestamp)
            results.append(DeleteResult(serial_no=doc.serial_no, deleted=True))
            logger.info(f"✓ {session.username} deleted {doc.serial_no}")
        except RepositoryError as e:
            results.append(DeleteResult(serial_no=doc.serial_no, deleted=False, error=e.message))
    return DeleteOut(results=results)
