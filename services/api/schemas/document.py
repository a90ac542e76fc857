"""
Pydantic schemas for documents.
"""
from datetime import date
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core import dates
from core.renewal import days_until_renewal, is_expired
from core.sharing import download_url, format_image_url


class FilePayload(BaseModel):
    """File attached to an add-document item, base64 encoded."""
    file_name: str = Field(..., description="Original file name")
    mime_type: str = Field("application/octet-stream", description="MIME type")
    base64_data: str = Field(..., description="File content, base64")


class DocumentSubmitItem(BaseModel):
    """
    One document of an add-document batch.

    Business rules (required email/mobile, renewal date, ...) are checked in
    core.validation so every problem is reported in one response.
    """
    name: str = ""
    type: str = ""
    category: str = ""
    company: str = ""
    tags: Union[str, List[str]] = Field("", description="Comma-separated string or list")
    entity_name: str = Field("", description="Person / company / director name")
    email: str = ""
    mobile: str = ""
    needs_renewal: bool = False
    renewal_date: Optional[str] = Field(None, description="YYYY-MM-DD or DD/MM/YYYY")
    file: Optional[FilePayload] = None


class DocumentBatchSubmit(BaseModel):
    documents: List[DocumentSubmitItem] = Field(default_factory=list)


class SubmittedDocumentOut(BaseModel):
    serial_no: str
    name: str
    image_url: str = ""


class SubmissionOut(BaseModel):
    sheet: str
    status: str
    documents: List[SubmittedDocumentOut]


class FileUploadOut(BaseModel):
    file_name: str
    file_url: str
    file_size: str


class DocumentOut(BaseModel):
    """A reconciled document, formatted for display."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    serial_no: str
    timestamp: str = Field(..., description="Raw sheet value; use as the row key")
    display_timestamp: str
    name: str
    type: str
    category: str
    company: str
    tags: List[str]
    person_name: str
    email: str
    mobile: str
    needs_renewal: bool
    renewal_date: str
    is_expired: bool
    days_until_renewal: Optional[int] = None
    image_url: str
    view_url: str
    download_url: str
    file_size: str
    source_sheet: str

    @classmethod
    def from_document(cls, doc, *, midnight_as_now: bool = False, today: Optional[date] = None) -> "DocumentOut":
        return cls(
            id=doc.id,
            serial_no=doc.serial_no,
            timestamp=doc.timestamp,
            display_timestamp=dates.to_display_datetime(doc.timestamp, midnight_as_now=midnight_as_now),
            name=doc.name,
            type=doc.type,
            category=doc.category,
            company=doc.company,
            tags=list(doc.tags),
            person_name=doc.person_name,
            email=doc.email,
            mobile=doc.mobile,
            needs_renewal=doc.needs_renewal,
            renewal_date=doc.renewal_date,
            is_expired=doc.needs_renewal and is_expired(doc.renewal_date, today),
            days_until_renewal=days_until_renewal(doc.renewal_date, today) if doc.needs_renewal else None,
            image_url=doc.image_url,
            view_url=format_image_url(doc.image_url),
            download_url=download_url(doc.image_url),
            file_size=doc.file_size,
            source_sheet=doc.source_sheet,
        )


class ApprovalDocumentOut(DocumentOut):
    status: str
    submitted_by: str

    @classmethod
    def from_document(cls, doc, *, midnight_as_now: bool = False, today: Optional[date] = None) -> "ApprovalDocumentOut":
        base = DocumentOut.from_document(doc, midnight_as_now=midnight_as_now, today=today)
        return cls(**base.model_dump(), status=doc.status or "Pending", submitted_by=doc.submitted_by)


class DocumentListOut(BaseModel):
    filter: str
    search: str = ""
    total: int
    documents: List[DocumentOut]


class DocumentKey(BaseModel):
    """A row is addressed by serial number + its stored timestamp."""
    serial_no: str = Field(..., min_length=1)
    timestamp: str = Field(..., min_length=1)


class DeleteRequest(BaseModel):
    serial_nos: List[str] = Field(..., min_length=1, description="Serials as shown in the documents list")


class DeleteResult(BaseModel):
    serial_no: str
    deleted: bool
    error: Optional[str] = None


class DeleteOut(BaseModel):
    results: List[DeleteResult]


class RenewalUpdateRequest(BaseModel):
    serial_no: str = Field(..., min_length=1)
    needs_renewal: bool = True
    renewal_date: Optional[str] = Field(None, description="YYYY-MM-DD or DD/MM/YYYY")
    file: Optional[FilePayload] = Field(None, description="Replacement scan")


class ApprovalAction(DocumentKey):
    pass


class ActionOut(BaseModel):
    success: bool = True
    serial_no: str
    message: str = ""


def documents_out(docs, settings, today: Optional[date] = None) -> List[DocumentOut]:
    today = today or dates.today()
    return [
        DocumentOut.from_document(d, midnight_as_now=settings.display_midnight_as_now, today=today)
        for d in docs
    ]
