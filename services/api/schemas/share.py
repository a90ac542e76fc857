"""
Pydantic schemas for sharing and the dashboard.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from .document import DocumentOut


class EmailShareRequest(BaseModel):
    to: str = ""
    name: str = ""
    subject: str = "Shared documents"
    message: str = ""
    serial_nos: List[str] = Field(default_factory=list)


class WhatsAppShareRequest(BaseModel):
    number: str = ""
    serial_nos: List[str] = Field(default_factory=list)


class ShareRecordOut(BaseModel):
    method: str
    recipient: str
    recipient_name: Optional[str] = None
    serial_nos: List[str]
    document_names: List[str]
    shared_at: str
    shared_by: Optional[str] = None

    @classmethod
    def from_record(cls, rec) -> "ShareRecordOut":
        return cls(
            method=rec.method,
            recipient=rec.recipient,
            recipient_name=rec.recipient_name,
            serial_nos=list(rec.serial_nos),
            document_names=list(rec.document_names),
            shared_at=rec.shared_at,
            shared_by=rec.shared_by,
        )


class EmailShareOut(BaseModel):
    success: bool = True
    share: ShareRecordOut


class WhatsAppShareOut(BaseModel):
    link: str
    share: ShareRecordOut


class SharedListOut(BaseModel):
    total: int
    shares: List[ShareRecordOut]


class DashboardStats(BaseModel):
    total: int
    personal: int
    company: int
    director: int
    needs_renewal: int
    expired: int
    personal_pct: int
    company_pct: int
    director_pct: int
    needs_renewal_pct: int
    expired_pct: int


class DashboardOut(BaseModel):
    stats: DashboardStats
    recent: List[DocumentOut]
    renewals: List[DocumentOut]
    shared: List[ShareRecordOut]
