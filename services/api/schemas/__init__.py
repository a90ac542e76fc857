"""
Pydantic schemas for API request/response validation.
"""
from typing import Optional

from pydantic import BaseModel, Field

from .document import (
    ActionOut,
    ApprovalAction,
    ApprovalDocumentOut,
    DeleteOut,
    DeleteRequest,
    DeleteResult,
    DocumentBatchSubmit,
    DocumentKey,
    DocumentListOut,
    DocumentOut,
    DocumentSubmitItem,
    FilePayload,
    FileUploadOut,
    documents_out,
    RenewalUpdateRequest,
    SubmissionOut,
    SubmittedDocumentOut,
)
from .share import (
    DashboardOut,
    DashboardStats,
    EmailShareOut,
    EmailShareRequest,
    ShareRecordOut,
    SharedListOut,
    WhatsAppShareOut,
    WhatsAppShareRequest,
)

# ============ Auth ============


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SessionOut(BaseModel):
    username: str
    is_admin: bool
    token: Optional[str] = Field(None, description="Only returned by /login")


# ============ Health Check ============


class HealthCheck(BaseModel):
    """Health check response."""
    ok: bool = True
    backend: Optional[str] = None


# Re-export all
__all__ = [
    "ActionOut",
    "ApprovalAction",
    "ApprovalDocumentOut",
    "DashboardOut",
    "DashboardStats",
    "DeleteOut",
    "DeleteRequest",
    "DeleteResult",
    "DocumentBatchSubmit",
    "DocumentKey",
    "DocumentListOut",
    "DocumentOut",
    "DocumentSubmitItem",
    "EmailShareOut",
    "EmailShareRequest",
    "FilePayload",
    "FileUploadOut",
    "documents_out",
    "HealthCheck",
    "LoginRequest",
    "RenewalUpdateRequest",
    "SessionOut",
    "ShareRecordOut",
    "SharedListOut",
    "SubmissionOut",
    "SubmittedDocumentOut",
    "WhatsAppShareOut",
    "WhatsAppShareRequest",
]
