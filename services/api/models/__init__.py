from __future__ import annotations

from .document import ApprovalDocument, Document, RenewalUpdate, ShareRecord

__all__ = ["Document", "RenewalUpdate", "ApprovalDocument", "ShareRecord"]
