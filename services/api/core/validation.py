"""
Validation utilities for document submissions and share requests.
Everything here runs before any call to the remote endpoint.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from fastapi import HTTPException

from core.renewal import parse_renewal_date

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?\d{10,15}$")


class SubmissionValidationError(HTTPException):
    """
    400 with every problem found, e.g.

        {"message": "...", "errors": [{"index": 0, "field": "email", "message": "..."}]}
    """

    def __init__(self, errors: List[Dict[str, Any]], message: str = "Please fix the highlighted fields"):
        self.errors = errors
        super().__init__(status_code=400, detail={"message": message, "errors": errors})


def normalize_phone(value: Optional[str]) -> str:
    """Drop spaces, dashes, dots and brackets people type into phone fields."""
    return re.sub(r"[\s\-().]", "", value or "")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value and EMAIL_RE.match(value.strip()))


def is_valid_phone(value: Optional[str]) -> bool:
    return bool(PHONE_RE.match(normalize_phone(value)))


def _err(index: Optional[int], field: str, message: str) -> Dict[str, Any]:
    return {"index": index, "field": field, "message": message}


def check_renewal(index: Optional[int], needs_renewal: bool, renewal_date: Optional[str]) -> List[Dict[str, Any]]:
    """
    Rules:
    - needs_renewal requires a renewal date
    - a given renewal date must be a real calendar date
    """
    if not needs_renewal and not renewal_date:
        return []
    if needs_renewal and not (renewal_date or "").strip():
        return [_err(index, "renewal_date", "Renewal date is required when the document needs renewal")]
    if renewal_date and parse_renewal_date(renewal_date) is None:
        return [_err(index, "renewal_date", f"Invalid renewal date: {renewal_date}")]
    return []


def collect_item_errors(index: int, item: Any) -> List[Dict[str, Any]]:
    """Problems with one document of an add-document batch."""
    errors: List[Dict[str, Any]] = []

    if not (item.name or "").strip():
        errors.append(_err(index, "name", "Document name is required"))
    if not (item.category or "").strip():
        errors.append(_err(index, "category", "Category is required"))

    if not (item.email or "").strip():
        errors.append(_err(index, "email", "Email is required"))
    elif not is_valid_email(item.email):
        errors.append(_err(index, "email", f"Invalid email address: {item.email}"))

    if not (item.mobile or "").strip():
        errors.append(_err(index, "mobile", "Mobile number is required"))
    elif not is_valid_phone(item.mobile):
        errors.append(_err(index, "mobile", f"Invalid mobile number: {item.mobile}"))

    errors.extend(check_renewal(index, item.needs_renewal, item.renewal_date))

    if item.file is not None and not (item.file.file_name or "").strip():
        errors.append(_err(index, "file", "Attached file has no name"))

    return errors


def validate_submission(items: Sequence[Any]) -> None:
    """
    Validate a whole add-document batch.

    Raises:
        SubmissionValidationError: 400 listing every invalid field
    """
    if not items:
        raise SubmissionValidationError([_err(None, "documents", "Add at least one document")])

    errors: List[Dict[str, Any]] = []
    for i, item in enumerate(items):
        errors.extend(collect_item_errors(i, item))
    if errors:
        raise SubmissionValidationError(errors)


def validate_renewal_update(needs_renewal: bool, renewal_date: Optional[str]) -> None:
    errors = check_renewal(None, needs_renewal, renewal_date)
    if errors:
        raise SubmissionValidationError(errors)


def validate_email_share(to: Optional[str], name: Optional[str], serial_nos: Sequence[str]) -> None:
    errors: List[Dict[str, Any]] = []
    if not (name or "").strip():
        errors.append(_err(None, "name", "Recipient name is required"))
    if not is_valid_email(to):
        errors.append(_err(None, "to", "A valid recipient email is required"))
    if not serial_nos:
        errors.append(_err(None, "serial_nos", "Select at least one document"))
    if errors:
        raise SubmissionValidationError(errors)


def validate_whatsapp_share(number: Optional[str], serial_nos: Sequence[str]) -> None:
    errors: List[Dict[str, Any]] = []
    if not is_valid_phone(number):
        errors.append(_err(None, "number", "A valid WhatsApp number is required"))
    if not serial_nos:
        errors.append(_err(None, "serial_nos", "Select at least one document"))
    if errors:
        raise SubmissionValidationError(errors)
