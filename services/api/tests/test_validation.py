"""
Tests for validation functions.

Run with: pytest tests/test_validation.py -v
"""
import pytest
from fastapi import HTTPException

from core.validation import (
    SubmissionValidationError,
    is_valid_email,
    is_valid_phone,
    normalize_phone,
    validate_email_share,
    validate_renewal_update,
    validate_submission,
    validate_whatsapp_share,
)
from schemas import DocumentSubmitItem, FilePayload


def _item(**kw):
    data = dict(name="Passport", category="Personal", email="a@b.co", mobile="+919876543210")
    data.update(kw)
    return DocumentSubmitItem(**data)


class TestContactFormats:
    """Email and phone checks."""

    @pytest.mark.parametrize("value", ["a@b.co", "first.last@example.com", " x@y.in "])
    def test_valid_email(self, value):
        assert is_valid_email(value)

    @pytest.mark.parametrize("value", ["", None, "a@b", "a b@c.d", "@c.d", "plain"])
    def test_invalid_email(self, value):
        assert not is_valid_email(value)

    @pytest.mark.parametrize("value", ["9876543210", "+919876543210", "98765 43210", "(987) 654-3210"])
    def test_valid_phone(self, value):
        assert is_valid_phone(value)

    @pytest.mark.parametrize("value", ["", None, "12345", "+91abc", "1234567890123456"])
    def test_invalid_phone(self, value):
        assert not is_valid_phone(value)

    def test_normalize(self):
        assert normalize_phone("+91 98765-43210") == "+919876543210"


class TestValidateSubmission:
    """Tests for the add-document batch."""

    def test_valid_batch(self):
        validate_submission([_item(), _item(needs_renewal=True, renewal_date="2026-01-01")])

    def test_error_is_http_400(self):
        with pytest.raises(HTTPException) as exc:
            validate_submission([_item(email="")])
        assert exc.value.status_code == 400

    def test_missing_email(self):
        with pytest.raises(SubmissionValidationError) as exc:
            validate_submission([_item(email="")])
        assert exc.value.errors == [{"index": 0, "field": "email", "message": "Email is required"}]

    def test_all_errors_reported_together(self):
        with pytest.raises(SubmissionValidationError) as exc:
            validate_submission([
                _item(),
                _item(name=" ", mobile="12", needs_renewal=True, renewal_date=None),
            ])
        fields = [(e["index"], e["field"]) for e in exc.value.errors]
        assert fields == [(1, "name"), (1, "mobile"), (1, "renewal_date")]

    def test_invalid_renewal_date(self):
        with pytest.raises(SubmissionValidationError) as exc:
            validate_submission([_item(needs_renewal=True, renewal_date="31/02/2026")])
        assert exc.value.errors[0]["field"] == "renewal_date"

    def test_file_needs_a_name(self):
        with pytest.raises(SubmissionValidationError):
            validate_submission([_item(file=FilePayload(file_name=" ", base64_data="aGk="))])

    def test_empty_batch(self):
        with pytest.raises(SubmissionValidationError) as exc:
            validate_submission([])
        assert exc.value.errors[0]["field"] == "documents"


class TestOtherValidators:
    def test_renewal_update(self):
        validate_renewal_update(False, None)
        validate_renewal_update(True, "01/01/2030")
        with pytest.raises(SubmissionValidationError):
            validate_renewal_update(True, "")

    def test_email_share(self):
        validate_email_share("a@b.co", "Ravi", ["PN-001"])
        with pytest.raises(SubmissionValidationError) as exc:
            validate_email_share("nope", "", [])
        assert {e["field"] for e in exc.value.errors} == {"to", "name", "serial_nos"}

    def test_whatsapp_share(self):
        validate_whatsapp_share("+91 98765 43210", ["PN-001"])
        with pytest.raises(SubmissionValidationError):
            validate_whatsapp_share("123", ["PN-001"])
