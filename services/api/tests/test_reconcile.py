"""
Tests for merging the documents tab with the renewal overlay tab.
"""
import asyncio

from conftest import DOC_HEADER, RENEWAL_HEADER, APPROVAL_HEADER, FakeRepository, approval_row, doc_row, renewal_row
from core.reconcile import fetch_documents, fetch_pending_approvals, reconcile_rows


def _base(*rows):
    return [DOC_HEADER, *rows]


def _overlay(*rows):
    return [RENEWAL_HEADER, *rows]


class TestReconcile:
    """Tests for reconcile_rows."""

    def test_overlay_folds_into_base(self):
        base = _base(doc_row("CN-002", "2024-01-01T00:00:00Z", category="Company"))
        overlay = _overlay(renewal_row("CN-002", "2024-06-01T00:00:00Z", "CN-002",
                                       renewal_date="01/01/2026", category="Company"))
        docs = reconcile_rows(base, overlay)

        assert len(docs) == 1
        assert docs[0].serial_no == "CN-002"
        assert docs[0].renewal_date == "01/01/2026"
        assert docs[0].needs_renewal is True
        assert docs[0].timestamp == "2024-06-01T00:00:00Z"

    def test_overlay_with_new_serial(self):
        """The overlay's own serial replaces the original one; no duplicate stays behind."""
        base = _base(doc_row("CN-002", "2024-01-01T00:00:00Z", category="Company"))
        overlay = _overlay(renewal_row("CN-007", "2024-06-01T00:00:00Z", "CN-002", renewal_date="01/01/2026"))
        docs = reconcile_rows(base, overlay)

        assert [d.serial_no for d in docs] == ["CN-007"]
        assert docs[0].renewal_date == "01/01/2026"
        assert docs[0].row_serial_no == "CN-002"
        assert docs[0].row_timestamp == "2024-01-01T00:00:00Z"

    def test_out_of_range_timestamp_sorts_last(self):
        base = _base(
            doc_row("PN-001", "01/01/0001"),
            doc_row("PN-002", "2024-01-01T00:00:00Z"),
        )
        docs = reconcile_rows(base, _overlay())
        assert [d.serial_no for d in docs] == ["PN-002", "PN-001"]

    def test_image_url_only_replaced_when_supplied(self):
        base = _base(doc_row("PN-001", "2024-01-01T00:00:00Z", image_url="https://old"))
        overlay = _overlay(renewal_row("PN-001", "2024-02-01T00:00:00Z", "PN-001", renewal_date="01/01/2030"))
        assert reconcile_rows(base, overlay)[0].image_url == "https://old"

        overlay = _overlay(renewal_row("PN-001", "2024-02-01T00:00:00Z", "PN-001",
                                       renewal_date="01/01/2030", image_url="https://new"))
        assert reconcile_rows(base, overlay)[0].image_url == "https://new"

    def test_latest_renewal_wins(self):
        base = _base(doc_row("PN-001", "2024-01-01T00:00:00Z"))
        overlay = _overlay(
            renewal_row("PN-001", "2024-09-01T00:00:00Z", "PN-001", renewal_date="09/09/2030"),
            renewal_row("PN-001", "2024-03-01T00:00:00Z", "PN-001", renewal_date="03/03/2030"),
        )
        docs = reconcile_rows(base, overlay)
        assert len(docs) == 1
        assert docs[0].renewal_date == "09/09/2030"

    def test_chained_serials_follow_the_document(self):
        """A second renewal referencing the intermediate serial still lands on the same document."""
        base = _base(doc_row("PN-001", "2024-01-01T00:00:00Z"))
        overlay = _overlay(
            renewal_row("PN-009", "2024-03-01T00:00:00Z", "PN-001", renewal_date="03/03/2030"),
            renewal_row("PN-012", "2024-09-01T00:00:00Z", "PN-009", renewal_date="09/09/2030"),
        )
        docs = reconcile_rows(base, overlay)
        assert [d.serial_no for d in docs] == ["PN-012"]

    def test_unmatched_overlay_becomes_document(self):
        base = _base(doc_row("PN-001", "2024-01-01T00:00:00Z"))
        overlay = _overlay(renewal_row("DN-050", "2024-02-01T00:00:00Z", "DN-049", name="Orphan"))
        docs = reconcile_rows(base, overlay)

        assert [d.serial_no for d in docs] == ["DN-050", "PN-001"]
        assert docs[0].name == "Orphan"
        assert docs[0].source_sheet == "Updated Renewal"

    def test_soft_deleted_are_dropped(self):
        base = _base(
            doc_row("PN-001", "2024-01-01T00:00:00Z", deleted="Deleted 2024-02-01"),
            doc_row("PN-002", "2024-01-02T00:00:00Z"),
        )
        docs = reconcile_rows(base, _overlay())
        assert [d.serial_no for d in docs] == ["PN-002"]

    def test_renewal_of_deleted_document_stays_hidden(self):
        base = _base(doc_row("PN-001", "2024-01-01T00:00:00Z", deleted="x"))
        overlay = _overlay(renewal_row("PN-001", "2024-02-01T00:00:00Z", "PN-001", renewal_date="01/01/2030"))
        assert reconcile_rows(base, overlay) == []

    def test_sorted_newest_first_and_renumbered(self):
        base = _base(
            doc_row("PN-001", "01/01/2024 09:00:00"),
            doc_row("PN-002", "2024-03-01T00:00:00Z"),
            doc_row("PN-003", "15/02/2024"),
        )
        docs = reconcile_rows(base, _overlay())
        assert [d.serial_no for d in docs] == ["PN-002", "PN-003", "PN-001"]
        assert [d.id for d in docs] == [1, 2, 3]

    def test_malformed_rows_are_skipped(self):
        base = [DOC_HEADER, "not a row", ["", ""], doc_row("PN-001", "2024-01-01T00:00:00Z")]
        docs = reconcile_rows(base, None)
        assert [d.serial_no for d in docs] == ["PN-001"]

    def test_empty_inputs(self):
        assert reconcile_rows(None, None) == []
        assert reconcile_rows([], []) == []


class TestFetch:
    """Tests for the repository-backed helpers."""

    def test_fetch_documents_reads_both_tabs(self, settings):
        repo = FakeRepository()
        repo.sheets["Documents"].append(doc_row("PN-001", "2024-01-01T00:00:00Z"))
        docs = asyncio.run(fetch_documents(repo, settings))

        assert [d.serial_no for d in docs] == ["PN-001"]
        assert ("fetch", "Documents") in repo.calls
        assert ("fetch", "Updated Renewal") in repo.calls

    def test_pending_approvals(self, settings):
        repo = FakeRepository()
        repo.sheets["Approval Documents"] = [
            APPROVAL_HEADER,
            approval_row("PN-001", "2024-01-01T00:00:00Z", status="Approved"),
            approval_row("PN-002", "2024-01-02T00:00:00Z", status="pending"),
            approval_row("PN-003", "2024-01-03T00:00:00Z", status=""),
            approval_row("PN-004", "2024-01-04T00:00:00Z", status="Rejected"),
        ]
        pending = asyncio.run(fetch_pending_approvals(repo, settings))
        assert [d.serial_no for d in pending] == ["PN-003", "PN-002"]
