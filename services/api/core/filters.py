# services/api/core/filters.py
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from models import Document

ALL = "All"
RENEWAL = "Renewal"

# values accepted in ?filter= on the documents page
DOCUMENT_FILTERS = (ALL, "Personal", "Company", "Director", RENEWAL)
# values accepted in ?type=
TYPE_ALIASES = {
    "personal": "Personal",
    "company": "Company",
    "director": "Director",
}


def matches_search(doc: Document, search_term: str) -> bool:
    term = (search_term or "").lower()
    if not term:
        return True
    fields = (
        doc.name,
        doc.type,
        doc.category,
        doc.company,
        doc.email,
        doc.mobile,
        doc.serial_no,
    )
    if any(term in str(f).lower() for f in fields):
        return True
    return any(term in tag.lower() for tag in doc.tags)


def matches_category(doc: Document, category_filter: str) -> bool:
    """
    "All" -> everything, "Renewal" -> needs_renewal only, anything else is an
    exact (case-sensitive) comparison with the stored category.
    """
    if not category_filter or category_filter == ALL:
        return True
    if category_filter == RENEWAL:
        return doc.needs_renewal
    return doc.category == category_filter


def matches(doc: Document, search_term: str, category_filter: str) -> bool:
    return matches_search(doc, search_term) and matches_category(doc, category_filter)


def filter_documents(docs: Iterable[Document], search_term: str = "", category_filter: str = ALL) -> List[Document]:
    """Apply the predicate to a list. Soft-deleted records never pass."""
    return [
        d for d in docs
        if not d.is_deleted and matches(d, search_term, category_filter)
    ]


def document_filters(extra_categories: Iterable[str] = ()) -> Tuple[str, ...]:
    """Filter values for the documents page, including organization-specific categories."""
    out = list(DOCUMENT_FILTERS)
    for category in extra_categories:
        if category and category not in out:
            out.insert(-1, category)
    return tuple(out)


def resolve_category_filter(
    *,
    doc_type: Optional[str] = None,
    filter_value: Optional[str] = None,
    default: str = ALL,
    allowed: Iterable[str] = DOCUMENT_FILTERS,
) -> str:
    """
    Map the page query parameters to one filter value.
    ?filter= wins when it is one of the allowed values, then ?type=, then the
    page default.
    """
    allowed = tuple(allowed)
    if filter_value and filter_value in allowed:
        return filter_value
    if doc_type:
        key = doc_type.strip().lower()
        mapped = TYPE_ALIASES.get(key)
        if mapped is None:
            mapped = next((a for a in allowed if a.lower() == key and a not in (ALL, RENEWAL)), None)
        if mapped and mapped in allowed:
            return mapped
    return default


def select_by_serial(docs: Iterable[Document], serial_nos: Iterable[str]) -> Tuple[List[Document], List[str]]:
    """
    Pick documents by serial number, in the order requested.
    Returns (found, missing serials).
    """
    by_serial = {}
    for d in docs:
        by_serial.setdefault(d.serial_no, d)
    found: List[Document] = []
    missing: List[str] = []
    for s in serial_nos:
        key = (s or "").strip()
        if key in by_serial:
            found.append(by_serial[key])
        else:
            missing.append(key)
    return found, missing
