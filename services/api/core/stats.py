# services/api/core/stats.py
from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional

from core.renewal import is_expired
from models import Document


def percentage(count: int, total: int) -> int:
    """Rounded share of total; an empty library counts as 1 to avoid /0."""
    return round(count * 100 / (total or 1))


def dashboard_stats(docs: Iterable[Document], today: Optional[date] = None) -> Dict[str, int]:
    docs = [d for d in docs if not d.is_deleted]
    total = len(docs)
    counts = {
        "personal": sum(1 for d in docs if d.category == "Personal"),
        "company": sum(1 for d in docs if d.category == "Company"),
        "director": sum(1 for d in docs if d.category == "Director"),
        "needs_renewal": sum(1 for d in docs if d.needs_renewal),
        "expired": sum(1 for d in docs if d.needs_renewal and is_expired(d.renewal_date, today)),
    }
    stats = {"total": total, **counts}
    for key, count in counts.items():
        stats[f"{key}_pct"] = percentage(count, total)
    return stats
