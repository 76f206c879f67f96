"""
Derived fundraising metrics.

Pure functions over rows already loaded from the database: progress
percentages, global statistics, donation statistics, leaderboard ordering and
the admin CSV export. Rows are any objects exposing the relevant attributes
(ORM models or response schemas), which keeps these functions trivially
testable.
"""
import math
from datetime import datetime
from typing import Any, Iterable, List, Optional

CSV_HEADERS = [
    "User ID",
    "Full Name",
    "Email",
    "Target Amount",
    "Collected Amount",
    "Progress %",
    "Created At",
    "Updated At",
]

MISSING_PLACEHOLDER = "N/A"

# Lower bounds (inclusive) for each progress tier, highest first
PROGRESS_TIERS = (
    (75.0, "high"),
    (50.0, "medium"),
    (25.0, "low"),
)


def compute_progress_percentage(collected: float, target: float) -> float:
    """Share of the target collected, clamped to [0, 100]. 0 when target <= 0."""
    if not target or target <= 0:
        return 0.0
    percentage = (collected / target) * 100
    return max(min(percentage, 100.0), 0.0)


def remaining_amount(collected: float, target: float) -> float:
    return max((target or 0) - (collected or 0), 0)


def progress_tier(percentage: float) -> str:
    for lower_bound, tier in PROGRESS_TIERS:
        if percentage >= lower_bound:
            return tier
    return "critical"


def format_amount(amount: float, currency_symbol: str = "₹") -> str:
    """Format an amount for display, e.g. ``₹12,500`` or ``₹99.50``"""
    if float(amount).is_integer():
        return f"{currency_symbol}{int(amount):,}"
    return f"{currency_symbol}{amount:,.2f}"


def compute_global_stats(rows: Iterable[Any]) -> dict:
    """
    Aggregate statistics across every fundraiser.

    Returns total_raised, total_fundraisers, average_raised, average_target and
    completion_rate (average raised over average target, as a percentage).
    All values are zero for an empty input.
    """
    rows = list(rows)
    total_fundraisers = len(rows)
    if total_fundraisers == 0:
        return {
            "total_raised": 0,
            "total_fundraisers": 0,
            "average_raised": 0,
            "average_target": 0,
            "completion_rate": 0,
        }

    total_raised = sum(row.collected_amount for row in rows)
    total_target = sum(row.target_amount for row in rows)
    average_raised = total_raised / total_fundraisers
    average_target = total_target / total_fundraisers
    completion_rate = (average_raised / average_target) * 100 if average_target > 0 else 0

    return {
        "total_raised": total_raised,
        "total_fundraisers": total_fundraisers,
        "average_raised": average_raised,
        "average_target": average_target,
        "completion_rate": completion_rate,
    }


def compute_donation_stats(donations: Iterable[Any]) -> dict:
    """Donation counts and completed totals for one affiliate link"""
    total_donations = 0
    completed_donations = 0
    total_amount = 0

    for donation in donations:
        total_donations += 1
        if _status_value(donation.payment_status) == "completed":
            completed_donations += 1
            total_amount += donation.amount

    return {
        "total_donations": total_donations,
        "total_amount": total_amount,
        "completed_donations": completed_donations,
        "average_amount": total_amount / completed_donations if completed_donations > 0 else 0,
    }


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


def leaderboard_sort_key(row: Any):
    # Highest collected first, then the earliest fundraiser, then insertion order
    created_at = row.created_at or datetime.max
    if created_at.tzinfo is not None:
        created_at = created_at.replace(tzinfo=None) - created_at.utcoffset()
    return (-row.collected_amount, created_at, row.id or 0)


def sort_leaderboard(rows: Iterable[Any], limit: Optional[int] = None) -> List[Any]:
    ordered = sorted(rows, key=leaderboard_sort_key)
    if limit is not None:
        return ordered[:limit]
    return ordered


def format_csv_number(value: Any) -> str:
    """Render numbers the way the export always has: 1000, not 1000.0"""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _quote(value: Optional[str]) -> str:
    text = value if value else MISSING_PLACEHOLDER
    return '"' + text.replace('"', '""') + '"'


def _timestamp(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def build_fundraising_csv(rows: Iterable[Any]) -> str:
    """
    Serialize fundraisers to the admin CSV export.

    Each row needs ``user_id``, ``full_name``, ``email``, ``target_amount``,
    ``collected_amount``, ``created_at`` and ``updated_at``. Name and email are
    always quoted and fall back to ``N/A``; progress has two decimals.
    """
    lines = [",".join(CSV_HEADERS)]
    for row in rows:
        progress = compute_progress_percentage(row.collected_amount, row.target_amount)
        lines.append(",".join([
            str(row.user_id),
            _quote(row.full_name),
            _quote(row.email),
            format_csv_number(row.target_amount),
            format_csv_number(row.collected_amount),
            f"{progress:.2f}",
            _timestamp(row.created_at),
            _timestamp(row.updated_at),
        ]))
    return "\n".join(lines)
