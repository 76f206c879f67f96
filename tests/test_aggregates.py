"""
Unit Tests for the pure aggregate functions
Progress percentage, statistics, leaderboard ordering and the CSV export
"""
import math
import random
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from fundraiser_service.services.aggregates import (
    CSV_HEADERS,
    build_fundraising_csv,
    compute_donation_stats,
    compute_global_stats,
    compute_progress_percentage,
    format_amount,
    format_csv_number,
    progress_tier,
    remaining_amount,
    sort_leaderboard,
)
from fundraiser_service.models import DonationStatus


def fundraiser(user_id, target, collected, full_name=None, email=None, created_at=None, row_id=None):
    return SimpleNamespace(
        id=row_id,
        user_id=user_id,
        full_name=full_name,
        email=email,
        target_amount=target,
        collected_amount=collected,
        created_at=created_at,
        updated_at=created_at,
    )


# ============================================================================
# PROGRESS PERCENTAGE
# ============================================================================

class TestProgressPercentage:
    """Percentage of target collected"""

    @pytest.mark.parametrize("collected,target", [
        (0, 100), (25, 100), (250, 1000), (999.5, 1000), (1000, 1000), (5000, 1000), (1, 3),
    ])
    def test_matches_clamped_ratio(self, collected, target):
        expected = min(collected / target * 100, 100)
        assert compute_progress_percentage(collected, target) == pytest.approx(expected)

    @pytest.mark.parametrize("target", [0, -1, -500.5])
    def test_non_positive_target_is_zero(self, target):
        result = compute_progress_percentage(100, target)
        assert result == 0
        assert math.isfinite(result)

    def test_over_funded_caps_at_100(self):
        assert compute_progress_percentage(1500, 1000) == 100

    def test_remaining_never_negative(self):
        assert remaining_amount(250, 1000) == 750
        assert remaining_amount(1500, 1000) == 0

    @pytest.mark.parametrize("percentage,tier", [
        (100, "high"), (75, "high"), (74.9, "medium"), (50, "medium"),
        (25, "low"), (24.99, "critical"), (0, "critical"),
    ])
    def test_progress_tier(self, percentage, tier):
        assert progress_tier(percentage) == tier


# ============================================================================
# GLOBAL AND DONATION STATISTICS
# ============================================================================

class TestGlobalStats:
    """Statistics across every fundraiser"""

    def test_empty_input_is_all_zero(self):
        assert compute_global_stats([]) == {
            "total_raised": 0,
            "total_fundraisers": 0,
            "average_raised": 0,
            "average_target": 0,
            "completion_rate": 0,
        }

    def test_totals_and_completion_rate(self):
        rows = [fundraiser("u1", 1000, 250), fundraiser("u2", 500, 500)]

        stats = compute_global_stats(rows)

        assert stats["total_raised"] == 750
        assert stats["total_fundraisers"] == 2
        assert stats["average_raised"] == 375
        assert stats["average_target"] == 750
        assert stats["completion_rate"] == pytest.approx(50.0)


class TestDonationStats:
    """Per-link donation statistics"""

    def test_zero_donations_is_all_zero(self):
        assert compute_donation_stats([]) == {
            "total_donations": 0,
            "total_amount": 0,
            "completed_donations": 0,
            "average_amount": 0,
        }

    def test_only_completed_donations_count_towards_amount(self):
        donations = [
            SimpleNamespace(amount=100.0, payment_status=DonationStatus.COMPLETED),
            SimpleNamespace(amount=300.0, payment_status="completed"),
            SimpleNamespace(amount=50.0, payment_status=DonationStatus.PENDING),
            SimpleNamespace(amount=75.0, payment_status=DonationStatus.FAILED),
        ]

        stats = compute_donation_stats(donations)

        assert stats["total_donations"] == 4
        assert stats["completed_donations"] == 2
        assert stats["total_amount"] == 400
        assert stats["average_amount"] == 200


# ============================================================================
# LEADERBOARD ORDERING
# ============================================================================

class TestLeaderboardOrdering:
    """Descending collected amount with a stable tie-break"""

    def test_sorted_descending_for_any_permutation(self):
        rows = [fundraiser(f"u{i}", 1000, amount, row_id=i)
                for i, amount in enumerate([10, 500, 0, 250, 500, 999])]
        rng = random.Random(7)

        for _ in range(5):
            shuffled = rows[:]
            rng.shuffle(shuffled)
            ordered = sort_leaderboard(shuffled)
            collected = [row.collected_amount for row in ordered]
            assert collected == sorted(collected, reverse=True)
            assert sort_leaderboard(ordered) == ordered

    def test_ties_go_to_the_earlier_fundraiser(self):
        early = fundraiser("early", 1000, 500, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc), row_id=2)
        late = fundraiser("late", 1000, 500, created_at=datetime(2025, 2, 1, tzinfo=timezone.utc), row_id=1)

        assert [row.user_id for row in sort_leaderboard([late, early])] == ["early", "late"]

    def test_limit(self):
        rows = [fundraiser(f"u{i}", 1000, i * 10, row_id=i) for i in range(20)]
        top = sort_leaderboard(rows, limit=3)
        assert [row.user_id for row in top] == ["u19", "u18", "u17"]


# ============================================================================
# CSV EXPORT
# ============================================================================

class TestCsvExport:
    """Admin CSV export format"""

    def test_export_scenario(self):
        created_1 = datetime(2025, 5, 1, 10, 0, 0)
        created_2 = datetime(2025, 5, 2, 11, 30, 0)
        rows = [
            fundraiser("u1", 1000.0, 250.0, full_name="A B", email="a@x.com", created_at=created_1),
            fundraiser("u2", 500.0, 500.0, created_at=created_2),
        ]

        csv_text = build_fundraising_csv(rows)

        assert csv_text.split("\n") == [
            "User ID,Full Name,Email,Target Amount,Collected Amount,Progress %,Created At,Updated At",
            f'u1,"A B","a@x.com",1000,250,25.00,{created_1.isoformat()},{created_1.isoformat()}',
            f'u2,"N/A","N/A",500,500,100.00,{created_2.isoformat()},{created_2.isoformat()}',
        ]

    def test_empty_export_is_header_only(self):
        assert build_fundraising_csv([]) == ",".join(CSV_HEADERS)

    def test_quotes_inside_names_are_doubled(self):
        row = fundraiser("u1", 100, 10, full_name='Asha "Ace" Verma', email="a@x.com")
        line = build_fundraising_csv([row]).split("\n")[1]
        assert '"Asha ""Ace"" Verma"' in line

    def test_over_funded_progress_is_capped(self):
        row = fundraiser("u1", 100, 250)
        assert ",100.00," in build_fundraising_csv([row])

    @pytest.mark.parametrize("value,expected", [
        (1000.0, "1000"), (250, "250"), (99.5, "99.5"), (None, ""),
    ])
    def test_number_format(self, value, expected):
        assert format_csv_number(value) == expected


class TestFormatAmount:
    """Display formatting for the CLI"""

    def test_whole_amount(self):
        assert format_amount(12500) == "₹12,500"

    def test_fractional_amount(self):
        assert format_amount(99.5, "$") == "$99.50"
