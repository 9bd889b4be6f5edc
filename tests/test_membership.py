"""
Membership Catalog Tests
"""
import pytest
from datetime import datetime, timedelta, timezone

from app.club.membership import (
    MEMBERSHIP_TIERS,
    active_tiers,
    add_months,
    calculate_expiration,
    days_per_week,
    days_remaining,
    format_currency,
    get_session_price_by_id,
    get_tier_by_id,
    membership_status,
    normalize_tier_id,
    payment_method_label,
    session_prices,
)
from app.club.models import MembershipStatus, PaymentMethod


NOW = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


class TestTierLookup:
    """Tier id normalization and lookup"""

    def test_normalize(self):
        assert normalize_tier_id(" Two-Days-Weekly ") == "two_days_weekly"

    @pytest.mark.parametrize("tier_id", ["two-days-weekly", "TWO_DAYS_WEEKLY", "Two-Days_Weekly"])
    def test_lookup_is_normalized(self, tier_id):
        tier = get_tier_by_id(tier_id)
        assert tier is not None
        assert tier.name == "Basic"
        assert tier.days_per_week == 2

    def test_unknown_is_none(self):
        assert get_tier_by_id("gold") is None
        assert get_tier_by_id(None) is None
        assert get_tier_by_id("") is None

    def test_days_per_week(self):
        assert days_per_week("three-days-weekly") == 3
        assert days_per_week("unlimited") == 7
        assert days_per_week("coaching") == 2
        assert days_per_week("gold") == 0

    def test_tiers(self):
        unlimited = get_tier_by_id("unlimited")
        assert unlimited.name == "Premium"
        assert unlimited.price == 60
        assert unlimited.includes_coaching

    def test_active_tiers_in_display_order(self):
        assert [t.id for t in active_tiers()] == [
            "two-days-weekly", "three-days-weekly", "unlimited", "coaching"
        ]

    def test_session_prices(self):
        assert [s.id for s in session_prices()] == ["private_coaching", "none_coaching_single"]
        assert get_session_price_by_id("private-coaching").price == 20
        assert get_session_price_by_id("none_coaching_single").price == 10
        assert get_session_price_by_id("group") is None


class TestDerivations:
    """Status, remaining days and expiration"""

    def test_status_active_when_in_future(self):
        assert membership_status(NOW + timedelta(seconds=1), NOW) == MembershipStatus.active

    def test_status_expired_at_or_after(self):
        assert membership_status(NOW, NOW) == MembershipStatus.expired
        assert membership_status(NOW - timedelta(days=1), NOW) == MembershipStatus.expired

    def test_status_inactive_without_expiration(self):
        assert membership_status(None, NOW) == MembershipStatus.inactive

    def test_naive_expiration_is_utc(self):
        assert membership_status(datetime(2024, 3, 5), NOW) == MembershipStatus.active

    def test_days_remaining(self):
        assert days_remaining(None, NOW) == 0
        assert days_remaining(NOW - timedelta(hours=1), NOW) == 0
        assert days_remaining(NOW + timedelta(hours=1), NOW) == 1
        assert days_remaining(NOW + timedelta(days=2), NOW) == 2
        assert days_remaining(NOW + timedelta(days=2, minutes=1), NOW) == 3

    def test_expiration_matches_duration_for_every_tier(self):
        for tier in MEMBERSHIP_TIERS.values():
            assert calculate_expiration(tier.id, NOW) - NOW == timedelta(days=tier.duration_days)

    def test_expiration_unknown_tier(self):
        assert calculate_expiration("gold", NOW) is None

    def test_add_months_clamps(self):
        assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
        assert add_months(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)
        assert add_months(datetime(2024, 11, 15), 2) == datetime(2025, 1, 15)
        assert add_months(datetime(2024, 12, 31), 1) == datetime(2025, 1, 31)


class TestFormatting:

    def test_format_currency(self):
        assert format_currency(60) == "$60.00"
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-5) == "-$5.00"
        assert format_currency(10, "LBP") == "LBP 10.00"

    def test_payment_method_label(self):
        assert payment_method_label(PaymentMethod.whish) == "Whish"
        assert payment_method_label("cash") == "Cash"
        assert payment_method_label("card") == "card"
