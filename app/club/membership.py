"""
Membership Catalog

회원권과 1회 이용 가격 데이터, 출결/결제 서비스가 쓰는 계산
(상태, 남은 일수, 만료일). 모르는 id는 예외 대신 None/0을 반환한다.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union

from .models import MembershipStatus, MembershipTier, PaymentMethod, SessionPrice


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """저장소의 naive datetime은 UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_tier_id(tier_id: str) -> str:
    """'Two-Days-Weekly' -> 'two_days_weekly'"""
    return tier_id.strip().casefold().replace("-", "_")


# =============================================
# 카탈로그 데이터
# =============================================

MEMBERSHIP_TIERS: Dict[str, MembershipTier] = {
    normalize_tier_id(t.id): t
    for t in (
        MembershipTier(
            id="two-days-weekly",
            name="Basic",
            price=20,
            days_per_week=2,
            duration_days=30,
            includes_coaching=False,
            display_order=1,
            description="Access to club facilities 2 days per week (non-coaching)",
            features=[
                "Access to gym facilities",
                "Choose your days when visiting",
                "No coaching included",
            ],
        ),
        MembershipTier(
            id="three-days-weekly",
            name="Standard",
            price=40,
            days_per_week=3,
            duration_days=30,
            includes_coaching=False,
            display_order=2,
            description="Access to club facilities 3 days per week (non-coaching)",
            features=[
                "Access to gym facilities",
                "Choose your days when visiting",
                "No coaching included",
                "Rackets and balls included",
            ],
        ),
        MembershipTier(
            id="unlimited",
            name="Premium",
            price=60,
            days_per_week=7,
            duration_days=30,
            includes_coaching=True,
            display_order=3,
            description="Unlimited access to club facilities",
            features=[
                "Unlimited access to gym facilities",
                "Coaching included",
                "Progress tracking",
                "Rackets and balls included",
            ],
        ),
        MembershipTier(
            id="coaching",
            name="Coaching",
            price=40,
            days_per_week=2,
            duration_days=30,
            includes_coaching=True,
            display_order=4,
            description="Access to club facilities 2 days per week with coaching",
            features=[
                "Access to gym facilities",
                "2 days per week with coaching",
                "Progress tracking",
                "Rackets and balls included",
            ],
        ),
    )
}

SESSION_PRICES: Dict[str, SessionPrice] = {
    normalize_tier_id(s.id): s
    for s in (
        SessionPrice(
            id="private_coaching",
            name="Private Coaching Session",
            price=20,
            description="One-on-one coaching session",
            features=[
                "Personalized training plan",
                "Progress tracking",
                "Flexible scheduling with coaches",
                "Rackets and balls included",
            ],
            display_order=1,
        ),
        SessionPrice(
            id="none_coaching_single",
            name="Single Session (Non-Coaching)",
            price=10,
            description="Single access to club facilities without coaching",
            features=[
                "Access to gym facilities",
                "No coaching included",
                "Valid for one day",
                "2 Rackets and 2 Balls included",
            ],
            display_order=2,
        ),
    )
}

PAYMENT_METHOD_LABELS = {
    PaymentMethod.cash: "Cash",
    PaymentMethod.whish: "Whish",
    PaymentMethod.other: "Other",
}


# =============================================
# 조회
# =============================================

def get_tier_by_id(tier_id: Optional[str]) -> Optional[MembershipTier]:
    if not tier_id:
        return None
    return MEMBERSHIP_TIERS.get(normalize_tier_id(tier_id))


def get_session_price_by_id(price_id: Optional[str]) -> Optional[SessionPrice]:
    if not price_id:
        return None
    return SESSION_PRICES.get(normalize_tier_id(price_id))


def days_per_week(tier_id: Optional[str]) -> int:
    tier = get_tier_by_id(tier_id)
    return tier.days_per_week if tier else 0


def active_tiers() -> List[MembershipTier]:
    """활성 회원권 (표시 순서)"""
    return sorted(
        (t for t in MEMBERSHIP_TIERS.values() if t.is_active),
        key=lambda t: t.display_order
    )


def session_prices() -> List[SessionPrice]:
    return sorted(SESSION_PRICES.values(), key=lambda s: s.display_order)


# =============================================
# 계산
# =============================================

def membership_status(
    expiration: Optional[datetime],
    now: Optional[datetime] = None
) -> MembershipStatus:
    if expiration is None:
        return MembershipStatus.inactive
    now = now or utc_now()
    if as_utc(expiration) > now:
        return MembershipStatus.active
    return MembershipStatus.expired


def days_remaining(expiration: Optional[datetime], now: Optional[datetime] = None) -> int:
    if expiration is None:
        return 0
    now = now or utc_now()
    remaining = as_utc(expiration) - now
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining / timedelta(days=1))


def calculate_expiration(tier_id: Optional[str], start_date: datetime) -> Optional[datetime]:
    tier = get_tier_by_id(tier_id)
    if tier is None:
        return None
    return start_date + timedelta(days=tier.duration_days)


def add_months(start: datetime, months: int) -> datetime:
    """
    달력 기준 월 더하기 - 일자는 해당 월 말일로 맞춤
    (1월 31일 + 1개월 => 2월 28/29일)
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    if m == 12:
        next_month = start.replace(year=y + 1, month=1, day=1)
    else:
        next_month = start.replace(year=y, month=m + 1, day=1)
    last_day = (next_month - timedelta(days=1)).day
    return start.replace(year=y, month=m, day=min(start.day, last_day))


def format_currency(amount: Union[int, float], currency: str = "USD") -> str:
    symbol = "$" if currency == "USD" else f"{currency} "
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def payment_method_label(method: Union[PaymentMethod, str]) -> str:
    try:
        return PAYMENT_METHOD_LABELS[PaymentMethod(method)]
    except ValueError:
        return str(method)
