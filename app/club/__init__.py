"""
Club Management Module

클럽 회원 관리 서비스
- 회원권 카탈로그 (회원권, 세션 가격)
- 주간 횟수 제한이 있는 출결 체크인 / 체크아웃
- 회원권 결제
- 회원 등록, 훈련 세션
"""

from .router import router as club_router
from .models import (
    ClubRole,
    MembershipStatus,
    AttendanceStatus,
    AttendanceType,
    CheckInMethod,
    PaymentMethod,
    PaymentStatus
)
from .dependencies import ActorContext

__all__ = [
    "club_router",
    "ClubRole",
    "MembershipStatus",
    "AttendanceStatus",
    "AttendanceType",
    "CheckInMethod",
    "PaymentMethod",
    "PaymentStatus",
    "ActorContext"
]
