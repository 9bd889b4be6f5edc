"""
Club Management Router

클럽 서비스 메인 라우터
- 회원권 카탈로그
- 출결 (체크인 / 체크아웃)
- 결제
- 회원
- 세션
- 유지보수
"""

from typing import List

from fastapi import APIRouter, Depends

from .attendance import attendance_router
from .attendance.service import AttendanceService
from .dependencies import (
    ActorContext,
    get_attendance_service,
    get_current_actor,
    get_member_service,
    get_reconciler,
    require_admin,
)
from .errors import ProfileNotFound, SessionPriceNotFound
from .members import members_router
from .members.service import MemberService
from .membership import active_tiers, days_remaining, get_session_price_by_id, session_prices
from .models import MembershipTier, ReconciliationReport, SessionPrice
from .payments import payments_router
from .reconciliation import AttendanceReconciler
from .sessions import sessions_router

router = APIRouter(prefix="/club", tags=["Club Management"])

router.include_router(attendance_router)
router.include_router(payments_router)
router.include_router(members_router)
router.include_router(sessions_router)


# =============================================
# 회원권 카탈로그
# =============================================

@router.get("/memberships", response_model=List[MembershipTier])
async def list_memberships():
    """활성 회원권 목록 (표시 순서)"""
    return active_tiers()


@router.get("/memberships/session-prices", response_model=List[SessionPrice])
async def list_session_prices():
    return session_prices()


@router.get("/memberships/session-prices/{price_id}", response_model=SessionPrice)
async def get_session_price(price_id: str):
    price = get_session_price_by_id(price_id)
    if price is None:
        raise SessionPriceNotFound(price_id)
    return price


# =============================================
# 현재 사용자
# =============================================

@router.get("/me")
async def get_me(
    actor: ActorContext = Depends(get_current_actor),
    members: MemberService = Depends(get_member_service),
    attendance: AttendanceService = Depends(get_attendance_service)
):
    """
    대시보드 상단 정보

    역할, 회원권 프로필 (프로필 없는 스태프는 None), 현재 열린 출결
    """
    try:
        profile = await members.get_member_profile(actor.actor_id)
    except ProfileNotFound:
        profile = None

    current = await attendance.get_current_attendance(actor.actor_id) if profile else None

    return {
        "actor_id": actor.actor_id,
        "display_name": actor.display_name,
        "role": actor.role.value,
        "profile": profile.model_dump(mode="json") if profile else None,
        "days_remaining": days_remaining(profile.membership_expiration, members.clock()) if profile else 0,
        "current_attendance": current.model_dump(mode="json") if current else None,
    }


# =============================================
# 유지보수
# =============================================

@router.post("/maintenance/reconcile", response_model=ReconciliationReport)
async def reconcile_attendance(
    actor: ActorContext = Depends(require_admin),
    reconciler: AttendanceReconciler = Depends(get_reconciler)
):
    """중단된 체크인/체크아웃 즉시 복구"""
    return await reconciler.reconcile()
