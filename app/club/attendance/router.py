"""
Attendance API Router

출결 API - 데스크/셀프 체크인·체크아웃, 출결 이력, 통계
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from ..dependencies import (
    ActorContext,
    ensure_can_act_for,
    get_attendance_service,
    get_current_actor,
    require_staff,
)
from ..models import (
    AttendanceFilters,
    AttendanceRecord,
    AttendanceStats,
    AttendanceStatus,
    CheckInRequest,
    CheckOutRequest,
)
from .service import AttendanceService

router = APIRouter(prefix="/attendance", tags=["Attendance"])


# =============================================
# 체크인 / 체크아웃
# =============================================

@router.post("/check-in/{member_id}", response_model=AttendanceRecord)
async def check_in(
    member_id: str,
    data: Optional[CheckInRequest] = Body(None),
    actor: ActorContext = Depends(get_current_actor),
    service: AttendanceService = Depends(get_attendance_service)
):
    """
    회원 체크인

    회원은 본인만, 스태프는 누구나 체크인할 수 있습니다.
    """
    ensure_can_act_for(actor, member_id)
    return await service.check_in(member_id, data, actor)


@router.post("/{attendance_id}/check-out", response_model=AttendanceRecord)
async def check_out(
    attendance_id: str,
    data: Optional[CheckOutRequest] = Body(None),
    actor: ActorContext = Depends(get_current_actor),
    service: AttendanceService = Depends(get_attendance_service)
):
    """출결 체크아웃 (반복 호출 시 종료된 기록 반환)"""
    record = await service.get_attendance(attendance_id)
    ensure_can_act_for(actor, record.member_id)
    return await service.check_out(attendance_id, data, actor)


@router.post("/members/{member_id}/check-out", response_model=AttendanceRecord)
async def check_out_member(
    member_id: str,
    data: Optional[CheckOutRequest] = Body(None),
    actor: ActorContext = Depends(get_current_actor),
    service: AttendanceService = Depends(get_attendance_service)
):
    """회원의 열린 출결 빠른 체크아웃"""
    ensure_can_act_for(actor, member_id)
    return await service.check_out_member(member_id, data, actor)


# =============================================
# 조회
# =============================================

@router.get("/members/{member_id}/current", response_model=Optional[AttendanceRecord])
async def get_current_attendance(
    member_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: AttendanceService = Depends(get_attendance_service)
):
    ensure_can_act_for(actor, member_id)
    return await service.get_current_attendance(member_id)


@router.get("/members/{member_id}", response_model=List[AttendanceRecord])
async def get_member_attendance(
    member_id: str,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    actor: ActorContext = Depends(get_current_actor),
    service: AttendanceService = Depends(get_attendance_service)
):
    """회원 출결 이력 (최근 순)"""
    ensure_can_act_for(actor, member_id)
    filters = AttendanceFilters(start_date=start_date, end_date=end_date, limit=limit)
    return await service.list_member_attendance(member_id, filters)


@router.get("/stats", response_model=AttendanceStats)
async def get_attendance_stats(
    start_date: Optional[datetime] = Query(None, description="기본값: 전체 기록의 시작"),
    end_date: Optional[datetime] = Query(None, description="기본값: 현재 시각"),
    actor: ActorContext = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    return await service.compute_stats(start_date, end_date)


@router.get("", response_model=List[AttendanceRecord])
async def list_attendance(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    status: Optional[AttendanceStatus] = Query(None, description="checked-in, checked-out, no-show"),
    member_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    actor: ActorContext = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    """
    출결 기록 목록

    모든 필터는 선택이며 AND로 결합됩니다.
    """
    filters = AttendanceFilters(
        start_date=start_date,
        end_date=end_date,
        status=status,
        member_id=member_id,
        limit=limit
    )
    return await service.list_attendance(filters)
