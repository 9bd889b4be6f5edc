"""
Sessions API Router

훈련 일정과 참가 신청
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import (
    ActorContext,
    ensure_can_act_for,
    get_current_actor,
    get_session_service,
    require_admin,
    require_staff,
)
from ..models import ClubSession, SessionCreate, SessionRegistration, SessionUpdate
from .service import SessionService

router = APIRouter(prefix="/sessions", tags=["Sessions"])


# =============================================
# 일정
# =============================================

@router.get("", response_model=List[ClubSession])
async def list_sessions(
    upcoming: bool = Query(False, description="오늘 이후 세션만 (가까운 순)"),
    past: bool = Query(False, description="오늘 이전 세션만"),
    coach: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="세션 종류 (예: training)"),
    actor: ActorContext = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service)
):
    return await service.list_sessions(upcoming, past, coach, type)


@router.post("", response_model=ClubSession)
async def create_session(
    data: SessionCreate,
    actor: ActorContext = Depends(require_staff),
    service: SessionService = Depends(get_session_service)
):
    return await service.create_session(data)


@router.get("/{session_id}", response_model=ClubSession)
async def get_session(
    session_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service)
):
    return await service.get_session(session_id)


@router.put("/{session_id}", response_model=ClubSession)
async def update_session(
    session_id: str,
    data: SessionUpdate,
    actor: ActorContext = Depends(require_staff),
    service: SessionService = Depends(get_session_service)
):
    return await service.update_session(session_id, data)


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    actor: ActorContext = Depends(require_admin),
    service: SessionService = Depends(get_session_service)
):
    await service.delete_session(session_id)
    return {"message": "Session deleted", "session_id": session_id}


# =============================================
# 참가 신청
# =============================================

@router.get("/{session_id}/registrations", response_model=List[SessionRegistration])
async def list_registrations(
    session_id: str,
    actor: ActorContext = Depends(require_staff),
    service: SessionService = Depends(get_session_service)
):
    return await service.list_registrations(session_id)


@router.post("/{session_id}/registrations/{member_id}", response_model=SessionRegistration)
async def register_for_session(
    session_id: str,
    member_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service)
):
    """
    세션 참가 신청

    정원이 찼거나 이미 신청한 경우 실패합니다.
    """
    ensure_can_act_for(actor, member_id)
    return await service.register_for_session(session_id, member_id)


@router.delete("/{session_id}/registrations/{member_id}")
async def cancel_registration(
    session_id: str,
    member_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: SessionService = Depends(get_session_service)
):
    ensure_can_act_for(actor, member_id)
    await service.cancel_registration(session_id, member_id)
    return {"message": "Registration cancelled", "session_id": session_id, "member_id": member_id}
