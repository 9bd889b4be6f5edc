"""
Members API Router

회원 등록, 회원 정보/프로필 조회
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import (
    ActorContext,
    ensure_can_act_for,
    get_current_actor,
    get_member_service,
    require_admin,
    require_staff,
)
from ..models import ClubRole, Member, MemberCreate, MemberProfile
from .service import MemberService

router = APIRouter(prefix="/members", tags=["Members"])


@router.post("", response_model=Member)
async def register_member(
    data: MemberCreate,
    member_id: Optional[str] = Query(None, description="이미 있는 auth uid로 등록"),
    actor: ActorContext = Depends(require_admin),
    service: MemberService = Depends(get_member_service)
):
    """
    회원 등록

    회원 정보와 사용 이력이 없는 비활성 프로필을 만듭니다.
    """
    return await service.register_member(data, actor, member_id)


@router.get("", response_model=List[Member])
async def list_members(
    role: Optional[ClubRole] = Query(None),
    actor: ActorContext = Depends(require_staff),
    service: MemberService = Depends(get_member_service)
):
    return await service.list_members(role)


@router.get("/{member_id}", response_model=Member)
async def get_member(
    member_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: MemberService = Depends(get_member_service)
):
    ensure_can_act_for(actor, member_id)
    return await service.get_member(member_id)


@router.get("/{member_id}/profile", response_model=MemberProfile)
async def get_member_profile(
    member_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: MemberService = Depends(get_member_service)
):
    """회원권 상태와 사용 횟수"""
    ensure_can_act_for(actor, member_id)
    return await service.get_member_profile(member_id)
