"""
Payments API Router

회원권 결제 기록 및 조회
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from ..dependencies import (
    ActorContext,
    ensure_can_act_for,
    get_current_actor,
    get_payment_service,
    require_admin,
    require_staff,
)
from ..models import PaymentCreate, PaymentRecord
from .service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/members/{member_id}", response_model=PaymentRecord)
async def record_membership_payment(
    member_id: str,
    membership_type: str = Query(..., description="회원권 id (예: three-days-weekly)"),
    data: Optional[PaymentCreate] = Body(None),
    actor: ActorContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service)
):
    """
    회원권 결제 기록

    회원권을 활성화하고 만료일을 새로 정하며 사용 횟수를 초기화합니다.
    idempotency_key를 보내면 재시도해도 안전합니다.
    """
    return await service.record_membership_payment(member_id, membership_type, data, actor)


@router.get("", response_model=List[PaymentRecord])
async def list_payments(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    actor: ActorContext = Depends(require_staff),
    service: PaymentService = Depends(get_payment_service)
):
    return await service.get_all_payments(limit)


@router.get("/members/{member_id}", response_model=List[PaymentRecord])
async def get_member_payments(
    member_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: PaymentService = Depends(get_payment_service)
):
    ensure_can_act_for(actor, member_id)
    return await service.get_member_payments(member_id)


@router.get("/{payment_id}", response_model=PaymentRecord)
async def get_payment(
    payment_id: str,
    actor: ActorContext = Depends(get_current_actor),
    service: PaymentService = Depends(get_payment_service)
):
    payment = await service.get_payment_by_id(payment_id)
    ensure_can_act_for(actor, payment.member_id)
    return payment
