"""
Payment Service

회원권 결제 기록 - 추가만 하는 결제 원장에 기록한 뒤
회원 정보와 프로필을 결제한 회원권으로 옮기고 사용 횟수를 초기화한다.

세 번의 쓰기는 원자적이지 않다. 멱등 키를 넘긴 호출은 중간에 실패해도
같은 키로 다시 호출하면 된다 - 원장 항목이 그 키로 만들어지고
이후 업데이트는 멱등이다.
"""

import uuid
from datetime import timedelta
from typing import List, Optional

from loguru import logger

from database.document_store import SERVER_TIMESTAMP, DocumentAlreadyExists, Predicate

from ..config import MEMBER_PROFILES, PAYMENTS, USERS
from ..dependencies import SYSTEM_ACTOR, ActorContext
from ..errors import (
    BackendUnavailable,
    MemberNotFound,
    PaymentNotFound,
    ProfileNotFound,
    UnknownMembershipTier,
)
from ..membership import (
    add_months,
    calculate_expiration,
    format_currency,
    get_tier_by_id,
    payment_method_label,
)
from ..models import (
    MembershipStatus,
    MemberProfile,
    PaymentCreate,
    PaymentRecord,
    PaymentStatus,
)
from ..store import StoreBackedService

PAYMENT_NAMESPACE = uuid.UUID("3f6c1f0e-8f43-4d55-9a53-2f1d1c0b7a61")


def payment_id_for(member_id: str, idempotency_key: Optional[str]) -> str:
    if idempotency_key:
        return str(uuid.uuid5(PAYMENT_NAMESPACE, f"{member_id}:{idempotency_key}"))
    return str(uuid.uuid4())


class PaymentService(StoreBackedService):
    """결제 기록"""

    async def record_membership_payment(
        self,
        member_id: str,
        tier_id: str,
        data: Optional[PaymentCreate] = None,
        actor: Optional[ActorContext] = None
    ) -> PaymentRecord:
        data = data or PaymentCreate()
        actor = actor or SYSTEM_ACTOR

        tier = get_tier_by_id(tier_id)
        if tier is None:
            raise UnknownMembershipTier(tier_id)

        user = await self._get(USERS, member_id)
        if not user:
            raise MemberNotFound(member_id)

        profile_doc = await self._get(MEMBER_PROFILES, member_id)
        if not profile_doc:
            raise ProfileNotFound(member_id)
        profile = MemberProfile.model_validate(profile_doc)

        now = self.clock()
        payment_date = data.payment_date or now
        expiration_date = calculate_expiration(tier.id, payment_date)

        payment_id = payment_id_for(member_id, data.idempotency_key)
        payment = PaymentRecord(
            id=payment_id,
            member_id=member_id,
            member_name=user.get("display_name") or user.get("email") or "Unknown",
            membership_type=tier.id,
            membership_name=tier.name,
            amount=data.amount if data.amount is not None else tier.price,
            payment_method=data.payment_method,
            payment_date=payment_date,
            expiration_date=expiration_date,
            status=PaymentStatus.completed,
            notes=data.notes or "",
            receipt_number=data.receipt_number or "",
            recorded_by=actor.attribution(now),
        )

        try:
            await self._create(
                PAYMENTS,
                {
                    **payment.model_dump(mode="python", exclude={"id"}),
                    "created_at": SERVER_TIMESTAMP,
                },
                document_id=payment_id
            )
        except DocumentAlreadyExists:
            existing = await self._get(PAYMENTS, payment_id)
            if not existing:
                raise
            payment = PaymentRecord.model_validate(existing)
            if payment.id in profile.payment_history:
                # 프로필은 마지막에 쓰므로 이전 호출이 끝까지 반영된 것
                logger.info(f"결제 {payment_id} 이미 {member_id}에 반영됨")
                return payment
            logger.info(f"결제 {payment_id} 이미 기록됨 - 회원 업데이트 다시 적용")

        try:
            await self._apply_to_member(member_id, profile, payment)
        except BackendUnavailable:
            logger.error(
                f"결제 {payment.id} 기록됐지만 회원 {member_id} 업데이트 미완료 - "
                f"같은 멱등 키로 다시 호출하면 마무리됨"
            )
            raise

        logger.info(
            f"{tier.name} 결제 기록: {payment.id} ({member_id}) "
            f"{format_currency(payment.amount)} via {payment_method_label(payment.payment_method)}, "
            f"만료 {payment.expiration_date:%Y-%m-%d}"
        )
        return payment

    async def _apply_to_member(
        self,
        member_id: str,
        profile: MemberProfile,
        payment: PaymentRecord
    ) -> None:
        user_updated = await self._update(USERS, member_id, {
            "membership_type": payment.membership_type,
            "membership_status": MembershipStatus.active.value,
            "membership_expiration": payment.expiration_date,
            "updated_at": SERVER_TIMESTAMP,
        })
        if user_updated is None:
            raise MemberNotFound(member_id)

        history = list(profile.payment_history)
        if payment.id not in history:
            history.append(payment.id)

        profile_updated = await self._update(MEMBER_PROFILES, member_id, {
            "membership_type": payment.membership_type,
            "membership_status": MembershipStatus.active.value,
            "membership_expiration": payment.expiration_date,
            "payment_history": history,
            "days_used_this_week": 0,
            "days_used_this_month": 0,
            "weekly_reset_date": payment.payment_date + timedelta(days=7),
            "monthly_reset_date": add_months(payment.payment_date, 1),
            "updated_at": SERVER_TIMESTAMP,
        })
        if profile_updated is None:
            raise ProfileNotFound(member_id)

    # =============================================
    # 조회
    # =============================================

    async def get_member_payments(self, member_id: str) -> List[PaymentRecord]:
        docs = await self._query(
            PAYMENTS,
            [Predicate("member_id", "==", member_id)],
            order_by="payment_date",
            descending=True
        )
        return [PaymentRecord.model_validate(d) for d in docs]

    async def get_all_payments(self, limit: Optional[int] = None) -> List[PaymentRecord]:
        docs = await self._query(PAYMENTS, order_by="payment_date", descending=True, limit=limit)
        return [PaymentRecord.model_validate(d) for d in docs]

    async def get_payment_by_id(self, payment_id: str) -> PaymentRecord:
        doc = await self._get(PAYMENTS, payment_id)
        if not doc:
            raise PaymentNotFound(payment_id)
        return PaymentRecord.model_validate(doc)
