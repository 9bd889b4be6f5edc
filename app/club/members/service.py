"""
Member Service

회원 등록 - 같은 id로 회원 정보와 빈 프로필을 만든다.
로그인 계정 자체는 Supabase Auth가 관리한다.
"""

import uuid
from typing import List, Optional

from loguru import logger

from database.document_store import SERVER_TIMESTAMP, DocumentStoreError, Predicate

from ..config import MEMBER_PROFILES, USERS
from ..dependencies import SYSTEM_ACTOR, ActorContext
from ..errors import BackendUnavailable, MemberNotFound, ProfileNotFound
from ..models import ClubRole, Member, MemberCreate, MembershipStatus, MemberProfile
from ..store import StoreBackedService


class MemberService(StoreBackedService):

    async def register_member(
        self,
        data: MemberCreate,
        actor: Optional[ActorContext] = None,
        member_id: Optional[str] = None
    ) -> Member:
        """
        users + member_profiles 문서 생성

        로그인 계정이 이미 있으면 member_id는 Supabase Auth uid
        """
        actor = actor or SYSTEM_ACTOR
        member_id = member_id or str(uuid.uuid4())

        await self._create(USERS, {
            "display_name": data.display_name,
            "email": data.email,
            "phone": data.phone or "",
            "role": data.role.value,
            "membership_type": None,
            "membership_status": MembershipStatus.inactive.value,
            "membership_expiration": None,
            "created_by": actor.actor_id,
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        }, document_id=member_id)

        try:
            await self.store.create_document(MEMBER_PROFILES, {
                "display_name": data.display_name,
                "membership_type": None,
                "membership_status": MembershipStatus.inactive.value,
                "membership_expiration": None,
                "days_used_this_week": 0,
                "days_used_this_month": 0,
                "weekly_reset_date": None,
                "monthly_reset_date": None,
                "current_attendance_id": None,
                "last_visit": None,
                "payment_history": [],
                "created_at": SERVER_TIMESTAMP,
                "updated_at": SERVER_TIMESTAMP,
            }, document_id=member_id)
        except DocumentStoreError as e:
            logger.error(f"회원 {member_id} 생성됐지만 프로필 생성 실패: {e}")
            raise BackendUnavailable(str(e)) from e

        logger.info(f"회원 등록: {data.display_name} ({data.role.value}) -> {member_id} (등록자 {actor.actor_id})")
        return await self.get_member(member_id)

    async def get_member(self, member_id: str) -> Member:
        doc = await self._get(USERS, member_id)
        if not doc:
            raise MemberNotFound(member_id)
        return Member.model_validate(doc)

    async def get_member_profile(self, member_id: str) -> MemberProfile:
        doc = await self._get(MEMBER_PROFILES, member_id)
        if not doc:
            raise ProfileNotFound(member_id)
        return MemberProfile.model_validate(doc)

    async def list_members(self, role: Optional[ClubRole] = None) -> List[Member]:
        predicates = [Predicate("role", "==", role.value)] if role else []
        docs = await self._query(USERS, predicates, order_by="display_name")
        return [Member.model_validate(d) for d in docs]
