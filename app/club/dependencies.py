"""
Club Management Dependencies

인증, 역할 검사, 서비스 팩토리
"""

from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, HTTPException, Request, status
from loguru import logger

from database.document_store import TransientStoreError

from .config import USERS, get_club_settings
from .models import Attribution, ClubRole


class ActorContext:
    """클럽 작업을 수행하는 인증된 사용자"""

    def __init__(self, actor_id: str, display_name: str, role: ClubRole):
        self.actor_id = actor_id
        self.display_name = display_name
        self.role = role

    def __repr__(self) -> str:
        return f"ActorContext({self.actor_id!r}, {self.display_name!r}, {self.role.value})"

    def is_admin(self) -> bool:
        return self.role is ClubRole.admin

    def is_staff(self) -> bool:
        """관리자와 코치"""
        return self.role in (ClubRole.admin, ClubRole.coach)

    def can_check_in_others(self) -> bool:
        return self.is_staff()

    def can_record_payments(self) -> bool:
        return self.is_admin()

    def can_act_for(self, member_id: str) -> bool:
        """스태프는 누구든, 회원과 게스트는 본인만"""
        if self.role is ClubRole.admin or self.role is ClubRole.coach:
            return True
        if self.role is ClubRole.member or self.role is ClubRole.guest:
            return self.actor_id == member_id
        raise ValueError(f"unhandled role: {self.role}")

    def attribution(self, timestamp: Optional[datetime] = None) -> Attribution:
        return Attribution(actor_id=self.actor_id, name=self.display_name, timestamp=timestamp)


# 인증된 사용자 없이 서비스를 호출할 때 (작업, 스크립트)
SYSTEM_ACTOR = ActorContext("system", "System", ClubRole.admin)

# CLUB_TEST_MODE=1일 때 사용하는 사용자
TEST_ACTOR = ActorContext("00000000-0000-0000-0000-000000000001", "Test Admin", ClubRole.admin)


# =============================================
# 서비스
# =============================================

@lru_cache()
def get_document_store():
    from database.supabase_client import SupabaseDocumentStore

    settings = get_club_settings()
    return SupabaseDocumentStore(
        timeout=settings.BACKEND_TIMEOUT_SECONDS,
        retry_delay=settings.BACKEND_RETRY_DELAY_SECONDS
    )


def get_attendance_service():
    from .attendance.service import AttendanceService
    return AttendanceService(get_document_store(), timezone_name=get_club_settings().TIMEZONE)


def get_payment_service():
    from .payments.service import PaymentService
    return PaymentService(get_document_store())


def get_member_service():
    from .members.service import MemberService
    return MemberService(get_document_store())


def get_session_service():
    from .sessions.service import SessionService
    return SessionService(get_document_store())


def get_reconciler():
    from .reconciliation import AttendanceReconciler
    return AttendanceReconciler(get_document_store())


# =============================================
# 인증
# =============================================

async def get_current_actor(request: Request) -> ActorContext:
    """
    Supabase Auth로 bearer 토큰을 확인하고
    표시 이름과 역할을 위해 users 행을 조회
    """
    from database.supabase_client import get_supabase_client

    if get_club_settings().TEST_MODE:
        return TEST_ACTOR

    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    token = auth_header.split(" ", 1)[1]

    try:
        supabase = get_supabase_client()
        user_response = supabase.auth.get_user(token)
    except Exception as e:
        logger.warning(f"토큰 검증 실패: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    if not user_response or not user_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user_id = user_response.user.id
    try:
        user = await get_document_store().get_document(USERS, user_id)
    except TransientStoreError as e:
        logger.error(f"users 행 조회 실패 ({user_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable"
        )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No club account for this login"
        )

    try:
        role = ClubRole(user.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No club role assigned"
        )

    return ActorContext(
        actor_id=user_id,
        display_name=user.get("display_name") or user.get("email") or user_id,
        role=role
    )


def require_admin(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
    if not actor.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )
    return actor


def require_staff(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
    if not actor.is_staff():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or coach role required"
        )
    return actor


def require_roles(allowed_roles: List[ClubRole]):
    def _check(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        if actor.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Allowed roles: {', '.join([r.value for r in allowed_roles])}"
            )
        return actor
    return _check


def ensure_can_act_for(actor: ActorContext, member_id: str) -> None:
    if not actor.can_act_for(member_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own records"
        )
