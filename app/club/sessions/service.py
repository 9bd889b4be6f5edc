"""
Session Service

훈련 세션 일정과 회원 참가 신청
"""

from datetime import datetime
from typing import List, Optional

from loguru import logger

from database.document_store import SERVER_TIMESTAMP, Predicate

from ..config import SESSION_REGISTRATIONS, SESSIONS
from ..errors import (
    AlreadyRegistered,
    ConcurrentUpdate,
    InvalidSession,
    NotRegistered,
    SessionFull,
    SessionNotFound,
)
from ..models import (
    ClubSession,
    RegistrationStatus,
    SessionCreate,
    SessionRegistration,
    SessionUpdate,
)
from ..store import StoreBackedService


class SessionService(StoreBackedService):

    # =============================================
    # 일정
    # =============================================

    async def create_session(self, data: SessionCreate) -> ClubSession:
        if not data.title.strip() or not data.coach.strip():
            raise InvalidSession("Missing required fields: title, date, or coach")

        session_id = await self._create(SESSIONS, {
            **data.model_dump(mode="python"),
            "participants": [],
            "version": 0,
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        })
        logger.info(f"세션 생성: {session_id} ({data.title}, {data.date:%Y-%m-%d %H:%M})")
        return await self.get_session(session_id)

    async def update_session(self, session_id: str, data: SessionUpdate) -> ClubSession:
        changes = data.model_dump(mode="python", exclude_unset=True)
        updated = await self._update(SESSIONS, session_id, {**changes, "updated_at": SERVER_TIMESTAMP})
        if updated is None:
            raise SessionNotFound(session_id)
        return ClubSession.model_validate(updated)

    async def delete_session(self, session_id: str) -> None:
        if not await self._delete(SESSIONS, session_id):
            raise SessionNotFound(session_id)
        logger.info(f"세션 삭제: {session_id}")

    async def get_session(self, session_id: str) -> ClubSession:
        doc = await self._get(SESSIONS, session_id)
        if not doc:
            raise SessionNotFound(session_id)
        return ClubSession.model_validate(doc)

    async def list_sessions(
        self,
        upcoming: bool = False,
        past: bool = False,
        coach: Optional[str] = None,
        session_type: Optional[str] = None
    ) -> List[ClubSession]:
        """예정 세션은 가까운 순, 지난 세션이나 전체는 최근 순"""
        today = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        predicates = []
        descending = True

        if upcoming:
            predicates.append(Predicate("date", ">=", today))
            descending = False
        elif past:
            predicates.append(Predicate("date", "<", today))

        if coach:
            predicates.append(Predicate("coach", "==", coach))
        if session_type:
            predicates.append(Predicate("type", "==", session_type))

        docs = await self._query(SESSIONS, predicates, order_by="date", descending=descending)
        return [ClubSession.model_validate(d) for d in docs]

    async def sessions_in_range(self, start: datetime, end: datetime) -> List[ClubSession]:
        docs = await self._query(
            SESSIONS,
            [Predicate("date", ">=", start), Predicate("date", "<=", end)],
            order_by="date"
        )
        return [ClubSession.model_validate(d) for d in docs]

    # =============================================
    # 참가 신청
    # =============================================

    async def register_for_session(self, session_id: str, member_id: str) -> SessionRegistration:
        session = await self.get_session(session_id)

        if member_id in session.participants:
            raise AlreadyRegistered()
        if len(session.participants) >= session.max_participants:
            raise SessionFull()

        await self._replace_participants(session, session.participants + [member_id])

        registration_id = await self._create(SESSION_REGISTRATIONS, {
            "session_id": session_id,
            "member_id": member_id,
            "status": RegistrationStatus.confirmed.value,
            "registered_at": self.clock(),
        })
        logger.info(f"세션 참가 신청: {member_id} -> {session_id}")
        return SessionRegistration.model_validate(
            await self._get(SESSION_REGISTRATIONS, registration_id)
        )

    async def cancel_registration(self, session_id: str, member_id: str) -> None:
        session = await self.get_session(session_id)

        if member_id not in session.participants:
            raise NotRegistered()

        await self._replace_participants(
            session, [p for p in session.participants if p != member_id]
        )

        registrations = await self._query(SESSION_REGISTRATIONS, [
            Predicate("session_id", "==", session_id),
            Predicate("member_id", "==", member_id),
            Predicate("status", "==", RegistrationStatus.confirmed.value),
        ], limit=1)

        if registrations:
            await self._update(SESSION_REGISTRATIONS, registrations[0]["id"], {
                "status": RegistrationStatus.cancelled.value,
                "updated_at": SERVER_TIMESTAMP,
            })
        logger.info(f"세션 참가 취소: {member_id} -> {session_id}")

    async def _replace_participants(self, session: ClubSession, participants: List[str]) -> None:
        """읽은 뒤 아무도 바꾸지 않았을 때만 참가자 목록 저장"""
        updated = await self._update(
            SESSIONS,
            session.id,
            {
                "participants": participants,
                "version": session.version + 1,
                "updated_at": SERVER_TIMESTAMP,
            },
            expected={"version": session.version}
        )
        if updated is None:
            if await self._get(SESSIONS, session.id) is None:
                raise SessionNotFound(session.id)
            raise ConcurrentUpdate("Session")

    async def list_registrations(self, session_id: str) -> List[SessionRegistration]:
        docs = await self._query(
            SESSION_REGISTRATIONS,
            [Predicate("session_id", "==", session_id)],
            order_by="registered_at"
        )
        return [SessionRegistration.model_validate(d) for d in docs]
