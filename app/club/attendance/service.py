"""
Attendance Service

회원 프로필과 출결 컬렉션 위의 체크인/체크아웃 처리

회원 프로필이 잠금 역할을 한다: 체크인은 먼저 조건부 업데이트로 프로필을
선점하고 (current_attendance_id가 비어 있고 사용 횟수가 검증한 값 그대로일 때만),
그 다음에 선점한 id로 출결 기록을 쓴다. 같은 회원의 동시 체크인은 둘 다
성공할 수 없다.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from loguru import logger

from database.document_store import (
    SERVER_TIMESTAMP,
    DocumentStore,
    DocumentStoreError,
    Predicate,
)

from ..config import ATTENDANCE, MEMBER_PROFILES
from ..dependencies import SYSTEM_ACTOR, ActorContext
from ..errors import (
    AlreadyCheckedIn,
    AttendanceNotFound,
    BackendUnavailable,
    CheckOutBeforeCheckIn,
    ConcurrentUpdate,
    MembershipExpired,
    MembershipInactive,
    NoMembershipType,
    NotCheckedIn,
    ProfileNotFound,
    ValidationFailedError,
    WeeklyQuotaExceeded,
)
from ..membership import add_months, as_utc, days_per_week, get_tier_by_id, utc_now
from ..models import (
    AttendanceFilters,
    AttendanceRecord,
    AttendanceStats,
    AttendanceStatus,
    CheckInRequest,
    CheckOutRequest,
    MembershipStatus,
    MemberProfile,
)
from ..store import StoreBackedService

NOTES_SEPARATOR = " | "
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# 체크인은 기록보다 프로필을 먼저 선점함 - 막 생긴 선점은 건드리지 않음
CLAIM_GRACE = timedelta(minutes=2)


# =============================================
# 순수 헬퍼
# =============================================

def roll_usage_periods(profile: MemberProfile, now: datetime) -> Dict[str, Any]:
    """
    사용 횟수를 이번 주/이번 달 기준으로 맞추기 위해 써야 할 필드

    지난 초기화 날짜는 해당 횟수를 0으로 만들고 미래가 될 때까지
    주기 단위로 앞당긴다. 초기화 날짜가 없는 프로필(결제 이력 없음)은 그대로 둔다.
    """
    changes: Dict[str, Any] = {}

    if profile.weekly_reset_date and now >= as_utc(profile.weekly_reset_date):
        reset = as_utc(profile.weekly_reset_date)
        weeks = (now - reset) // timedelta(days=7) + 1
        changes["days_used_this_week"] = 0
        changes["weekly_reset_date"] = reset + timedelta(days=7 * weeks)

    if profile.monthly_reset_date and now >= as_utc(profile.monthly_reset_date):
        anchor = as_utc(profile.monthly_reset_date)
        months = 1
        while add_months(anchor, months) <= now:
            months += 1
        changes["days_used_this_month"] = 0
        changes["monthly_reset_date"] = add_months(anchor, months)

    return changes


def validate_check_in(profile: MemberProfile, now: datetime) -> int:
    """
    체크인 자격 검증 - 첫 번째 실패를 예외로, 통과하면 주간 허용 일수 반환
    """
    if profile.membership_status != MembershipStatus.active:
        raise MembershipInactive()

    if profile.membership_expiration and as_utc(profile.membership_expiration) <= now:
        raise MembershipExpired(profile.membership_expiration)

    if get_tier_by_id(profile.membership_type) is None:
        raise NoMembershipType()

    allowance = days_per_week(profile.membership_type)
    if profile.days_used_this_week >= allowance:
        raise WeeklyQuotaExceeded(allowance, profile.weekly_reset_date)

    return allowance


def append_notes(existing: str, addition: Optional[str]) -> str:
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}{NOTES_SEPARATOR}{addition}"


def format_duration(check_in: Optional[datetime], check_out: Optional[datetime]) -> str:
    """'45 minutes', '2 hours', '1 hour 5 minutes'"""
    if not check_in or not check_out:
        return "N/A"

    total = round((check_out - check_in).total_seconds() / 60)
    hours, minutes = divmod(total, 60)

    if hours == 0:
        return f"{minutes} minutes"
    hour_part = f"{hours} hour{'s' if hours != 1 else ''}"
    if minutes == 0:
        return hour_part
    return f"{hour_part} {minutes} minute{'s' if minutes != 1 else ''}"


class AttendanceService(StoreBackedService):
    """출결 엔진"""

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = utc_now,
        timezone_name: str = "UTC"
    ):
        super().__init__(store, clock)
        self.local_tz = ZoneInfo(timezone_name)

    # =============================================
    # 체크인 / 체크아웃
    # =============================================

    async def check_in(
        self,
        member_id: str,
        data: Optional[CheckInRequest] = None,
        actor: Optional[ActorContext] = None
    ) -> AttendanceRecord:
        data = data or CheckInRequest()
        actor = actor or SYSTEM_ACTOR
        now = self.clock()

        profile_doc = await self._get(MEMBER_PROFILES, member_id)
        if not profile_doc:
            raise ProfileNotFound(member_id)

        stored = MemberProfile.model_validate(profile_doc)
        period_changes = roll_usage_periods(stored, now)
        profile = stored.model_copy(update=period_changes)

        try:
            validate_check_in(profile, now)
        except ValidationFailedError as e:
            logger.info(f"체크인 거부 ({member_id}): {e}")
            raise

        if profile.current_attendance_id:
            await self._clear_stale_pointer(member_id, profile, now)

        attendance_id = str(uuid.uuid4())
        check_in_time = data.check_in_time or now

        claimed = await self._update(
            MEMBER_PROFILES,
            member_id,
            {
                **period_changes,
                "last_visit": now,
                "days_used_this_week": profile.days_used_this_week + 1,
                "days_used_this_month": profile.days_used_this_month + 1,
                "current_attendance_id": attendance_id,
                "updated_at": SERVER_TIMESTAMP,
            },
            expected={
                "current_attendance_id": None,
                "days_used_this_week": stored.days_used_this_week,
                "days_used_this_month": stored.days_used_this_month,
            }
        )
        if claimed is None:
            await self._explain_lost_claim(member_id, attendance_id)

        record = AttendanceRecord(
            id=attendance_id,
            member_id=member_id,
            member_name=data.member_name or profile.display_name or "Unknown",
            check_in_time=check_in_time,
            status=AttendanceStatus.checked_in,
            attendance_type=data.attendance_type,
            check_in_method=data.check_in_method,
            notes=data.notes or "",
            checked_in_by=actor.attribution(now),
        )

        try:
            await self.store.create_document(
                ATTENDANCE,
                {
                    **record.model_dump(mode="python", exclude={"id"}),
                    "created_at": SERVER_TIMESTAMP,
                    "updated_at": SERVER_TIMESTAMP,
                },
                document_id=attendance_id
            )
        except DocumentStoreError as e:
            logger.error(
                f"프로필 선점 후 출결 기록 저장 실패 "
                f"(member={member_id}, attendance={attendance_id}): {e}"
            )
            await self._release_claim(member_id, attendance_id, stored)
            raise BackendUnavailable(str(e)) from e

        logger.info(f"체크인 완료: {member_id} ({record.member_name}) -> {attendance_id}")
        return record

    async def _explain_lost_claim(self, member_id: str, attendance_id: Optional[str] = None) -> None:
        """
        조건부 프로필 업데이트가 아무것도 바꾸지 못한 이유를 예외로 변환

        프로필이 이미 우리 선점을 갖고 있으면 그대로 반환한다
        (첫 시도가 반영된 업데이트를 저장소가 재시도한 경우).
        """
        current = await self._get(MEMBER_PROFILES, member_id)
        if not current:
            raise ProfileNotFound(member_id)

        pointer = current.get("current_attendance_id")
        if attendance_id and pointer == attendance_id:
            logger.info(f"프로필 선점 {attendance_id} ({member_id}) 이전 시도에서 이미 반영됨")
            return
        if pointer:
            raise AlreadyCheckedIn(pointer)
        raise ConcurrentUpdate("Member profile")

    async def _clear_stale_pointer(self, member_id: str, profile: MemberProfile, now: datetime) -> None:
        """
        프로필이 열린 출결을 가리키는 동안은 체크인 거부

        종료된 기록이나, 선점 유예 시간이 지났는데도 쓰이지 않은 기록을 가리키는
        포인터는 중단된 체크아웃/체크인의 잔재이므로 지우고 진행한다.
        """
        attendance_id = profile.current_attendance_id
        doc = await self._get(ATTENDANCE, attendance_id)

        if doc:
            if not AttendanceRecord.model_validate(doc).status.is_terminal:
                raise AlreadyCheckedIn(attendance_id)
        elif profile.last_visit and now - as_utc(profile.last_visit) < CLAIM_GRACE:
            # 선점한 체크인이 아직 기록을 쓰는 중일 수 있음
            raise AlreadyCheckedIn(attendance_id)

        logger.warning(f"오래된 current_attendance_id 정리: {attendance_id} ({member_id})")
        if not await self._clear_pointer(member_id, attendance_id):
            await self._explain_lost_claim(member_id)

    async def _clear_pointer(self, member_id: str, attendance_id: str) -> bool:
        cleared = await self._update(
            MEMBER_PROFILES,
            member_id,
            {"current_attendance_id": None, "updated_at": SERVER_TIMESTAMP},
            expected={"current_attendance_id": attendance_id}
        )
        return cleared is not None

    async def _release_claim(
        self,
        member_id: str,
        attendance_id: str,
        previous: MemberProfile
    ) -> None:
        """출결 기록이 쓰이지 않은 프로필 선점 되돌리기"""
        try:
            released = await self.store.update_document(
                MEMBER_PROFILES,
                member_id,
                {
                    "current_attendance_id": None,
                    "days_used_this_week": previous.days_used_this_week,
                    "days_used_this_month": previous.days_used_this_month,
                    "weekly_reset_date": previous.weekly_reset_date,
                    "monthly_reset_date": previous.monthly_reset_date,
                    "last_visit": previous.last_visit,
                    "updated_at": SERVER_TIMESTAMP,
                },
                expected={"current_attendance_id": attendance_id}
            )
        except DocumentStoreError as e:
            logger.error(
                f"프로필 선점 해제 실패 (member={member_id}, "
                f"attendance={attendance_id}) - 정합성 점검에서 정리됨: {e}"
            )
            return
        if released is None:
            logger.warning(f"프로필 선점 {attendance_id} ({member_id}) 이미 해제됨")

    async def check_out(
        self,
        attendance_id: str,
        data: Optional[CheckOutRequest] = None,
        actor: Optional[ActorContext] = None
    ) -> AttendanceRecord:
        data = data or CheckOutRequest()
        actor = actor or SYSTEM_ACTOR

        doc = await self._get(ATTENDANCE, attendance_id)
        if not doc:
            raise AttendanceNotFound(attendance_id)

        record = AttendanceRecord.model_validate(doc)
        if record.status.is_terminal:
            # checked-out은 멱등, no-show는 다시 열지 않음
            # 아직 여기를 가리키는 프로필은 이전 시도에서 포인터 정리가 실패한 것
            if await self._clear_pointer(record.member_id, attendance_id):
                logger.warning(f"종료된 출결 {attendance_id}를 가리키던 포인터 정리 ({record.member_id})")
            return record

        now = self.clock()
        check_out_time = data.check_out_time or now
        if as_utc(check_out_time) < as_utc(record.check_in_time):
            raise CheckOutBeforeCheckIn()
        duration = round((as_utc(check_out_time) - as_utc(record.check_in_time)).total_seconds() / 60)

        updated = await self._update(
            ATTENDANCE,
            attendance_id,
            {
                "status": AttendanceStatus.checked_out.value,
                "check_out_time": check_out_time,
                "duration_minutes": duration,
                "notes": append_notes(record.notes, data.notes),
                "checked_out_by": actor.attribution(now).model_dump(mode="python"),
                "updated_at": SERVER_TIMESTAMP,
            },
            expected={"status": AttendanceStatus.checked_in.value}
        )

        if updated is None:
            # 읽기와 쓰기 사이에 다른 요청이 종료함
            latest = await self._get(ATTENDANCE, attendance_id)
            if not latest:
                raise AttendanceNotFound(attendance_id)
            return AttendanceRecord.model_validate(latest)

        try:
            cleared = await self.store.update_document(
                MEMBER_PROFILES,
                record.member_id,
                {"current_attendance_id": None, "updated_at": SERVER_TIMESTAMP},
                expected={"current_attendance_id": attendance_id}
            )
        except DocumentStoreError as e:
            logger.error(
                f"체크아웃 {attendance_id} 완료했지만 프로필 포인터 정리 실패 "
                f"({record.member_id}): {e}"
            )
            raise BackendUnavailable(str(e)) from e

        if cleared is None:
            logger.warning(f"{record.member_id} 프로필이 더 이상 {attendance_id}를 가리키지 않음")

        logger.info(f"체크아웃 완료: {record.member_id} ({attendance_id}, {duration}분)")
        return AttendanceRecord.model_validate(updated)

    async def check_out_member(
        self,
        member_id: str,
        data: Optional[CheckOutRequest] = None,
        actor: Optional[ActorContext] = None
    ) -> AttendanceRecord:
        """회원의 현재 열린 출결 체크아웃"""
        current = await self.get_current_attendance(member_id)
        if current is None:
            raise NotCheckedIn(member_id)
        return await self.check_out(current.id, data, actor)

    # =============================================
    # 조회
    # =============================================

    async def get_current_attendance(self, member_id: str) -> Optional[AttendanceRecord]:
        """
        회원의 열린 출결 (없으면 None)

        없거나 이미 종료된 기록을 가리키는 포인터는 조회하면서 정리한다.
        """
        profile = await self._get(MEMBER_PROFILES, member_id)
        if not profile:
            return None

        attendance_id = profile.get("current_attendance_id")
        if not attendance_id:
            return None

        doc = await self._get(ATTENDANCE, attendance_id)
        record = AttendanceRecord.model_validate(doc) if doc else None

        if record is None or record.status.is_terminal:
            logger.warning(f"오래된 current_attendance_id 정리: {attendance_id} ({member_id})")
            await self._clear_pointer(member_id, attendance_id)
            return None

        return record

    async def get_attendance(self, attendance_id: str) -> AttendanceRecord:
        doc = await self._get(ATTENDANCE, attendance_id)
        if not doc:
            raise AttendanceNotFound(attendance_id)
        return AttendanceRecord.model_validate(doc)

    async def list_attendance(self, filters: Optional[AttendanceFilters] = None) -> List[AttendanceRecord]:
        """필터에 맞는 출결 기록 (최근 체크인 순)"""
        filters = filters or AttendanceFilters()
        predicates = []

        if filters.start_date:
            predicates.append(Predicate("check_in_time", ">=", filters.start_date))
        if filters.end_date:
            predicates.append(Predicate("check_in_time", "<=", filters.end_date))
        if filters.member_id:
            predicates.append(Predicate("member_id", "==", filters.member_id))
        if filters.status:
            predicates.append(Predicate("status", "==", filters.status.value))

        docs = await self._query(
            ATTENDANCE,
            predicates,
            order_by="check_in_time",
            descending=True,
            limit=filters.limit
        )
        return [AttendanceRecord.model_validate(d) for d in docs]

    async def list_member_attendance(
        self,
        member_id: str,
        filters: Optional[AttendanceFilters] = None
    ) -> List[AttendanceRecord]:
        filters = (filters or AttendanceFilters()).model_copy(update={"member_id": member_id})
        return await self.list_attendance(filters)

    async def compute_stats(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> AttendanceStats:
        """출결 통계 - 합계, 상태별 건수, 회원 수, 요일별 분포 (일요일부터)"""
        records = await self.list_attendance(AttendanceFilters(
            start_date=start_date or EPOCH,
            end_date=end_date or self.clock(),
        ))

        stats = AttendanceStats(total_attendance=len(records))
        members = set()

        for record in records:
            if record.status == AttendanceStatus.checked_in:
                stats.checked_in += 1
            elif record.status == AttendanceStatus.checked_out:
                stats.checked_out += 1
            elif record.status == AttendanceStatus.no_show:
                stats.no_shows += 1

            members.add(record.member_id)

            local = as_utc(record.check_in_time).astimezone(self.local_tz)
            # weekday(): 월요일=0, 버킷: 일요일=0
            stats.day_of_week_counts[(local.weekday() + 1) % 7] += 1

        stats.unique_members = len(members)
        return stats
