"""
Attendance reconciliation

두 쓰기 사이의 장애가 남긴 불완전한 상태 복구
- 없거나 종료된 출결 기록을 가리키는 프로필
- 회원 프로필이 가리키지 않는 열린 출결 기록
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from loguru import logger

from database.document_store import SERVER_TIMESTAMP, DocumentStore, Predicate

from .attendance.service import CLAIM_GRACE, append_notes
from .config import ATTENDANCE, MEMBER_PROFILES
from .dependencies import SYSTEM_ACTOR
from .membership import as_utc, utc_now
from .models import AttendanceRecord, AttendanceStatus, MemberProfile, ReconciliationReport
from .store import StoreBackedService

RECONCILE_NOTE = "Closed by reconciliation"


class AttendanceReconciler(StoreBackedService):

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = utc_now,
        grace: timedelta = CLAIM_GRACE
    ):
        super().__init__(store, clock)
        self.grace = grace

    async def reconcile(self) -> ReconciliationReport:
        now = self.clock()
        report = ReconciliationReport(checked_at=now)

        profiles = await self._query(
            MEMBER_PROFILES,
            [Predicate("current_attendance_id", "!=", None)]
        )
        report.profiles_scanned = len(profiles)

        for doc in profiles:
            profile = MemberProfile.model_validate(doc)
            if await self._clear_dangling_pointer(profile, now):
                report.dangling_pointers_cleared += 1

        open_docs = await self._query(
            ATTENDANCE,
            [Predicate("status", "==", AttendanceStatus.checked_in.value)],
            order_by="check_in_time",
            descending=True
        )
        by_member: Dict[str, List[AttendanceRecord]] = defaultdict(list)
        for doc in open_docs:
            record = AttendanceRecord.model_validate(doc)
            by_member[record.member_id].append(record)

        for member_id, records in by_member.items():
            report.stray_records_closed += await self._close_strays(member_id, records, now)

        if report.dangling_pointers_cleared or report.stray_records_closed:
            logger.warning(
                f"정합성 점검: 포인터 {report.dangling_pointers_cleared}개 정리, "
                f"출결 기록 {report.stray_records_closed}개 종료"
            )
        else:
            logger.debug(f"정합성 점검 이상 없음 (열린 프로필 {report.profiles_scanned}개)")
        return report

    async def _clear_dangling_pointer(self, profile: MemberProfile, now: datetime) -> bool:
        attendance_id = profile.current_attendance_id
        doc = await self._get(ATTENDANCE, attendance_id)

        if doc:
            if not AttendanceRecord.model_validate(doc).status.is_terminal:
                return False
        elif profile.last_visit and now - as_utc(profile.last_visit) < self.grace:
            # 출결 기록 저장이 아직 진행 중일 수 있음
            return False

        cleared = await self._update(
            MEMBER_PROFILES,
            profile.id,
            {"current_attendance_id": None, "updated_at": SERVER_TIMESTAMP},
            expected={"current_attendance_id": attendance_id}
        )
        if cleared is not None:
            logger.warning(f"오래된 current_attendance_id 정리: {attendance_id} ({profile.id})")
            return True
        return False

    async def _close_strays(
        self,
        member_id: str,
        records: List[AttendanceRecord],
        now: datetime
    ) -> int:
        # 다시 읽기 - 프로필 스캔 이후 포인터가 바뀌었을 수 있음
        profile_doc = await self._get(MEMBER_PROFILES, member_id)
        pointer = profile_doc.get("current_attendance_id") if profile_doc else None

        closed = 0
        for record in records:
            if record.id == pointer:
                continue
            duration = round((now - as_utc(record.check_in_time)).total_seconds() / 60)
            updated = await self._update(
                ATTENDANCE,
                record.id,
                {
                    "status": AttendanceStatus.checked_out.value,
                    "check_out_time": now,
                    "duration_minutes": max(duration, 0),
                    "notes": append_notes(record.notes, RECONCILE_NOTE),
                    "checked_out_by": SYSTEM_ACTOR.attribution(now).model_dump(mode="python"),
                    "updated_at": SERVER_TIMESTAMP,
                },
                expected={"status": AttendanceStatus.checked_in.value}
            )
            if updated is not None:
                logger.warning(f"떠도는 열린 출결 종료: {record.id} ({member_id})")
                closed += 1
        return closed
