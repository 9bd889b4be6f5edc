"""
Club error taxonomy

클럽 서비스의 모든 실패는 네 종류 중 하나:
not_found, validation_failed, transient, conflict.
메시지는 사용자에게 그대로 보여준다.
"""
from datetime import datetime
from typing import Optional


class ClubError(Exception):
    """호출자에게 전달되는 오류의 기본 클래스"""
    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =============================================
# 찾을 수 없음
# =============================================

class NotFoundError(ClubError):
    kind = "not_found"
    status_code = 404


class ProfileNotFound(NotFoundError):
    def __init__(self, member_id: str):
        super().__init__(f"Member profile not found: {member_id}")
        self.member_id = member_id


class MemberNotFound(NotFoundError):
    def __init__(self, member_id: str):
        super().__init__(f"Member not found: {member_id}")
        self.member_id = member_id


class AttendanceNotFound(NotFoundError):
    def __init__(self, attendance_id: str):
        super().__init__(f"Attendance record not found: {attendance_id}")
        self.attendance_id = attendance_id


class PaymentNotFound(NotFoundError):
    def __init__(self, payment_id: str):
        super().__init__(f"Payment not found: {payment_id}")
        self.payment_id = payment_id


class SessionNotFound(NotFoundError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionPriceNotFound(NotFoundError):
    def __init__(self, price_id: str):
        super().__init__(f"Session price not found: {price_id}")
        self.price_id = price_id


class NotCheckedIn(NotFoundError):
    def __init__(self, member_id: str):
        super().__init__("Member is not checked in")
        self.member_id = member_id


# =============================================
# 검증
# =============================================

class ValidationFailedError(ClubError):
    kind = "validation_failed"
    status_code = 400


class MembershipInactive(ValidationFailedError):
    def __init__(self):
        super().__init__("Your membership is not active. Please renew to check in.")


class MembershipExpired(ValidationFailedError):
    def __init__(self, expired_at: datetime):
        super().__init__("Your membership has expired. Please renew to check in.")
        self.expired_at = expired_at


class NoMembershipType(ValidationFailedError):
    def __init__(self):
        super().__init__("No membership type found. Please contact the administrator.")


class WeeklyQuotaExceeded(ValidationFailedError):
    def __init__(self, days_per_week: int, reset_date: Optional[datetime]):
        resets = reset_date.strftime("%A, %B %d, %Y") if reset_date else "N/A"
        super().__init__(
            f"You've used all {days_per_week} days allowed this week. "
            f"Weekly limit resets on {resets}."
        )
        self.days_per_week = days_per_week
        self.reset_date = reset_date


class UnknownMembershipTier(ValidationFailedError):
    def __init__(self, tier_id: str):
        super().__init__(f"Invalid membership type: {tier_id}")
        self.tier_id = tier_id


class AlreadyCheckedIn(ValidationFailedError):
    def __init__(self, attendance_id: str):
        super().__init__("Member is already checked in. Check out first.")
        self.attendance_id = attendance_id


class CheckOutBeforeCheckIn(ValidationFailedError):
    def __init__(self):
        super().__init__("Check-out time cannot be before check-in time")


class InvalidSession(ValidationFailedError):
    pass


class SessionFull(ValidationFailedError):
    def __init__(self):
        super().__init__("Session is full")


class AlreadyRegistered(ValidationFailedError):
    def __init__(self):
        super().__init__("User already registered for this session")


class NotRegistered(ValidationFailedError):
    def __init__(self):
        super().__init__("User not registered for this session")


# =============================================
# 일시 장애 / 충돌
# =============================================

class TransientError(ClubError):
    kind = "transient"
    status_code = 503


class BackendUnavailable(TransientError):
    def __init__(self, detail: str = ""):
        super().__init__("The club service is temporarily unavailable. Please try again.")
        self.detail = detail


class ConflictError(ClubError):
    kind = "conflict"
    status_code = 409


class ConcurrentUpdate(ConflictError):
    def __init__(self, what: str):
        super().__init__(f"{what} was changed by another request. Please try again.")
