"""
Club Management Models

회원, 출결, 결제, 세션 Pydantic 모델
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, EmailStr, Field, field_validator


# =============================================
# 열거형
# =============================================

class ClubRole(str, Enum):
    """인증 서비스가 발급한 역할"""
    admin = "admin"
    member = "member"
    guest = "guest"
    coach = "coach"


class MembershipStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    expired = "expired"


class AttendanceStatus(str, Enum):
    """출결 기록 상태 - checked_in만 열린 상태"""
    checked_in = "checked-in"
    checked_out = "checked-out"
    no_show = "no-show"

    @property
    def is_terminal(self) -> bool:
        return self is not AttendanceStatus.checked_in


class AttendanceType(str, Enum):
    regular = "regular"
    coaching = "coaching"
    event = "event"
    competition = "competition"


class CheckInMethod(str, Enum):
    front_desk = "front-desk"
    self_service = "self-service"
    admin = "admin"
    coach = "coach"


class PaymentStatus(str, Enum):
    completed = "completed"
    pending = "pending"
    canceled = "canceled"


class PaymentMethod(str, Enum):
    cash = "cash"
    whish = "whish"
    other = "other"


class RegistrationStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"


# =============================================
# 카탈로그
# =============================================

class MembershipTier(BaseModel):
    """회원권 정의"""
    model_config = {"frozen": True}

    id: str
    name: str
    price: float
    days_per_week: int
    duration_days: int
    includes_coaching: bool = False
    is_active: bool = True
    display_order: int = 0
    description: str = ""
    features: List[str] = []


class SessionPrice(BaseModel):
    """1회 이용 가격"""
    model_config = {"frozen": True}

    id: str
    name: str
    price: float
    description: str = ""
    features: List[str] = []
    display_order: int = 0


# =============================================
# 회원
# =============================================

class Attribution(BaseModel):
    """쓰기를 수행한 사람과 시각"""
    actor_id: str
    name: str
    timestamp: Optional[datetime] = None


class Member(BaseModel):
    """회원 정보 (users 컬렉션)"""
    id: str
    display_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: ClubRole = ClubRole.member
    membership_type: Optional[str] = None
    membership_status: MembershipStatus = MembershipStatus.inactive
    membership_expiration: Optional[datetime] = None


class MemberProfile(BaseModel):
    """회원별 회원권과 사용 현황"""
    id: str
    display_name: Optional[str] = None
    membership_type: Optional[str] = None
    membership_status: MembershipStatus = MembershipStatus.inactive
    membership_expiration: Optional[datetime] = None
    days_used_this_week: int = Field(default=0, ge=0)
    days_used_this_month: int = Field(default=0, ge=0)
    weekly_reset_date: Optional[datetime] = None
    monthly_reset_date: Optional[datetime] = None
    current_attendance_id: Optional[str] = None
    last_visit: Optional[datetime] = None
    payment_history: List[str] = []

    @field_validator("payment_history", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or []


class MemberCreate(BaseModel):
    """회원 등록"""
    display_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    role: ClubRole = ClubRole.member


# =============================================
# 출결
# =============================================

class CheckInRequest(BaseModel):
    attendance_type: AttendanceType = AttendanceType.regular
    check_in_method: CheckInMethod = CheckInMethod.front_desk
    notes: Optional[str] = None
    check_in_time: Optional[datetime] = None
    member_name: Optional[str] = None


class CheckOutRequest(BaseModel):
    notes: Optional[str] = None
    check_out_time: Optional[datetime] = None


class AttendanceRecord(BaseModel):
    """방문 1회"""
    id: str
    member_id: str
    member_name: str
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    status: AttendanceStatus = AttendanceStatus.checked_in
    attendance_type: AttendanceType = AttendanceType.regular
    check_in_method: CheckInMethod = CheckInMethod.front_desk
    notes: str = ""
    duration_minutes: Optional[int] = None
    checked_in_by: Optional[Attribution] = None
    checked_out_by: Optional[Attribution] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_none(cls, v):
        return v or ""


class AttendanceFilters(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[AttendanceStatus] = None
    member_id: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1, le=1000)


class AttendanceStats(BaseModel):
    total_attendance: int = 0
    checked_in: int = 0
    checked_out: int = 0
    no_shows: int = 0
    unique_members: int = 0
    # 0=일요일 .. 6=토요일
    day_of_week_counts: List[int] = Field(default_factory=lambda: [0] * 7)


# =============================================
# 결제
# =============================================

class PaymentCreate(BaseModel):
    amount: Optional[float] = Field(default=None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.cash
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
    receipt_number: Optional[str] = None
    # 같은 키 => 같은 결제 문서
    idempotency_key: Optional[str] = None


class PaymentRecord(BaseModel):
    """결제 원장 항목 - 생성 후 수정하지 않음"""
    id: str
    member_id: str
    member_name: str
    membership_type: str
    membership_name: str
    amount: float
    payment_method: PaymentMethod
    payment_date: datetime
    expiration_date: datetime
    status: PaymentStatus = PaymentStatus.completed
    notes: str = ""
    receipt_number: str = ""
    recorded_by: Attribution


# =============================================
# 세션
# =============================================

class SessionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    date: datetime
    coach: str = Field(..., min_length=1)
    type: str = "training"
    max_participants: int = Field(default=10, ge=1)
    description: Optional[str] = None


class SessionUpdate(BaseModel):
    title: Optional[str] = None
    date: Optional[datetime] = None
    coach: Optional[str] = None
    type: Optional[str] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None


class ClubSession(BaseModel):
    """예정된 훈련 세션"""
    id: str
    title: str
    date: datetime
    coach: str
    type: str = "training"
    max_participants: int = 10
    participants: List[str] = []
    description: Optional[str] = None
    # 참가자 변경마다 증가
    version: int = 0

    @field_validator("participants", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or []


class SessionRegistration(BaseModel):
    id: str
    session_id: str
    member_id: str
    status: RegistrationStatus = RegistrationStatus.confirmed
    registered_at: Optional[datetime] = None


# =============================================
# 유지보수
# =============================================

class ReconciliationReport(BaseModel):
    profiles_scanned: int = 0
    dangling_pointers_cleared: int = 0
    stray_records_closed: int = 0
    checked_at: datetime
