"""
Club settings

클럽 서비스 설정 (CLUB_ 환경변수)
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


# 컬렉션 (각각 Supabase 테이블 하나)
USERS = "users"
MEMBER_PROFILES = "member_profiles"
ATTENDANCE = "attendance"
PAYMENTS = "payments"
SESSIONS = "sessions"
SESSION_REGISTRATIONS = "session_registrations"


class ClubSettings(BaseSettings):
    """클럽 서비스 설정"""

    BACKEND_TIMEOUT_SECONDS: float = Field(default=5.0, description="백엔드 호출별 타임아웃")
    BACKEND_RETRY_DELAY_SECONDS: float = Field(default=0.5, description="1회 재시도 전 대기")

    # 요일별 통계는 이 시간대 기준
    TIMEZONE: str = "UTC"

    RECONCILE_ENABLED: bool = True
    RECONCILE_INTERVAL_MINUTES: int = Field(default=15, ge=1)

    # bearer 토큰 대신 고정 관리자 사용자
    TEST_MODE: bool = False

    class Config:
        env_prefix = "CLUB_"
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_club_settings() -> ClubSettings:
    return ClubSettings()
