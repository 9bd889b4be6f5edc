"""
Sessions Module

훈련 세션 일정과 참가 신청
"""

from .router import router as sessions_router
from .service import SessionService

__all__ = ["sessions_router", "SessionService"]
