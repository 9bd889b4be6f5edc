"""
Members Module

회원 등록과 조회
"""

from .router import router as members_router
from .service import MemberService

__all__ = ["members_router", "MemberService"]
