"""
Attendance Module

체크인 / 체크아웃 엔진과 API
"""

from .router import router as attendance_router
from .service import AttendanceService

__all__ = ["attendance_router", "AttendanceService"]
