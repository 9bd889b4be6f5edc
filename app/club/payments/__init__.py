"""
Payments Module

회원권 결제 기록
"""

from .router import router as payments_router
from .service import PaymentService

__all__ = ["payments_router", "PaymentService"]
