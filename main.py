"""
클럽 회원 관리 서비스 메인
"""
import asyncio
import sys
from loguru import logger

import uvicorn

from app.club.config import get_club_settings
from app.club.dependencies import get_reconciler
from scheduler.scheduler import ClubScheduler


# 로깅 설정
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO"
)
logger.add(
    "logs/club_{time:YYYY-MM-DD}.log",
    rotation="1 day",
    retention="30 days",
    level="DEBUG"
)


async def reconcile_once():
    report = await get_reconciler().reconcile()
    print("\n=== 정합성 점검 결과 ===")
    print(f"  점검한 프로필: {report.profiles_scanned}개")
    print(f"  정리한 포인터: {report.dangling_pointers_cleared}개")
    print(f"  종료한 출결 기록: {report.stray_records_closed}개")


async def serve(host: str, port: int):
    settings = get_club_settings()
    scheduler = None

    if settings.RECONCILE_ENABLED:
        scheduler = ClubScheduler(reconcile_func=lambda: get_reconciler().reconcile())
        scheduler.start()
    else:
        logger.info("정합성 점검 스케줄러 비활성화")

    server = uvicorn.Server(uvicorn.Config("app.server:app", host=host, port=port, log_level="info"))
    try:
        await server.serve()
    finally:
        if scheduler:
            scheduler.stop()


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="클럽 회원 관리 서비스")
    parser.add_argument(
        "--mode",
        choices=["serve", "reconcile"],
        default="serve",
        help="serve: API + 스케줄러, reconcile: 정합성 점검 1회"
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if args.mode == "serve":
        await serve(args.host, args.port)
    elif args.mode == "reconcile":
        await reconcile_once()


if __name__ == "__main__":
    asyncio.run(main())
