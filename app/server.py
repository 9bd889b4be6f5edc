"""
Club Membership Service - FastAPI web server

데이터 소스: Supabase
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from dotenv import load_dotenv

from app.club import club_router
from app.club.errors import ClubError

# .env 파일에서 SUPABASE_*, CLUB_* 로드
load_dotenv()

app = FastAPI(
    title="Club Membership Service",
    description="훈련 클럽의 출결, 결제, 회원권 관리",
    version="1.0.0"
)

app.include_router(club_router, prefix="/api")


@app.exception_handler(ClubError)
async def club_error_handler(request: Request, exc: ClubError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind}
    )


@app.on_event("startup")
async def startup_event():
    logger.info("서버 시작 - Supabase 데이터 소스")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("서버 종료")


@app.get("/health")
async def health():
    return {"status": "ok"}
