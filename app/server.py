"""
Gym Membership Backend - FastAPI 웹 서버
멤버십 수명주기 + QR 출입코드 + 만료 알림

데이터 소스: Supabase (전용)
스케줄러: 매일 자정 만료 점검 (GYM_TIMEZONE 기준)
"""
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifecycle.config import get_gym_settings, scheduler_config
from lifecycle.errors import GymError, InvalidStateError

# Gym 모듈
from app.gym import build_services, gym_router
from app.gym.responses import fail
from scheduler.scheduler import GymScheduler

settings = get_gym_settings()

# FastAPI 앱
app = FastAPI(
    title="Gym Membership Backend",
    description="멤버십 / QR 출입코드 / 만료 알림 API",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Gym 라우터 등록
app.include_router(gym_router, prefix="/api")


def _stack(exc: Exception):
    if not settings.debug:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


# ==================== Exception Handlers ====================

@app.exception_handler(GymError)
async def gym_error_handler(request: Request, exc: GymError) -> JSONResponse:
    """도메인 예외 -> 공통 응답 포맷"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 오류: {exc.message}")

    extra = {}
    if isinstance(exc, InvalidStateError):
        extra = {k: v for k, v in exc.to_dict().items() if k != "message"}
    return fail(exc.message, exc.status_code, stack=_stack(exc), **extra)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 형식 오류 -> 400"""
    first_error = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []) if loc != "body")
    msg = first_error.get("msg", "잘못된 요청입니다")
    message = f"잘못된 입력값 '{field}': {msg}" if field else msg
    return fail(message, 400)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return fail(str(exc.detail), exc.status_code)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"처리되지 않은 예외: {request.method} {request.url.path}")
    return fail("서버 내부 오류가 발생했습니다", 500, stack=_stack(exc))


# ==================== Lifecycle ====================

@app.on_event("startup")
async def startup_event():
    """서버 시작 시 서비스 조립 및 스케줄러 시작"""
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings=settings)

    app.state.scheduler = None
    if scheduler_config.scheduler_enabled:
        scheduler = GymScheduler(app.state.services.sweeper.run_safely, timezone=settings.timezone)
        scheduler.start()
        app.state.scheduler = scheduler

    logger.info("✅ 서버 시작 완료 - Supabase 데이터 소스 사용 중")


@app.on_event("shutdown")
async def shutdown_event():
    """서버 종료 시 정리"""
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler:
        scheduler.stop()
    logger.info("서버 종료됨")


@app.get("/health")
async def health(request: Request):
    """상태 확인"""
    services = getattr(request.app.state, "services", None)
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "success": True,
        "message": "ok",
        "data": {
            "status": "ok",
            "timezone": settings.timezone,
            "subscribers": services.channel.subscriber_count if services else 0,
            "scheduler": scheduler.get_status() if scheduler else None,
        }
    }


# ==================== 서버 실행 ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
