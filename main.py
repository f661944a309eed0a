"""
체육관 멤버십 백엔드 메인

실행 모드:
    serve      API 서버 (스케줄러 포함)
    sweep      만료 점검 1회 실행
    scheduler  스케줄러 단독 실행
    migrate    테이블 확인 및 마이그레이션 SQL 출력
"""
import asyncio
import sys

from loguru import logger

from lifecycle.config import get_gym_settings


# 로깅 설정
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO"
)
logger.add(
    "logs/gym_{time:YYYY-MM-DD}.log",
    rotation="1 day",
    retention="30 days",
    level="DEBUG"
)


async def run_sweep() -> bool:
    """만료 점검 1회"""
    from app.gym import build_services

    services = build_services()
    try:
        report = await services.sweeper.run()
    except Exception as e:
        logger.error(f"만료 점검 실패: {e}")
        return False

    print("\n=== 만료 점검 결과 ===")
    print(f"  만료된 멤버십: {report.memberships_expired}건")
    print(f"  유효기간 지난 출입코드: {report.codes_expired}건")
    print(f"  비활성 멤버십 출입코드: {report.codes_orphaned}건")
    print(f"  만료 예정 알림: {report.notifications_created}건")
    return True


async def run_scheduler():
    """스케줄러 단독 실행"""
    from app.gym import build_services
    from scheduler.scheduler import GymScheduler

    services = build_services()
    scheduler = GymScheduler(services.sweeper.run_safely)
    scheduler.start()

    logger.info("스케줄러 모드로 실행 중... (Ctrl+C로 종료)")

    try:
        # 무한 대기
        while True:
            await asyncio.sleep(60)
            status = scheduler.get_status()
            logger.debug(f"스케줄러 상태: {status}")
    except (KeyboardInterrupt, asyncio.CancelledError):
        scheduler.stop()
        logger.info("스케줄러 종료됨")


def main():
    """메인 함수"""
    import argparse

    parser = argparse.ArgumentParser(description="체육관 멤버십 / QR 출입코드 백엔드")
    parser.add_argument(
        "--mode",
        choices=["serve", "sweep", "scheduler", "migrate"],
        default="serve",
        help="실행 모드"
    )
    args = parser.parse_args()

    if args.mode == "serve":
        import uvicorn

        settings = get_gym_settings()
        uvicorn.run("app.server:app", host=settings.host, port=settings.port, log_level="info")

    elif args.mode == "sweep":
        if not asyncio.run(run_sweep()):
            sys.exit(1)

    elif args.mode == "scheduler":
        asyncio.run(run_scheduler())

    elif args.mode == "migrate":
        from database.run_migration import run_migration

        if not run_migration():
            sys.exit(1)


if __name__ == "__main__":
    main()
