"""
만료 점검 (Expiration Sweeper)

매일 자정(설정 타임존) 및 서버 시작 시 실행:
    1. 종료일이 지난 active 멤버십 -> expired
    2. expires_at이 지난 활성 출입코드 -> 비활성
    3. expired / cancelled 멤버십에 남아있는 활성 출입코드 -> 비활성
    4. N일 이내 만료 예정 멤버십 알림 (미확인 알림이 있으면 생략)

각 단계는 순서대로 실행되며, 모든 갱신은 조건부라서 중복 실행해도 안전합니다.
"""
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from .access_codes import AccessCodeRegistry
from .config import GymSettings, get_gym_settings
from .dates import days_remaining, ensure_aware, local_day, utcnow
from .errors import DuplicateKeyError
from .ledger import MembershipLedger
from .models import Membership, NotificationKind, SweepReport
from .notifications import NotificationChannel


class ExpirationSweeper:
    """멤버십/출입코드 만료 점검"""

    def __init__(
        self,
        ledger: MembershipLedger,
        registry: AccessCodeRegistry,
        channel: NotificationChannel,
        settings: Optional[GymSettings] = None
    ):
        self.ledger = ledger
        self.registry = registry
        self.channel = channel
        self.settings = settings or get_gym_settings()
        self.last_report: Optional[SweepReport] = None

    async def run(self, now: Optional[datetime] = None) -> SweepReport:
        """1회 점검 (예외는 호출자에게 전달)"""
        now = ensure_aware(now) if now else utcnow()
        report = SweepReport(started_at=now)
        logger.info("=== 만료 점검 시작 ===")

        # 1. 멤버십 만료
        report.memberships_expired = await self.ledger.expire_overdue(now)

        # 2. 유효기간 지난 출입코드
        report.codes_expired = await self.registry.deactivate_expired_by_own_timestamp(now)

        # 3. 비활성 멤버십에 남은 출입코드
        for membership_id in await self.ledger.list_inactive_ids():
            report.codes_orphaned += await self.registry.deactivate_for_membership(membership_id)

        # 4. 만료 예정 알림
        window_end = now + timedelta(days=self.settings.upcoming_window_days)
        for membership in await self.ledger.find_expiring(now, window_end):
            if await self._notify_upcoming(membership, now):
                report.notifications_created += 1

        report.finished_at = utcnow()
        self.last_report = report
        logger.info(
            f"=== 만료 점검 완료: 멤버십 {report.memberships_expired}건 만료, "
            f"출입코드 {report.codes_expired + report.codes_orphaned}건 비활성화, "
            f"알림 {report.notifications_created}건 생성 ==="
        )
        return report

    async def run_safely(self, now: Optional[datetime] = None) -> Optional[SweepReport]:
        """스케줄러용: 오류를 로그로 남기고 전파하지 않음"""
        try:
            return await self.run(now)
        except Exception as e:
            logger.error(f"만료 점검 오류: {e}")
            return None

    async def _notify_upcoming(self, membership: Membership, now: datetime) -> bool:
        kind = NotificationKind.membership_upcoming_expiry
        if await self.channel.has_unread(membership.id, kind):
            return False

        remaining = days_remaining(membership.end_date, now)
        name = (membership.client.full_name if membership.client else "") or "회원"
        end_day = local_day(membership.end_date)

        try:
            notification = await self.channel.record({
                "client_id": membership.client_id,
                "membership_id": membership.id,
                "kind": kind,
                "title": "멤버십 만료 예정",
                "message": f"{name}님의 멤버십이 {remaining}일 후({end_day.isoformat()}) 만료됩니다",
                "due_date": membership.end_date,
                "days_remaining": remaining,
            })
        except DuplicateKeyError:
            # 동시에 실행된 다른 점검이 먼저 기록
            logger.debug(f"만료 예정 알림 중복 생략: membership={membership.id}")
            return False

        await self.channel.publish(notification)
        return True
