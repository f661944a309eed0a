"""
Gym API Dependencies

서비스 조립 및 테넌트(체육관) 컨텍스트
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, TypeVar

from fastapi import Header, Request

from lifecycle.access_codes import AccessCodeRegistry
from lifecycle.config import GymSettings, get_gym_settings
from lifecycle.errors import NotFoundError
from lifecycle.ledger import MembershipLedger
from lifecycle.models import ClientSummary
from lifecycle.notifications import NotificationChannel
from lifecycle.onboarding import ClientOnboarding
from lifecycle.sweeper import ExpirationSweeper

T = TypeVar("T")


@dataclass
class GymServices:
    """요청 처리에 필요한 서비스 묶음 (app.state.services)"""
    db: object
    ledger: MembershipLedger
    registry: AccessCodeRegistry
    channel: NotificationChannel
    sweeper: ExpirationSweeper
    onboarding: ClientOnboarding


def build_services(db=None, settings: Optional[GymSettings] = None) -> GymServices:
    """
    서비스 조립

    Args:
        db: 저장소 (기본: Supabase GymDB)
    """
    if db is None:
        from database.supabase_client import GymDB
        db = GymDB()

    settings = settings or get_gym_settings()
    ledger = MembershipLedger(db)
    registry = AccessCodeRegistry(db, settings=settings)
    channel = NotificationChannel(db)
    sweeper = ExpirationSweeper(ledger, registry, channel, settings=settings)
    onboarding = ClientOnboarding(db, ledger, registry)

    return GymServices(
        db=db,
        ledger=ledger,
        registry=registry,
        channel=channel,
        sweeper=sweeper,
        onboarding=onboarding
    )


def get_services(request: Request) -> GymServices:
    return request.app.state.services


class GymContext:
    """
    호출자 체육관 컨텍스트

    X-Gym-Id 헤더가 있으면 다른 체육관 회원의 데이터는 존재하지 않는 것으로 취급합니다.
    """

    def __init__(self, gym_id: Optional[str] = None):
        self.gym_id = gym_id

    def owns(self, client: Optional[ClientSummary]) -> bool:
        if not self.gym_id:
            return True
        return client is not None and client.gym_id == self.gym_id

    def ensure(self, record: T, message: str = "데이터를 찾을 수 없습니다") -> T:
        """record.client가 다른 체육관이면 NotFoundError"""
        if not self.owns(getattr(record, "client", None)):
            raise NotFoundError(message)
        return record

    def scope(self, records: Iterable[T]) -> List[T]:
        return [r for r in records if self.owns(getattr(r, "client", None))]


async def get_gym_context(
    x_gym_id: Optional[str] = Header(default=None, alias="X-Gym-Id")
) -> GymContext:
    return GymContext(gym_id=x_gym_id or None)
