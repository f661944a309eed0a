"""
QR 출입코드 레지스트리

코드 자체는 난수 토큰이고, 출입 가능 여부는 연결된 멤버십 상태에서 결정됩니다.
"""
import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, List, Optional

from loguru import logger

from .config import GymSettings, get_gym_settings
from .dates import ensure_aware, local_day, utcnow
from .errors import (
    DuplicateKeyError,
    ExhaustedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .models import AccessCode, AccessGrant, Client, Membership, MembershipStatus

if TYPE_CHECKING:
    from database.supabase_client import GymDB


def generate_access_code(nbytes: int = 8) -> str:
    """암호학적 난수 기반 코드 (대문자 hex, nbytes * 2 글자)"""
    return secrets.token_hex(nbytes).upper()


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class AccessCodeRegistry:
    """출입코드 발급/검증/비활성화"""

    def __init__(
        self,
        db: "GymDB",
        settings: Optional[GymSettings] = None,
        token_factory: Callable[[int], str] = generate_access_code
    ):
        self.db = db
        self.settings = settings or get_gym_settings()
        self.token_factory = token_factory

    # =============================================
    # 발급
    # =============================================

    async def mint(
        self,
        client_id: str,
        membership_id: str,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> AccessCode:
        """
        새 출입코드 발급

        중복 코드는 사전 조회와 유니크 제약 두 단계로 걸러내고,
        access_code_max_attempts 회까지 재시도합니다.

        Args:
            expires_at: 미지정 시 멤버십 종료일, 종료일이 없으면 now + default_code_horizon_days

        Raises:
            NotFoundError: 멤버십 없음
            ValidationError: 멤버십이 다른 회원 소유
            ExhaustedError: 재시도 한도 초과
        """
        row = await self.db.get_membership(membership_id)
        if not row:
            raise NotFoundError(f"멤버십을 찾을 수 없습니다: {membership_id}")
        if row.get("client_id") != client_id:
            raise ValidationError("멤버십이 해당 회원의 것이 아닙니다")

        if expires_at is None:
            if row.get("end_date"):
                expires_at = Membership(**row).end_date
            else:
                expires_at = (now or utcnow()) + timedelta(days=self.settings.default_code_horizon_days)

        attempts = self.settings.access_code_max_attempts
        for attempt in range(1, attempts + 1):
            code = self.token_factory(self.settings.access_code_bytes)

            if await self.db.access_code_exists(code):
                logger.warning(f"출입코드 충돌, 재시도 ({attempt}/{attempts})")
                continue

            try:
                created = await self.db.insert_access_code({
                    "client_id": client_id,
                    "membership_id": membership_id,
                    "code": code,
                    "expires_at": ensure_aware(expires_at),
                    "active": True,
                })
            except DuplicateKeyError:
                # 조회와 삽입 사이에 같은 코드가 먼저 저장된 경우
                logger.warning(f"출입코드 유니크 제약 충돌, 재시도 ({attempt}/{attempts})")
                continue

            logger.info(f"출입코드 발급: client={client_id} membership={membership_id}")
            return AccessCode(**created)

        logger.error(f"출입코드 생성 실패: {attempts}회 모두 충돌")
        raise ExhaustedError("고유한 출입코드를 생성하지 못했습니다")

    # =============================================
    # 검증
    # =============================================

    async def validate(self, code: str, now: Optional[datetime] = None) -> AccessGrant:
        """
        출입 시 코드 검증

        판정 순서: 코드 존재 -> 코드 활성 -> 멤버십 active -> 종료일(당일 포함)
        코드 자체의 expires_at은 판정에 사용하지 않습니다.

        Raises:
            NotFoundError: 등록되지 않은 코드
            InvalidStateError: reason = inactive / membership_inactive / expired
        """
        row = await self.db.get_access_code_by_code(normalize_code(code))
        if not row:
            raise NotFoundError("등록되지 않은 출입코드입니다")

        access_code = AccessCode(**row)
        if not access_code.active:
            raise InvalidStateError("inactive", "비활성화된 출입코드입니다")

        membership_row = await self.db.get_membership(access_code.membership_id)
        if not membership_row or membership_row.get("status") != MembershipStatus.active.value:
            raise InvalidStateError("membership_inactive", "유효한 멤버십이 없습니다")

        membership = Membership(**membership_row)
        end_day = local_day(membership.end_date)
        if local_day(now or utcnow()) > end_day:
            raise InvalidStateError("expired", f"멤버십이 {end_day.isoformat()}에 만료되었습니다", expired_on=end_day)

        client_row = await self.db.get_client(access_code.client_id)
        if not client_row:
            raise NotFoundError("회원을 찾을 수 없습니다")

        return AccessGrant(
            client=Client(**client_row),
            membership=membership,
            access_code=access_code
        )

    # =============================================
    # 조회
    # =============================================

    async def get(self, access_code_id: str) -> AccessCode:
        row = await self.db.get_access_code(access_code_id)
        if not row:
            raise NotFoundError(f"출입코드를 찾을 수 없습니다: {access_code_id}")
        return AccessCode(**row)

    async def get_by_code(self, code: str) -> AccessCode:
        """코드 문자열로 조회 (유효성 판정 없음)"""
        row = await self.db.get_access_code_by_code(normalize_code(code))
        if not row:
            raise NotFoundError("등록되지 않은 출입코드입니다")
        return AccessCode(**row)

    async def list(
        self,
        client_id: Optional[str] = None,
        membership_id: Optional[str] = None
    ) -> List[AccessCode]:
        rows = await self.db.list_access_codes(client_id=client_id, membership_id=membership_id)
        return [AccessCode(**row) for row in rows]

    # =============================================
    # 비활성화
    # =============================================

    async def deactivate_for_membership(self, membership_id: str) -> int:
        """멤버십에 연결된 활성 코드 비활성화 (이미 비활성이면 0)"""
        return await self.db.deactivate_access_codes_for_membership(membership_id)

    async def deactivate_expired_by_own_timestamp(self, now: Optional[datetime] = None) -> int:
        """expires_at이 지난 활성 코드 비활성화"""
        count = await self.db.deactivate_access_codes_expired_before(now or utcnow())
        if count:
            logger.info(f"유효기간 지난 출입코드 비활성화: {count}건")
        return count
