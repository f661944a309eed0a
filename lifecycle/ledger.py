"""
멤버십 원장

- 회원당 active 멤버십은 최대 1개 (갱신 = 기존 active 만료 + 신규 삽입, 단일 트랜잭션)
- 상태 전이는 active -> expired / active -> cancelled 만 허용
"""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from loguru import logger

from .dates import ensure_aware, start_of_day, utcnow
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Membership, MembershipKind, MembershipStatus, PaymentMethod

if TYPE_CHECKING:
    from database.supabase_client import GymDB


class MembershipLedger:
    """멤버십 생성/갱신/만료/취소"""

    def __init__(self, db: "GymDB"):
        self.db = db

    # =============================================
    # 생성 / 갱신
    # =============================================

    @staticmethod
    def check_terms(
        kind: Union[MembershipKind, str],
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        price: Optional[float],
        payment_method: Optional[Union[PaymentMethod, str]] = None
    ) -> Tuple[MembershipKind, datetime, datetime, Optional[PaymentMethod]]:
        """
        멤버십 조건 검사 (저장소 조회 없음)

        Returns:
            (kind, start_date, end_date, payment_method) 정규화 값
        """
        if end_date is None:
            raise ValidationError("종료일(endDate)은 필수입니다")
        if price is None or price < 0:
            raise ValidationError("금액(price)은 0 이상이어야 합니다")

        try:
            kind = MembershipKind(kind)
            payment_method = PaymentMethod(payment_method) if payment_method else None
        except ValueError as e:
            raise ValidationError(f"잘못된 값입니다: {e}") from e

        start_date = ensure_aware(start_date) if start_date else utcnow()
        end_date = ensure_aware(end_date)
        if start_date > end_date:
            raise ValidationError("시작일은 종료일보다 늦을 수 없습니다")
        return kind, start_date, end_date, payment_method

    async def create_or_renew(
        self,
        client_id: str,
        kind: Union[MembershipKind, str],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        price: Optional[float] = None,
        payment_method: Optional[Union[PaymentMethod, str]] = None,
        plan_id: Optional[str] = None
    ) -> Membership:
        """
        신규 멤버십 등록

        기존 active 멤버십이 있으면 expired로 바꾸고 새 멤버십을 active로 삽입합니다.
        두 작업은 DB 함수 renew_membership 안에서 함께 커밋됩니다.

        Raises:
            ValidationError: 종료일 누락, 존재하지 않는 회원, 음수 금액, 시작일 > 종료일
            NotFoundError: plan_id가 주어졌지만 플랜이 없음
        """
        if not client_id:
            raise ValidationError("clientId는 필수입니다")
        kind, start_date, end_date, payment_method = self.check_terms(
            kind, start_date, end_date, price, payment_method
        )

        client = await self.db.get_client(client_id)
        if not client:
            raise ValidationError(f"존재하지 않는 회원입니다: {client_id}")

        if plan_id and not await self.db.get_plan(plan_id):
            raise NotFoundError(f"플랜을 찾을 수 없습니다: {plan_id}")

        row = await self.db.renew_membership({
            "client_id": client_id,
            "plan_id": plan_id,
            "kind": kind,
            "start_date": start_date,
            "end_date": end_date,
            "price": price,
            "payment_method": payment_method,
        })

        membership = Membership(**row)
        logger.info(
            f"멤버십 등록: client={client_id} membership={membership.id} "
            f"({kind.value}, ~{end_date.date()})"
        )
        return membership

    # =============================================
    # 조회
    # =============================================

    async def get(self, membership_id: str) -> Membership:
        row = await self.db.get_membership(membership_id)
        if not row:
            raise NotFoundError(f"멤버십을 찾을 수 없습니다: {membership_id}")
        return Membership(**row)

    async def list(self, client_id: Optional[str] = None) -> List[Membership]:
        """최신 등록순"""
        rows = await self.db.list_memberships(client_id)
        return [Membership(**row) for row in rows]

    async def list_active(self, client_id: str, now: Optional[datetime] = None) -> List[Membership]:
        """
        현재 유효한 멤버십

        스케줄러가 아직 만료 처리하지 않았더라도 종료일이 오늘 이전이면 제외합니다.
        """
        since = start_of_day(now or utcnow())
        rows = await self.db.list_active_memberships(client_id, since)
        return [Membership(**row) for row in rows]

    async def list_inactive_ids(self) -> List[str]:
        """expired / cancelled 멤버십 ID"""
        return await self.db.list_membership_ids_by_status(
            [MembershipStatus.expired, MembershipStatus.cancelled]
        )

    async def find_expiring(self, start: datetime, end: datetime) -> List[Membership]:
        """종료일이 [start, end] 범위인 active 멤버십 (회원 정보 포함)"""
        rows = await self.db.find_memberships_ending_between(start, end)
        return [Membership(**row) for row in rows]

    # =============================================
    # 상태 전이
    # =============================================

    async def expire_overdue(self, now: Optional[datetime] = None) -> int:
        """
        종료일이 지난 active 멤버십을 expired로 (반복 호출해도 결과 동일)

        기준은 오늘 00:00 (설정 타임존): 종료일 당일에는 만료 처리하지 않습니다.
        """
        cutoff = start_of_day(now or utcnow())
        count = await self.db.expire_overdue_memberships(cutoff)
        if count:
            logger.info(f"만료 처리된 멤버십: {count}건")
        return count

    async def cancel(self, membership_id: str) -> Membership:
        """
        멤버십 취소 (active -> cancelled)

        Raises:
            NotFoundError: 멤버십 없음
            ConflictError: active 상태가 아님
        """
        current = await self.db.get_membership(membership_id)
        if not current:
            raise NotFoundError(f"멤버십을 찾을 수 없습니다: {membership_id}")
        if current.get("status") != MembershipStatus.active.value:
            raise ConflictError(f"active 상태의 멤버십만 취소할 수 있습니다 (현재: {current.get('status')})")

        row = await self.db.transition_membership(
            membership_id, MembershipStatus.active, MembershipStatus.cancelled
        )
        if not row:
            # 조회 이후 다른 요청이 먼저 상태를 바꾼 경우
            raise ConflictError("멤버십 상태가 이미 변경되었습니다")

        logger.info(f"멤버십 취소: {membership_id}")
        return Membership(**{**current, **row})

    async def revert_renewal(self, membership_id: str, previous_id: Optional[str] = None) -> None:
        """
        create_or_renew 되돌리기 (후속 단계 실패 시)

        새 멤버십을 삭제하고, 갱신으로 expired 된 직전 멤버십을 active로 복구합니다.
        두 작업은 DB 함수 revert_renewal 안에서 함께 커밋됩니다.
        """
        await self.db.revert_renewal(membership_id, previous_id)
        logger.warning(f"멤버십 등록 취소: membership={membership_id} 복구={previous_id or '-'}")

    async def current_active_id(self, client_id: str) -> Optional[str]:
        """종료일과 무관하게 status가 active인 멤버십 ID (갱신 직전 상태 기록용)"""
        row = await self.db.get_active_membership(client_id)
        return row["id"] if row else None
