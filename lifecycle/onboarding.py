"""
회원 등록

회원 저장 -> 초기 멤버십 개설 -> 출입코드 발급
중간 단계가 실패하면 앞 단계에서 저장한 내용을 되돌립니다.
"""
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional, Tuple, Union

from loguru import logger

from .access_codes import AccessCodeRegistry
from .dates import add_months, ensure_aware, utcnow
from .errors import AuthenticationError, ForbiddenError, NotFoundError
from .ledger import MembershipLedger
from .models import (
    KIND_MONTHS,
    AccessCode,
    Client,
    ClientCreate,
    ClientEnrollment,
    Membership,
    MembershipKind,
    PaymentMethod,
    PlanTemplate,
)
from .passwords import hash_password, verify_password

if TYPE_CHECKING:
    from database.supabase_client import GymDB


class ClientOnboarding:
    """신규 회원 등록 / 멤버십 개설"""

    def __init__(self, db: "GymDB", ledger: MembershipLedger, registry: AccessCodeRegistry):
        self.db = db
        self.ledger = ledger
        self.registry = registry

    async def open_membership(
        self,
        client_id: str,
        kind: Union[MembershipKind, str],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        price: Optional[float] = None,
        payment_method: Optional[Union[PaymentMethod, str]] = None,
        plan_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Membership, AccessCode]:
        """
        멤버십 등록/갱신 + 출입코드 발급

        코드 발급이 실패하면 새 멤버십을 지우고 직전 active 멤버십을 복구한 뒤 예외를 다시 올립니다.
        """
        previous_id = await self.ledger.current_active_id(client_id)
        membership = await self.ledger.create_or_renew(
            client_id=client_id,
            kind=kind,
            start_date=start_date,
            end_date=end_date,
            price=price,
            payment_method=payment_method,
            plan_id=plan_id
        )
        try:
            access_code = await self.registry.mint(client_id, membership.id, now=now)
        except Exception:
            await self.ledger.revert_renewal(membership.id, previous_id)
            raise
        return membership, access_code

    async def onboard(self, request: ClientCreate, now: Optional[datetime] = None) -> ClientEnrollment:
        """
        회원 등록

        - 비밀번호는 bcrypt 해시로만 저장
        - plan_id가 있으면 플랜의 유형/기간/금액을 기본값으로 사용
        - 종료일 미지정 시 플랜 기간(일) 또는 유형별 개월 수로 계산
        - 멤버십 조건은 회원 저장 전에 검사하고, 이후 단계가 실패하면 회원을 삭제
        """
        plan: Optional[PlanTemplate] = None
        if request.plan_id:
            plan_row = await self.db.get_plan(request.plan_id)
            if not plan_row:
                raise NotFoundError(f"플랜을 찾을 수 없습니다: {request.plan_id}")
            plan = PlanTemplate(**plan_row)

        kind = plan.kind if plan else request.membership_kind
        price = request.membership_price
        if plan and not price:
            price = plan.price

        start_date = ensure_aware(request.start_date) if request.start_date else (now or utcnow())
        if request.end_date:
            end_date = ensure_aware(request.end_date)
        elif plan:
            end_date = start_date + timedelta(days=plan.duration_days)
        else:
            end_date = add_months(start_date, KIND_MONTHS[kind])

        kind, start_date, end_date, payment_method = self.ledger.check_terms(
            kind, start_date, end_date, price, request.payment_method
        )

        client_row = await self.db.insert_client({
            "gym_id": request.gym_id,
            "first_name": request.first_name,
            "last_name": request.last_name,
            "document_id": request.document_id,
            "email": request.email,
            "phone": request.phone,
            "password_hash": hash_password(request.password) if request.password else None,
            "active": True,
        })
        client = Client(**client_row)

        try:
            membership, access_code = await self.open_membership(
                client.id,
                kind,
                start_date=start_date,
                end_date=end_date,
                price=price,
                payment_method=payment_method,
                plan_id=plan.id if plan else None,
                now=now
            )
        except Exception:
            logger.warning(f"회원 등록 실패, 저장된 회원 삭제: {client.id}")
            await self.db.delete_client(client.id)
            raise

        logger.info(f"회원 등록: {client.full_name} ({client.id})")
        return ClientEnrollment(client=client, membership=membership, access_code=access_code)

    async def get_client(self, client_id: str) -> Client:
        row = await self.db.get_client(client_id)
        if not row:
            raise NotFoundError(f"회원을 찾을 수 없습니다: {client_id}")
        return Client(**row)

    async def authenticate(self, email: str, password: str) -> Client:
        """
        이메일/비밀번호 확인 (토큰 발급 없음)

        Raises:
            AuthenticationError: 회원 없음, 비밀번호 미설정 또는 불일치
            ForbiddenError: 비활성 회원
        """
        row = await self.db.get_client_by_email(email)
        if not row or not verify_password(password, row.get("password_hash") or ""):
            raise AuthenticationError("이메일 또는 비밀번호가 올바르지 않습니다")

        client = Client(**row)
        if not client.active:
            raise ForbiddenError("비활성화된 계정입니다")
        return client
