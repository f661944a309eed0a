"""
멤버십/출입코드/알림 데이터 모델 (Pydantic)

DB 컬럼은 snake_case, API 입출력은 camelCase(clientId, endDate ...)를 사용합니다.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# =============================================
# Enums
# =============================================

class MembershipKind(str, Enum):
    """멤버십 유형"""
    monthly = "monthly"         # 1개월
    quarterly = "quarterly"     # 3개월
    semiannual = "semiannual"   # 6개월
    annual = "annual"           # 12개월


# 유형별 기간 (개월) - 종료일 자동 계산용
KIND_MONTHS = {
    MembershipKind.monthly: 1,
    MembershipKind.quarterly: 3,
    MembershipKind.semiannual: 6,
    MembershipKind.annual: 12,
}


class MembershipStatus(str, Enum):
    """멤버십 상태 (active -> expired / cancelled, 역방향 없음)"""
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    """결제 수단"""
    cash = "cash"
    card = "card"
    transfer = "transfer"
    other = "other"


class NotificationKind(str, Enum):
    """알림 유형"""
    membership_upcoming_expiry = "membership_upcoming_expiry"
    membership_expired = "membership_expired"
    code_upcoming_expiry = "code_upcoming_expiry"
    code_expired = "code_expired"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================
# Stored records
# =============================================

class ClientSummary(CamelModel):
    """조회 시 함께 가져오는 회원 요약 (client:clients(...))"""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gym_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class MembershipSummary(CamelModel):
    """알림에 함께 전달되는 멤버십 요약"""
    id: str
    kind: Optional[MembershipKind] = None
    end_date: Optional[datetime] = None
    status: Optional[MembershipStatus] = None


class Client(CamelModel):
    """회원 (외부 CRUD 대상, 코어에서는 조회만)"""
    id: str
    gym_id: Optional[str] = None
    first_name: str
    last_name: str
    document_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    active: bool = True
    password_hash: Optional[str] = Field(default=None, exclude=True)
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PlanTemplate(CamelModel):
    """멤버십 플랜 템플릿"""
    id: str
    name: str
    kind: MembershipKind
    duration_days: int
    price: float = 0
    active: bool = True


class Membership(CamelModel):
    """멤버십 (회원별 이력, active는 최대 1개)"""
    id: str
    client_id: str
    plan_id: Optional[str] = None
    kind: MembershipKind
    start_date: datetime
    end_date: datetime
    status: MembershipStatus = MembershipStatus.active
    payment_method: Optional[PaymentMethod] = None
    price: float = 0
    created_at: Optional[datetime] = None

    client: Optional[ClientSummary] = None

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.active


class AccessCode(CamelModel):
    """QR 출입코드 (유효성은 연결된 멤버십에서 파생)"""
    id: str
    client_id: str
    membership_id: str
    code: str
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    active: bool = True

    client: Optional[ClientSummary] = None


class Notification(CamelModel):
    """알림"""
    id: str
    client_id: str
    membership_id: Optional[str] = None
    kind: NotificationKind
    title: str
    message: str
    read: bool = False
    due_date: Optional[datetime] = None
    days_remaining: Optional[int] = None
    created_at: Optional[datetime] = None

    client: Optional[ClientSummary] = None
    membership: Optional[MembershipSummary] = None


class AccessGrant(CamelModel):
    """출입코드 검증 성공 결과"""
    client: Client
    membership: Membership
    access_code: AccessCode


class ClientEnrollment(CamelModel):
    """회원 등록 결과 (회원 + 초기 멤버십 + 출입코드)"""
    client: Client
    membership: Membership
    access_code: AccessCode


class SweepReport(CamelModel):
    """만료 점검 결과"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    memberships_expired: int = 0
    codes_expired: int = 0
    codes_orphaned: int = 0
    notifications_created: int = 0


# =============================================
# Request Models
# =============================================

class MembershipCreate(CamelModel):
    """멤버십 생성/갱신 요청"""
    client_id: str = Field(..., min_length=1)
    kind: MembershipKind
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    price: float
    payment_method: Optional[PaymentMethod] = None
    plan_id: Optional[str] = None


class AccessCodeCreate(CamelModel):
    """출입코드 수동 발급 요청"""
    client_id: str = Field(..., min_length=1)
    membership_id: str = Field(..., min_length=1)
    expires_at: Optional[datetime] = None


class AccessCodeValidate(CamelModel):
    """출입코드 검증 요청"""
    code: str = Field(..., min_length=1)

    @field_validator("code")
    @classmethod
    def strip_code(cls, v):
        return v.strip().upper()


class PlanTemplateCreate(CamelModel):
    """플랜 생성 요청"""
    name: str = Field(..., min_length=1, max_length=100)
    kind: MembershipKind
    duration_days: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    active: bool = True


class ClientCreate(CamelModel):
    """회원 등록 요청 (초기 멤버십 + 출입코드 자동 발급)"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gym_id: Optional[str] = None
    document_id: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    phone: Optional[str] = None

    membership_kind: MembershipKind = MembershipKind.monthly
    membership_price: float = Field(default=0, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    plan_id: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower() if v else v

    @model_validator(mode="after")
    def email_requires_password(self):
        if self.email and not self.password:
            raise ValueError("이메일을 입력한 경우 비밀번호도 필요합니다")
        return self


class ClientLogin(CamelModel):
    """회원 자격 확인 요청"""
    email: EmailStr
    password: str = Field(..., min_length=1)
