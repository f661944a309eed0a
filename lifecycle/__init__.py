"""
Gym Membership Lifecycle

멤버십 수명주기 + QR 출입코드 코어
- 멤버십 원장 (생성/갱신/만료/취소)
- 출입코드 발급/검증
- 만료 점검 + 알림 발행
"""

from .errors import (
    GymError,
    ValidationError,
    NotFoundError,
    ConflictError,
    DuplicateKeyError,
    InvalidStateError,
    ExhaustedError,
    InternalError,
    AuthenticationError,
    ForbiddenError
)
from .ledger import MembershipLedger
from .access_codes import AccessCodeRegistry, generate_access_code
from .notifications import NotificationChannel
from .sweeper import ExpirationSweeper
from .onboarding import ClientOnboarding

__all__ = [
    "GymError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DuplicateKeyError",
    "InvalidStateError",
    "ExhaustedError",
    "InternalError",
    "AuthenticationError",
    "ForbiddenError",
    "MembershipLedger",
    "AccessCodeRegistry",
    "generate_access_code",
    "NotificationChannel",
    "ExpirationSweeper",
    "ClientOnboarding"
]
