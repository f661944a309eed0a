"""
멤버십/출입코드 도메인 예외

HTTP 경계(app/server.py)에서 status_code 기준으로 공통 응답 포맷으로 변환됩니다.
"""
from datetime import date
from typing import Any, Dict, Optional


class GymError(Exception):
    """도메인 예외 기본 클래스"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(GymError):
    """입력값 누락/형식 오류"""
    status_code = 400


class NotFoundError(GymError):
    """참조 대상 없음"""
    status_code = 404


class ConflictError(GymError):
    """허용되지 않는 상태 전이 또는 중복"""
    status_code = 409


class DuplicateKeyError(ConflictError):
    """유니크 제약 위반 (Postgres 23505)"""


class InvalidStateError(GymError):
    """출입코드 검증 실패 (reason: inactive / membership_inactive / expired)"""

    status_code = 400

    def __init__(self, reason: str, message: str, expired_on: Optional[date] = None):
        super().__init__(message)
        self.reason = reason
        self.expired_on = expired_on

    def to_dict(self) -> Dict[str, Any]:
        data = {"message": self.message, "reason": self.reason}
        if self.expired_on:
            data["expiredOn"] = self.expired_on.isoformat()
        return data


class ExhaustedError(GymError):
    """출입코드 생성 재시도 한도 초과"""
    status_code = 500


class InternalError(GymError):
    """저장소 등 예기치 못한 오류"""
    status_code = 500


class AuthenticationError(GymError):
    """이메일/비밀번호 불일치"""
    status_code = 401


class ForbiddenError(GymError):
    """비활성 계정"""
    status_code = 403
