"""
Supabase 데이터베이스 클라이언트

회원/플랜은 단순 CRUD, 멤버십 갱신은 renew_membership 함수(단일 트랜잭션)로 처리합니다.
스키마: database/migrations/001_gym_core.sql
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client, create_client

from lifecycle.config import supabase_config
from lifecycle.errors import DuplicateKeyError, InternalError, ValidationError

# Postgres 에러 코드
UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"
FOREIGN_KEY_VIOLATION = "23503"

# 회원 요약 임베드 (테넌트 확인 + 이름 표시용)
WITH_CLIENT = "*, client:clients(id, first_name, last_name, gym_id, email)"


# 싱글톤 클라이언트
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Supabase 클라이언트 인스턴스 반환 (싱글톤)
    """
    global _supabase_client
    if _supabase_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_key:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")
        _supabase_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_key
        )
    return _supabase_client


def _value(v: Any) -> Any:
    """datetime/Enum -> JSON 호환 값"""
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, Enum):
        return v.value
    return v


def _serialize(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _value(value) for key, value in data.items()}


class GymDB:
    """Supabase 저장소"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateKeyError(f"{action}: 이미 존재하는 값입니다") from e
            if e.code == INVALID_TEXT_REPRESENTATION:
                raise ValidationError(f"{action}: 잘못된 ID 형식입니다") from e
            if e.code == FOREIGN_KEY_VIOLATION:
                raise ValidationError(f"{action}: 참조 대상이 존재하지 않습니다") from e
            logger.error(f"{action} 오류: {e.message}")
            raise InternalError(f"{action} 중 저장소 오류가 발생했습니다") from e
        except Exception as e:
            logger.error(f"{action} 오류: {e}")
            raise InternalError(f"{action} 중 저장소 오류가 발생했습니다") from e

    @staticmethod
    def _first(result) -> Optional[Dict[str, Any]]:
        return result.data[0] if result.data else None

    # ==================== 회원 ====================

    async def get_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("clients").select("*").eq("id", client_id).limit(1),
            "회원 조회"
        )
        return self._first(result)

    async def get_client_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("clients").select("*").eq("email", email.lower()).limit(1),
            "회원 조회"
        )
        return self._first(result)

    async def insert_client(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self._execute(
            self.client.table("clients").insert(_serialize(data)),
            "회원 저장"
        )
        return self._first(result)

    async def delete_client(self, client_id: str) -> bool:
        """회원 삭제 (멤버십/출입코드/알림은 ON DELETE CASCADE)"""
        result = self._execute(
            self.client.table("clients").delete().eq("id", client_id),
            "회원 삭제"
        )
        return bool(result.data)

    # ==================== 플랜 ====================

    async def get_plan(self, plan_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("plan_templates").select("*").eq("id", plan_id).limit(1),
            "플랜 조회"
        )
        return self._first(result)

    async def list_plans(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        query = self.client.table("plan_templates").select("*")
        if active is not None:
            query = query.eq("active", active)
        result = self._execute(query.order("duration_days"), "플랜 목록 조회")
        return result.data or []

    async def insert_plan(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self._execute(
            self.client.table("plan_templates").insert(_serialize(data)),
            "플랜 저장"
        )
        return self._first(result)

    # ==================== 멤버십 ====================

    async def renew_membership(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """기존 active 멤버십 expired 처리 + 신규 삽입 (단일 트랜잭션)"""
        params = {f"p_{key}": value for key, value in _serialize(data).items()}
        result = self._execute(
            self.client.rpc("renew_membership", params),
            "멤버십 갱신"
        )
        row = result.data
        if isinstance(row, list):
            row = row[0] if row else None
        return row

    async def revert_renewal(self, membership_id: str, previous_id: Optional[str] = None) -> None:
        """renew_membership 되돌리기: 새 멤버십 삭제 + 직전 멤버십 복구 (단일 트랜잭션)"""
        self._execute(
            self.client.rpc("revert_renewal", {
                "p_membership_id": membership_id,
                "p_previous_id": previous_id,
            }),
            "멤버십 갱신 되돌리기"
        )

    async def get_active_membership(self, client_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("memberships").select("*")
            .eq("client_id", client_id)
            .eq("status", "active")
            .limit(1),
            "active 멤버십 조회"
        )
        return self._first(result)

    async def get_membership(self, membership_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("memberships").select(WITH_CLIENT).eq("id", membership_id).limit(1),
            "멤버십 조회"
        )
        return self._first(result)

    async def list_memberships(self, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.client.table("memberships").select(WITH_CLIENT)
        if client_id:
            query = query.eq("client_id", client_id)
        result = self._execute(query.order("created_at", desc=True), "멤버십 목록 조회")
        return result.data or []

    async def list_active_memberships(self, client_id: str, since: datetime) -> List[Dict[str, Any]]:
        result = self._execute(
            self.client.table("memberships").select(WITH_CLIENT)
            .eq("client_id", client_id)
            .eq("status", "active")
            .gte("end_date", since.isoformat())
            .order("start_date", desc=True),
            "활성 멤버십 조회"
        )
        return result.data or []

    async def expire_overdue_memberships(self, cutoff: datetime) -> int:
        """active 이면서 end_date < cutoff 인 멤버십 일괄 expired"""
        result = self._execute(
            self.client.table("memberships").update({"status": "expired"})
            .eq("status", "active")
            .lt("end_date", cutoff.isoformat()),
            "만료 멤버십 처리"
        )
        return len(result.data or [])

    async def transition_membership(
        self,
        membership_id: str,
        from_status: str,
        to_status: str
    ) -> Optional[Dict[str, Any]]:
        """조건부 상태 전이 (현재 상태가 from_status일 때만)"""
        result = self._execute(
            self.client.table("memberships").update({"status": _value(to_status)})
            .eq("id", membership_id)
            .eq("status", _value(from_status)),
            "멤버십 상태 변경"
        )
        return self._first(result)

    async def list_membership_ids_by_status(self, statuses: List[str]) -> List[str]:
        result = self._execute(
            self.client.table("memberships").select("id").in_("status", [_value(s) for s in statuses]),
            "멤버십 상태별 조회"
        )
        return [row["id"] for row in result.data or []]

    async def find_memberships_ending_between(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        result = self._execute(
            self.client.table("memberships").select(WITH_CLIENT)
            .eq("status", "active")
            .gte("end_date", start.isoformat())
            .lte("end_date", end.isoformat())
            .order("end_date"),
            "만료 예정 멤버십 조회"
        )
        return result.data or []

    # ==================== 출입코드 ====================

    async def access_code_exists(self, code: str) -> bool:
        result = self._execute(
            self.client.table("access_codes").select("id").eq("code", code).limit(1),
            "출입코드 중복 확인"
        )
        return bool(result.data)

    async def insert_access_code(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """code 유니크 제약 위반 시 DuplicateKeyError"""
        result = self._execute(
            self.client.table("access_codes").insert(_serialize(data)),
            "출입코드 저장"
        )
        return self._first(result)

    async def get_access_code(self, access_code_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("access_codes").select(WITH_CLIENT).eq("id", access_code_id).limit(1),
            "출입코드 조회"
        )
        return self._first(result)

    async def get_access_code_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("access_codes").select(WITH_CLIENT).eq("code", code).limit(1),
            "출입코드 조회"
        )
        return self._first(result)

    async def list_access_codes(
        self,
        client_id: Optional[str] = None,
        membership_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = self.client.table("access_codes").select(WITH_CLIENT)
        if client_id:
            query = query.eq("client_id", client_id)
        if membership_id:
            query = query.eq("membership_id", membership_id)
        result = self._execute(query.order("created_at", desc=True), "출입코드 목록 조회")
        return result.data or []

    async def deactivate_access_codes_for_membership(self, membership_id: str) -> int:
        result = self._execute(
            self.client.table("access_codes").update({"active": False})
            .eq("membership_id", membership_id)
            .eq("active", True),
            "멤버십 출입코드 비활성화"
        )
        return len(result.data or [])

    async def deactivate_access_codes_expired_before(self, now: datetime) -> int:
        result = self._execute(
            self.client.table("access_codes").update({"active": False})
            .eq("active", True)
            .lt("expires_at", now.isoformat()),
            "만료 출입코드 비활성화"
        )
        return len(result.data or [])

    # ==================== 알림 ====================

    async def insert_notification(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self._execute(
            self.client.table("notifications").insert(_serialize(data)),
            "알림 저장"
        )
        return self._first(result)

    async def get_notification(self, notification_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("notifications").select(WITH_CLIENT).eq("id", notification_id).limit(1),
            "알림 조회"
        )
        return self._first(result)

    async def find_unread_notification(self, membership_id: str, kind: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("notifications").select("id")
            .eq("membership_id", membership_id)
            .eq("kind", _value(kind))
            .eq("read", False)
            .limit(1),
            "미확인 알림 조회"
        )
        return self._first(result)

    async def list_notifications(
        self,
        read: Optional[bool] = None,
        kind: Optional[str] = None,
        client_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = self.client.table("notifications").select(WITH_CLIENT)
        if read is not None:
            query = query.eq("read", read)
        if kind:
            query = query.eq("kind", _value(kind))
        if client_id:
            query = query.eq("client_id", client_id)
        result = self._execute(query.order("created_at", desc=True), "알림 목록 조회")
        return result.data or []

    async def mark_notification_read(self, notification_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table("notifications").update({"read": True}).eq("id", notification_id),
            "알림 읽음 처리"
        )
        return self._first(result)

    async def mark_all_notifications_read(self) -> int:
        result = self._execute(
            self.client.table("notifications").update({"read": True}).eq("read", False),
            "전체 알림 읽음 처리"
        )
        return len(result.data or [])

    async def delete_notification(self, notification_id: str) -> bool:
        result = self._execute(
            self.client.table("notifications").delete().eq("id", notification_id),
            "알림 삭제"
        )
        return bool(result.data)
