"""
In-memory GymDB 대역

Supabase 저장소와 같은 메서드/반환 형태를 제공하고,
DB 제약(코드 유니크, 회원당 active 1개, 미확인 만료 예정 알림 1개)을 그대로 흉내냅니다.
"""

import asyncio
import itertools
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import uuid4

from database.supabase_client import _serialize, _value
from lifecycle.dates import utcnow
from lifecycle.errors import DuplicateKeyError, ValidationError

CLIENT_SUMMARY_FIELDS = ("id", "first_name", "last_name", "gym_id", "email")


def _dt(value: str) -> datetime:
    return datetime.fromisoformat(value)


class FakeGymDB:
    """테스트용 저장소"""

    def __init__(self):
        self.clients: Dict[str, Dict[str, Any]] = {}
        self.plans: Dict[str, Dict[str, Any]] = {}
        self.memberships: Dict[str, Dict[str, Any]] = {}
        self.access_codes: Dict[str, Dict[str, Any]] = {}
        self.notifications: Dict[str, Dict[str, Any]] = {}
        self._seq = itertools.count(1)

    # =============================================
    # 내부 유틸
    # =============================================

    def _new(self, table: Dict[str, Dict[str, Any]], data: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": str(uuid4()), "created_at": utcnow().isoformat()}
        row.update(_serialize(data))
        row["_seq"] = next(self._seq)
        table[row["id"]] = row
        return dict(row)

    def _with_client(self, row: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(row)
        client = self.clients.get(row.get("client_id"))
        out["client"] = {k: client.get(k) for k in CLIENT_SUMMARY_FIELDS} if client else None
        return out

    @staticmethod
    def _newest_first(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(rows, key=lambda r: r["_seq"], reverse=True)

    # =============================================
    # 시드 데이터 (동기)
    # =============================================

    def add_client(self, first_name: str = "홍", last_name: str = "길동", gym_id: Optional[str] = None, **extra) -> Dict[str, Any]:
        return self._new(self.clients, {
            "first_name": first_name,
            "last_name": last_name,
            "gym_id": gym_id,
            "active": True,
            **extra,
        })

    def add_plan(self, name: str = "1개월", kind: str = "monthly", duration_days: int = 30, price: float = 50000, active: bool = True) -> Dict[str, Any]:
        return self._new(self.plans, {
            "name": name,
            "kind": kind,
            "duration_days": duration_days,
            "price": price,
            "active": active,
        })

    def add_membership(
        self,
        client_id: str,
        end_date: datetime,
        start_date: Optional[datetime] = None,
        status: str = "active",
        kind: str = "monthly",
        price: float = 50000
    ) -> Dict[str, Any]:
        if status == "active" and self._active_for(client_id):
            raise DuplicateKeyError("active membership already exists")
        return self._new(self.memberships, {
            "client_id": client_id,
            "plan_id": None,
            "kind": kind,
            "start_date": start_date or end_date - timedelta(days=30),
            "end_date": end_date,
            "status": status,
            "payment_method": "cash",
            "price": price,
        })

    def add_access_code(
        self,
        client_id: str,
        membership_id: str,
        code: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        active: bool = True
    ) -> Dict[str, Any]:
        return self._new(self.access_codes, {
            "client_id": client_id,
            "membership_id": membership_id,
            "code": code or uuid4().hex[:16].upper(),
            "expires_at": expires_at,
            "active": active,
        })

    def _active_for(self, client_id: str) -> List[Dict[str, Any]]:
        return [
            m for m in self.memberships.values()
            if m["client_id"] == client_id and m["status"] == "active"
        ]

    # =============================================
    # 회원 / 플랜
    # =============================================

    async def get_client(self, client_id: str) -> Optional[Dict[str, Any]]:
        row = self.clients.get(client_id)
        return dict(row) if row else None

    async def get_client_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for row in self.clients.values():
            if (row.get("email") or "").lower() == email.lower():
                return dict(row)
        return None

    async def insert_client(self, data: Dict[str, Any]) -> Dict[str, Any]:
        email = data.get("email")
        if email and any((c.get("email") or "").lower() == email.lower() for c in self.clients.values()):
            raise DuplicateKeyError("회원 저장: 이미 존재하는 값입니다")
        return self._new(self.clients, data)

    async def delete_client(self, client_id: str) -> bool:
        if self.clients.pop(client_id, None) is None:
            return False
        # ON DELETE CASCADE
        for table in (self.memberships, self.access_codes, self.notifications):
            for key in [k for k, v in table.items() if v.get("client_id") == client_id]:
                del table[key]
        return True

    async def get_plan(self, plan_id: str) -> Optional[Dict[str, Any]]:
        row = self.plans.get(plan_id)
        return dict(row) if row else None

    async def list_plans(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        rows = [dict(p) for p in self.plans.values() if active is None or p["active"] == active]
        return sorted(rows, key=lambda p: p["duration_days"])

    async def insert_plan(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._new(self.plans, data)

    # =============================================
    # 멤버십
    # =============================================

    async def renew_membership(self, data: Dict[str, Any]) -> Dict[str, Any]:
        await asyncio.sleep(0)
        # 이 아래는 중단점 없이 실행 (DB 트랜잭션 대역)
        if data["client_id"] not in self.clients:
            raise ValidationError("멤버십 갱신: 참조 대상이 존재하지 않습니다")
        for membership in self._active_for(data["client_id"]):
            membership["status"] = "expired"
        return self._new(self.memberships, {**data, "status": "active"})

    async def revert_renewal(self, membership_id: str, previous_id: Optional[str] = None) -> None:
        row = self.memberships.pop(membership_id, None)
        if not row or not previous_id:
            return
        previous = self.memberships.get(previous_id)
        if previous and previous["status"] == "expired" and not self._active_for(row["client_id"]):
            previous["status"] = "active"

    async def get_active_membership(self, client_id: str) -> Optional[Dict[str, Any]]:
        rows = self._active_for(client_id)
        return dict(rows[0]) if rows else None

    async def get_membership(self, membership_id: str) -> Optional[Dict[str, Any]]:
        row = self.memberships.get(membership_id)
        return self._with_client(row) if row else None

    async def list_memberships(self, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = [m for m in self.memberships.values() if not client_id or m["client_id"] == client_id]
        return [self._with_client(m) for m in self._newest_first(rows)]

    async def list_active_memberships(self, client_id: str, since: datetime) -> List[Dict[str, Any]]:
        rows = [m for m in self._active_for(client_id) if _dt(m["end_date"]) >= since]
        rows.sort(key=lambda m: _dt(m["start_date"]), reverse=True)
        return [self._with_client(m) for m in rows]

    async def expire_overdue_memberships(self, cutoff: datetime) -> int:
        count = 0
        for membership in self.memberships.values():
            if membership["status"] == "active" and _dt(membership["end_date"]) < cutoff:
                membership["status"] = "expired"
                count += 1
        return count

    async def transition_membership(self, membership_id: str, from_status, to_status) -> Optional[Dict[str, Any]]:
        row = self.memberships.get(membership_id)
        if not row or row["status"] != _value(from_status):
            return None
        row["status"] = _value(to_status)
        return dict(row)

    async def list_membership_ids_by_status(self, statuses) -> List[str]:
        wanted = {_value(s) for s in statuses}
        return [m["id"] for m in self.memberships.values() if m["status"] in wanted]

    async def find_memberships_ending_between(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        rows = [
            m for m in self.memberships.values()
            if m["status"] == "active" and start <= _dt(m["end_date"]) <= end
        ]
        rows.sort(key=lambda m: _dt(m["end_date"]))
        return [self._with_client(m) for m in rows]

    # =============================================
    # 출입코드
    # =============================================

    async def access_code_exists(self, code: str) -> bool:
        await asyncio.sleep(0)
        return any(c["code"] == code for c in self.access_codes.values())

    async def insert_access_code(self, data: Dict[str, Any]) -> Dict[str, Any]:
        await asyncio.sleep(0)
        if any(c["code"] == data["code"] for c in self.access_codes.values()):
            raise DuplicateKeyError("출입코드 저장: 이미 존재하는 값입니다")
        return self._new(self.access_codes, data)

    async def get_access_code(self, access_code_id: str) -> Optional[Dict[str, Any]]:
        row = self.access_codes.get(access_code_id)
        return self._with_client(row) if row else None

    async def get_access_code_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        for row in self.access_codes.values():
            if row["code"] == code:
                return self._with_client(row)
        return None

    async def list_access_codes(self, client_id: Optional[str] = None, membership_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = [
            c for c in self.access_codes.values()
            if (not client_id or c["client_id"] == client_id)
            and (not membership_id or c["membership_id"] == membership_id)
        ]
        return [self._with_client(c) for c in self._newest_first(rows)]

    async def deactivate_access_codes_for_membership(self, membership_id: str) -> int:
        count = 0
        for row in self.access_codes.values():
            if row["membership_id"] == membership_id and row["active"]:
                row["active"] = False
                count += 1
        return count

    async def deactivate_access_codes_expired_before(self, now: datetime) -> int:
        count = 0
        for row in self.access_codes.values():
            if row["active"] and row.get("expires_at") and _dt(row["expires_at"]) < now:
                row["active"] = False
                count += 1
        return count

    # =============================================
    # 알림
    # =============================================

    async def insert_notification(self, data: Dict[str, Any]) -> Dict[str, Any]:
        row = _serialize(data)
        if row.get("kind") == "membership_upcoming_expiry" and not row.get("read"):
            if await self.find_unread_notification(row.get("membership_id"), row["kind"]):
                raise DuplicateKeyError("알림 저장: 이미 존재하는 값입니다")
        return self._new(self.notifications, row)

    async def get_notification(self, notification_id: str) -> Optional[Dict[str, Any]]:
        row = self.notifications.get(notification_id)
        return self._with_client(row) if row else None

    async def find_unread_notification(self, membership_id: str, kind) -> Optional[Dict[str, Any]]:
        for row in self.notifications.values():
            if row.get("membership_id") == membership_id and row["kind"] == _value(kind) and not row["read"]:
                return {"id": row["id"]}
        return None

    async def list_notifications(self, read: Optional[bool] = None, kind=None, client_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = [
            n for n in self.notifications.values()
            if (read is None or n["read"] == read)
            and (not kind or n["kind"] == _value(kind))
            and (not client_id or n["client_id"] == client_id)
        ]
        return [self._with_client(n) for n in self._newest_first(rows)]

    async def mark_notification_read(self, notification_id: str) -> Optional[Dict[str, Any]]:
        row = self.notifications.get(notification_id)
        if not row:
            return None
        row["read"] = True
        return dict(row)

    async def mark_all_notifications_read(self) -> int:
        count = 0
        for row in self.notifications.values():
            if not row["read"]:
                row["read"] = True
                count += 1
        return count

    async def delete_notification(self, notification_id: str) -> bool:
        return self.notifications.pop(notification_id, None) is not None
