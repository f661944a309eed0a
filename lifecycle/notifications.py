"""
알림 채널

알림은 DB에 기록(append-only, 읽음 처리만 변경)하고,
접속 중인 구독자(WebSocket)에게 실시간으로 전달합니다.
전달은 best-effort: 실패한 구독자는 목록에서 제거되고 재전송하지 않습니다.
"""
import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Union

from loguru import logger

from .errors import NotFoundError
from .models import ClientSummary, MembershipSummary, Notification, NotificationKind

if TYPE_CHECKING:
    from database.supabase_client import GymDB

Subscriber = Callable[[Dict[str, Any]], Awaitable[Any]]

NEW_NOTIFICATION_EVENT = "new_notification"


class NotificationChannel:
    """알림 기록 + 실시간 발행"""

    def __init__(self, db: "GymDB"):
        self.db = db
        self._subscribers: List[Subscriber] = []

    # =============================================
    # 구독
    # =============================================

    def connect(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)
            logger.debug(f"알림 구독 연결 (현재 {len(self._subscribers)}개)")

    def disconnect(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            logger.debug(f"알림 구독 해제 (현재 {len(self._subscribers)}개)")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # =============================================
    # 기록 / 발행
    # =============================================

    async def record(self, data: Dict[str, Any]) -> Notification:
        """알림 저장 후 client / membership 관계를 채워서 반환"""
        row = await self.db.insert_notification({"read": False, **data})
        notification = Notification(**row)

        client = await self.db.get_client(notification.client_id)
        if client:
            notification.client = ClientSummary(**client)
        if notification.membership_id:
            membership = await self.db.get_membership(notification.membership_id)
            if membership:
                notification.membership = MembershipSummary(**membership)
        return notification

    async def publish(self, notification: Notification) -> int:
        """
        현재 연결된 구독자에게 new_notification 이벤트 전달

        Returns:
            전달 성공한 구독자 수
        """
        if not self._subscribers:
            return 0

        payload = {
            "event": NEW_NOTIFICATION_EVENT,
            "success": True,
            "data": notification.to_api(),
        }
        subscribers = list(self._subscribers)
        results = await asyncio.gather(
            *(subscriber(payload) for subscriber in subscribers),
            return_exceptions=True
        )

        delivered = 0
        for subscriber, result in zip(subscribers, results):
            if isinstance(result, BaseException):
                logger.warning(f"알림 전달 실패, 구독 해제: {result}")
                self.disconnect(subscriber)
            else:
                delivered += 1
        return delivered

    # =============================================
    # 조회 / 상태 변경
    # =============================================

    async def has_unread(self, membership_id: str, kind: Union[NotificationKind, str]) -> bool:
        return await self.db.find_unread_notification(membership_id, kind) is not None

    async def list(
        self,
        read: Optional[bool] = None,
        kind: Optional[Union[NotificationKind, str]] = None,
        client_id: Optional[str] = None
    ) -> List[Notification]:
        """최신순"""
        rows = await self.db.list_notifications(read=read, kind=kind, client_id=client_id)
        return [Notification(**row) for row in rows]

    async def list_unread(self, client_id: Optional[str] = None) -> List[Notification]:
        return await self.list(read=False, client_id=client_id)

    async def get(self, notification_id: str) -> Notification:
        row = await self.db.get_notification(notification_id)
        if not row:
            raise NotFoundError(f"알림을 찾을 수 없습니다: {notification_id}")
        return Notification(**row)

    async def mark_read(self, notification_id: str) -> Notification:
        row = await self.db.mark_notification_read(notification_id)
        if not row:
            raise NotFoundError(f"알림을 찾을 수 없습니다: {notification_id}")
        return Notification(**row)

    async def mark_all_read(self) -> int:
        count = await self.db.mark_all_notifications_read()
        logger.info(f"전체 알림 읽음 처리: {count}건")
        return count

    async def delete(self, notification_id: str) -> None:
        if not await self.db.delete_notification(notification_id):
            raise NotFoundError(f"알림을 찾을 수 없습니다: {notification_id}")
