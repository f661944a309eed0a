"""
Notification Router

알림 조회/읽음 처리/삭제, 수동 만료 점검, 실시간 WebSocket
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from loguru import logger

from lifecycle.models import NotificationKind
from .dependencies import GymContext, GymServices, get_gym_context, get_services
from .responses import ok

router = APIRouter(prefix="/notification", tags=["Notification"])


@router.get("")
async def list_notifications(
    read: Optional[bool] = Query(None),
    kind: Optional[NotificationKind] = Query(None),
    client_id: Optional[str] = Query(None, alias="clientId"),
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    """알림 목록 (최신순, read / kind / clientId 필터)"""
    notifications = context.scope(await services.channel.list(read=read, kind=kind, client_id=client_id))
    return ok([n.to_api() for n in notifications], count=len(notifications))


@router.get("/unread")
async def list_unread_notifications(
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    notifications = context.scope(await services.channel.list_unread())
    return ok([n.to_api() for n in notifications], count=len(notifications))


@router.put("/mark-all-read")
async def mark_all_notifications_read(services: GymServices = Depends(get_services)):
    count = await services.channel.mark_all_read()
    return ok({"updated": count}, f"{count}건의 알림을 읽음 처리했습니다")


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    context.ensure(
        await services.channel.get(notification_id),
        f"알림을 찾을 수 없습니다: {notification_id}"
    )
    notification = await services.channel.mark_read(notification_id)
    return ok(notification.to_api(), "알림을 읽음 처리했습니다")


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    services: GymServices = Depends(get_services),
    context: GymContext = Depends(get_gym_context)
):
    context.ensure(
        await services.channel.get(notification_id),
        f"알림을 찾을 수 없습니다: {notification_id}"
    )
    await services.channel.delete(notification_id)
    return ok(message="알림이 삭제되었습니다")


@router.post("/verify-expirations")
async def verify_expirations(services: GymServices = Depends(get_services)):
    """만료 점검 즉시 실행 (오류는 그대로 응답)"""
    report = await services.sweeper.run()
    return ok(report.to_api(), "만료 점검이 완료되었습니다")


@router.websocket("/ws")
async def notification_socket(websocket: WebSocket):
    """new_notification 이벤트 실시간 수신"""
    channel = websocket.app.state.services.channel
    await websocket.accept()
    channel.connect(websocket.send_json)
    try:
        while True:
            # 클라이언트 메시지는 사용하지 않음 (연결 유지용)
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("알림 WebSocket 연결 종료")
    finally:
        channel.disconnect(websocket.send_json)
