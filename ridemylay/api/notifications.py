"""
Notification REST endpoints.

Listing, counting, marking read and deleting a user's notifications.
Read-state changes made here are pushed to the user's other connections
through the notification bridge, same as the socket read_notification path.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Request, status

from ..dependencies import BridgeDep, CurrentUserId, StoreDep
from ..exceptions import PersistenceError
from ..persistence import RealtimeStore
from ..realtime import NotificationBridge
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

notification_router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _service_unavailable(error: PersistenceError) -> HTTPException:
    logger.warning("Notification request failed", operation=error.operation)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Notifications are temporarily unavailable",
    )


def _page_size(request: Request) -> int:
    config = getattr(request.app.state, "notification_config", None)
    return config.page_size if config is not None else 30


@notification_router.get("/")
async def list_notifications(
    request: Request,
    user_id: str = CurrentUserId,
    store: RealtimeStore = StoreDep,
) -> list[dict[str, Any]]:
    """Latest notifications, newest first."""
    try:
        notifications = await store.notifications.list_notifications(user_id, limit=_page_size(request))
    except PersistenceError as e:
        raise _service_unavailable(e) from e
    return [n.to_payload() for n in notifications]


@notification_router.get("/unread-count")
async def unread_count(user_id: str = CurrentUserId, store: RealtimeStore = StoreDep) -> dict[str, int]:
    try:
        count = await store.notifications.count_unread(user_id)
    except PersistenceError as e:
        raise _service_unavailable(e) from e
    return {"count": count}


@notification_router.put("/read-all")
async def mark_all_read(
    user_id: str = CurrentUserId,
    store: RealtimeStore = StoreDep,
    bridge: NotificationBridge | None = BridgeDep,
) -> dict[str, Any]:
    try:
        updated = await store.notifications.mark_all_read(user_id)
    except PersistenceError as e:
        raise _service_unavailable(e) from e
    if bridge is not None:
        await bridge.push_read_state(user_id)
    logger.info("All notifications marked read", user_id=user_id, updated=updated)
    return {"message": "All notifications marked as read", "updated": updated}


@notification_router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: str = CurrentUserId,
    store: RealtimeStore = StoreDep,
    bridge: NotificationBridge | None = BridgeDep,
) -> dict[str, Any]:
    try:
        notification = await store.notifications.mark_read(notification_id, user_id)
    except PersistenceError as e:
        raise _service_unavailable(e) from e
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if bridge is not None:
        await bridge.push_read_state(user_id, notification)
    return notification.to_payload()


@notification_router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user_id: str = CurrentUserId,
    store: RealtimeStore = StoreDep,
    bridge: NotificationBridge | None = BridgeDep,
) -> dict[str, str]:
    try:
        deleted = await store.notifications.delete_notification(notification_id, user_id)
    except PersistenceError as e:
        raise _service_unavailable(e) from e
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if bridge is not None:
        await bridge.push_read_state(user_id)
    return {"message": "Notification deleted"}
