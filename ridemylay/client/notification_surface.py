"""
Native notification surface.

Raises an OS/browser-level notification for an admitted notification when
permission has been granted and the user is not already looking at the
conversation or bet it points to.
"""

from typing import Protocol

from ..schemas.realtime import EntityType, NotificationPayload
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

_ROUTES = {
    EntityType.CHAT: "/messages/{}",
    EntityType.BET: "/bets/{}",
    EntityType.USER: "/profile/{}",
}


class Notifier(Protocol):
    """Platform hook that actually shows a native notification."""

    def show(self, title: str, body: str, link: str, tag: str) -> None: ...


def deep_link(notification: NotificationPayload) -> str:
    """Click-through route for a notification's subject."""
    return _ROUTES[notification.entity_type].format(notification.entity_id)


class NotificationSurface:
    """
    Decides whether a notification is shown natively.

    Attributes:
        permission: "granted", "denied" or "default", as reported by the platform
        focused_view: Route the user is currently looking at, if any
    """

    def __init__(self, notifier: Notifier | None = None, permission: str = "default", title: str = "RideMyLay"):
        self.notifier = notifier
        self.permission = permission
        self.focused_view: str | None = None
        self.title = title

    def set_focused_view(self, route: str | None) -> None:
        self.focused_view = route

    def present(self, notification: NotificationPayload) -> bool:
        """Show the notification natively. Returns True if it was shown."""
        if self.notifier is None or self.permission != "granted":
            return False
        link = deep_link(notification)
        if link == self.focused_view:
            return False
        try:
            self.notifier.show(self.title, notification.content, link, notification.id)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: platform notifier must not break delivery
            logger.warning("Native notification failed", notification_id=notification.id, error=str(e))
            return False
        return True
