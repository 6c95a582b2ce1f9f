"""
Server side of the realtime subsystem: Socket.IO gateway, online user
directory, room membership and the notification bridge.
"""

from .notification_bridge import INTERACTION_VERBS, NotificationBridge
from .online_user_directory import OnlineUserDirectory
from .retention import NotificationRetentionTask
from .room_membership import RoomMembership
from .server import create_socket_server
from .socket_gateway import SessionUser, SocketGateway

__all__ = [
    "INTERACTION_VERBS",
    "NotificationBridge",
    "NotificationRetentionTask",
    "OnlineUserDirectory",
    "RoomMembership",
    "SessionUser",
    "SocketGateway",
    "create_socket_server",
]
