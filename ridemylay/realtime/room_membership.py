"""
Explicit room membership table.

Mirrors every enter_room/leave_room the gateway performs so "is this user
currently in the chat room" can be answered without reaching into the
Socket.IO adapter.
"""

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class RoomMembership:
    def __init__(self) -> None:
        # room -> sids
        self.room_members: dict[str, set[str]] = {}
        # sid -> rooms
        self.socket_rooms: dict[str, set[str]] = {}

    def join(self, sid: str, room: str) -> bool:
        """Add sid to room. Returns True if it was not already a member."""
        members = self.room_members.setdefault(room, set())
        if sid in members:
            return False
        members.add(sid)
        self.socket_rooms.setdefault(sid, set()).add(room)
        logger.debug("Socket joined room", sid=sid, room=room)
        return True

    def leave(self, sid: str, room: str) -> bool:
        members = self.room_members.get(room)
        if not members or sid not in members:
            return False
        members.discard(sid)
        if not members:
            del self.room_members[room]
        rooms = self.socket_rooms.get(sid)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self.socket_rooms[sid]
        logger.debug("Socket left room", sid=sid, room=room)
        return True

    def leave_all(self, sid: str) -> set[str]:
        """Remove sid from every room. Returns the rooms it was in."""
        rooms = self.socket_rooms.pop(sid, set())
        for room in rooms:
            members = self.room_members.get(room)
            if members is None:
                continue
            members.discard(sid)
            if not members:
                del self.room_members[room]
        return rooms

    def members(self, room: str) -> set[str]:
        return set(self.room_members.get(room, ()))

    def rooms_of(self, sid: str) -> set[str]:
        return set(self.socket_rooms.get(sid, ()))

    def is_member(self, sid: str, room: str) -> bool:
        return sid in self.room_members.get(room, ())
