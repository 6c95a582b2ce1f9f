"""
Online user directory for the socket gateway.

Maps each connected user to the socket id of their most recent connection.
Mutated only from the gateway's connect and disconnect handlers, before they
await anything.
"""

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class OnlineUserDirectory:
    """userId -> sid, last connection wins."""

    def __init__(self) -> None:
        self._sid_by_user: dict[str, str] = {}

    def register(self, user_id: str, sid: str) -> str | None:
        """
        Record sid as the user's active connection.

        Returns:
            The sid this replaced, if the user was already registered
        """
        previous = self._sid_by_user.get(user_id)
        self._sid_by_user[user_id] = sid
        if previous and previous != sid:
            logger.debug("Directory entry replaced", user_id=user_id, previous_sid=previous, sid=sid)
        return previous

    def unregister(self, user_id: str, sid: str) -> bool:
        """
        Remove the user's entry if it still points at sid.

        A disconnect from an older connection must not remove the entry of a
        newer one.

        Returns:
            True if the entry was removed
        """
        if self._sid_by_user.get(user_id) != sid:
            return False
        del self._sid_by_user[user_id]
        return True

    def sid_for(self, user_id: str) -> str | None:
        return self._sid_by_user.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._sid_by_user

    def online_user_ids(self) -> set[str]:
        return set(self._sid_by_user)

    def __len__(self) -> int:
        return len(self._sid_by_user)
