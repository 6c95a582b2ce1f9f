"""
User reference lookups and presence timestamps.
"""

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ...models import User
from ...models.base import new_id, utcnow
from ...structured_logging.enhanced_logging_config import get_logger
from .base import BaseRepository

logger = get_logger(__name__)


class UserRepository(BaseRepository):
    table = "users"

    async def get_user(self, user_id: str) -> User | None:
        try:
            async with self._session_maker() as session:
                return await session.get(User, user_id)
        except (SQLAlchemyError, OSError) as e:
            self._fail("get_user", e, user_id=user_id)

    async def create_user(self, username: str, user_id: str | None = None) -> User:
        """Insert a reference row (used by seeding and tests)."""
        try:
            async with self._session_maker() as session:
                user = User(id=user_id or new_id(), username=username, last_active=utcnow())
                session.add(user)
                await session.commit()
                return user
        except (SQLAlchemyError, OSError) as e:
            self._fail("create_user", e, username=username)

    async def touch_user(self, user_id: str) -> None:
        """Record activity now; called on connect and disconnect."""
        try:
            async with self._session_maker() as session:
                await session.execute(update(User).where(User.id == user_id).values(last_active=utcnow()))
                await session.commit()
                logger.debug("User last_active updated", user_id=user_id)
        except (SQLAlchemyError, OSError) as e:
            self._fail("touch_user", e, user_id=user_id)
