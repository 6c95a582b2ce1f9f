"""
Chat, participant and bet ownership lookups.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ...models import Bet, Chat, ChatParticipant
from ...models.base import new_id
from .base import BaseRepository


class ChatRepository(BaseRepository):
    table = "chats"

    async def get_chat(self, chat_id: str) -> Chat | None:
        try:
            async with self._session_maker() as session:
                return await session.get(Chat, chat_id)
        except (SQLAlchemyError, OSError) as e:
            self._fail("get_chat", e, chat_id=chat_id)

    async def get_participant_ids(self, chat_id: str) -> list[str]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(ChatParticipant.user_id)
                    .where(ChatParticipant.chat_id == chat_id)
                    .order_by(ChatParticipant.user_id)
                )
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            self._fail("get_participant_ids", e, chat_id=chat_id)

    async def create_chat(
        self,
        participant_ids: Iterable[str],
        name: str | None = None,
        is_group_chat: bool = False,
        chat_id: str | None = None,
    ) -> Chat:
        try:
            async with self._session_maker() as session:
                chat = Chat(id=chat_id or new_id(), name=name, is_group_chat=is_group_chat)
                session.add(chat)
                await session.flush()
                session.add_all(ChatParticipant(chat_id=chat.id, user_id=uid) for uid in set(participant_ids))
                await session.commit()
                return chat
        except (SQLAlchemyError, OSError) as e:
            self._fail("create_chat", e)


class BetRepository(BaseRepository):
    table = "bets"

    async def get_bet_owner(self, bet_id: str) -> str | None:
        try:
            async with self._session_maker() as session:
                bet = await session.get(Bet, bet_id)
                return bet.user_id if bet else None
        except (SQLAlchemyError, OSError) as e:
            self._fail("get_bet_owner", e, bet_id=bet_id)

    async def create_bet(self, owner_id: str, bet_id: str | None = None) -> Bet:
        try:
            async with self._session_maker() as session:
                bet = Bet(id=bet_id or new_id(), user_id=owner_id)
                session.add(bet)
                await session.commit()
                return bet
        except (SQLAlchemyError, OSError) as e:
            self._fail("create_bet", e, owner_id=owner_id)
