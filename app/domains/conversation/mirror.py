"""Local mirror of provider conversations and participants."""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.conversation import RemoteConversation, RemoteParticipant
from models import Conversation, Participant, User

logger = logging.getLogger(__name__)


class MirrorStore:
    """Create/read/delete over mirrored conversation and participant rows.

    Rows are keyed by provider SIDs. Writes are upserts so that mirroring the
    same provider object twice is harmless.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        result = await self.db.execute(select(Conversation).where(Conversation.id == conversation_id))
        return result.scalar_one_or_none()

    async def save_conversation(self, remote: RemoteConversation) -> Conversation:
        conversation = await self._ensure_conversation(remote.sid, remote.friendly_name)
        await self._commit()
        return conversation

    async def delete_conversation(self, conversation_id: str) -> bool:
        conversation = await self.get_conversation(conversation_id)
        if not conversation:
            return False
        await self.db.delete(conversation)
        await self._commit()
        return True

    async def get_participant(self, participant_id: str) -> Optional[Participant]:
        result = await self.db.execute(select(Participant).where(Participant.id == participant_id))
        return result.scalar_one_or_none()

    async def save_participants(
        self, conversation_id: str, members: Iterable[tuple[RemoteParticipant, User]]
    ) -> list[Participant]:
        """Mirror provider participants, creating the conversation row if it is missing."""
        members = list(members)
        if not members:
            return []

        await self._ensure_conversation(conversation_id)
        saved = []
        for remote, user in members:
            participant = await self.get_participant(remote.sid)
            if participant is None:
                participant = Participant(id=remote.sid, conversation_id=conversation_id)
                self.db.add(participant)
            # Identity comes from the user row so it always matches user.identity
            participant.identity = user.identity
            participant.user_id = user.id
            saved.append(participant)
        await self._commit()
        return saved

    async def delete_participant(self, participant_id: str) -> bool:
        participant = await self.get_participant(participant_id)
        if not participant:
            return False
        await self.db.delete(participant)
        await self._commit()
        return True

    async def list_participants(self, conversation_id: str) -> list[Participant]:
        result = await self.db.execute(
            select(Participant)
            .where(Participant.conversation_id == conversation_id)
            .order_by(Participant.created_at)
        )
        return list(result.scalars().all())

    async def list_conversations_for_identity(self, identity: str) -> list[Conversation]:
        result = await self.db.execute(
            select(Conversation)
            .join(Participant, Participant.conversation_id == Conversation.id)
            .where(Participant.identity == identity)
            .order_by(Conversation.created_at.desc())
            .distinct()
        )
        return list(result.scalars().all())

    async def _ensure_conversation(
        self, conversation_id: str, friendly_name: str | None = None
    ) -> Conversation:
        conversation = await self.get_conversation(conversation_id)
        if conversation is None:
            conversation = Conversation(id=conversation_id, friendly_name=friendly_name)
            self.db.add(conversation)
        elif friendly_name is not None:
            conversation.friendly_name = friendly_name
        return conversation

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Mirror write failed: %s", str(e))
            raise e
