"""Conversation service layer: orchestrates the provider gateway and the local mirror."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.conversation.mirror import MirrorStore
from app.domains.user.service import UserService
from app.exceptions.base import BaseAppException, ErrorCode
from app.schemas.base import ApiEnvelope
from app.schemas.conversation import (
    ConversationDetailData,
    ConversationListData,
    ConversationResponse,
    CreateConversationRequest,
    ParticipantListData,
    ParticipantResponse,
    ParticipantResult,
    RemoteConversation,
    RemoteParticipant,
)
from app.services.conversation_gateway import ConversationGateway
from models import User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConversationService:
    """Service class for conversation and participant operations.

    The provider is the source of truth: every read goes to the gateway. The
    local mirror is written after successful provider writes and pruned after
    removals. Nothing is compensated when a later step fails; a conversation
    created remotely stays there even if adding the creator or mirroring it
    fails afterwards.

    Public methods never raise for operational failures. They return an
    ``ApiEnvelope`` whose ``error_code`` carries the failure kind.
    """

    def __init__(self, db: AsyncSession, gateway: ConversationGateway):
        """Initialize conversation service.

        Args:
            db: Async database session for user lookups and mirror writes.
            gateway: Provider gateway used for every remote call.
        """
        self.db = db
        self.gateway = gateway
        self.users = UserService(db)
        self.mirror = MirrorStore(db)

    async def list_conversations(self, user: User) -> ApiEnvelope[ConversationListData]:
        """List conversations the user participates in, filtered by identity at the provider."""

        async def run() -> ConversationListData:
            remote = await self.gateway.list_conversations_for_identity(user.identity)
            return ConversationListData(conversations=[self._conversation(c) for c in remote])

        return await self._envelope("list_conversations", run)

    async def get_conversation(self, conversation_id: str) -> ApiEnvelope[ConversationDetailData]:
        """Fetch a conversation and its participants from the provider."""

        async def run() -> ConversationDetailData:
            remote, members = await asyncio.gather(
                self.gateway.fetch_conversation(conversation_id),
                self.gateway.list_participants(conversation_id),
            )
            return ConversationDetailData(
                conversation=self._conversation(remote),
                participants=await self._participants(members),
            )

        return await self._envelope("get_conversation", run)

    async def create_conversation(
        self, request: CreateConversationRequest, user: User
    ) -> ApiEnvelope[ConversationDetailData]:
        """Create a conversation, join the creator, mirror both, then add requested users.

        Sequence: provider create, provider add creator, mirror write, batch
        add of ``request.participants``. If the provider create fails nothing
        is written anywhere.
        """

        async def run() -> ConversationDetailData:
            remote = await self.gateway.create_conversation(request.friendly_name)
            if remote.friendly_name is None and request.friendly_name is not None:
                remote = remote.model_copy(update={"friendly_name": request.friendly_name})

            creator = await self.gateway.add_participant(
                remote.sid, user.identity, {"userId": str(user.id)}
            )
            await self.mirror.save_conversation(remote)
            await self.mirror.save_participants(remote.sid, [(creator, user)])

            participants = [self._participant(creator, user.id)]
            others = [uid for uid in request.participants if uid != str(user.id)]
            results = None
            if others:
                results = await self._add_users(remote.sid, others)
                participants.extend(r.participant for r in results if r.success)

            logger.info("User %s created conversation %s", user.id, remote.sid)
            return ConversationDetailData(
                conversation=self._conversation(remote),
                participants=participants,
                results=results,
            )

        return await self._envelope("create_conversation", run)

    async def list_participants(self, conversation_id: str) -> ApiEnvelope[ParticipantListData]:
        async def run() -> ParticipantListData:
            members = await self.gateway.list_participants(conversation_id)
            return ParticipantListData(participants=await self._participants(members))

        return await self._envelope("list_participants", run)

    async def add_participants(
        self, conversation_id: str, user_ids: list[str]
    ) -> ApiEnvelope[ParticipantListData]:
        """Add many users to a conversation, reporting an outcome per user.

        A user id that is malformed, unknown locally, or rejected by the
        provider yields a failed ``ParticipantResult``; the other users are
        still added. The envelope only fails when the batch itself cannot
        run, for example when mirroring the successful additions fails.
        """

        async def run() -> ParticipantListData:
            results = await self._add_users(conversation_id, user_ids)
            return ParticipantListData(
                participants=[r.participant for r in results if r.success],
                results=results,
            )

        return await self._envelope("add_participants", run)

    async def remove_participant(self, conversation_id: str, participant_id: str) -> ApiEnvelope[None]:
        """Remove a participant at the provider, then drop its mirror row.

        An unknown participant surfaces as ``NOT_FOUND``.
        """

        async def run() -> None:
            await self.gateway.remove_participant(conversation_id, participant_id)
            if not await self.mirror.delete_participant(participant_id):
                logger.debug("Participant %s had no mirror row", participant_id)

        return await self._envelope("remove_participant", run)

    def get_provider_token(self, user: User) -> str:
        return self.gateway.generate_token(user.identity)

    async def _add_users(self, conversation_id: str, user_ids: list[str]) -> list[ParticipantResult]:
        requested = list(dict.fromkeys(user_ids))
        parsed: dict[str, Optional[UUID]] = {}
        for raw in requested:
            try:
                parsed[raw] = UUID(str(raw))
            except ValueError:
                parsed[raw] = None

        # All DB reads happen before the concurrent provider calls
        users = await self.users.get_users_by_ids(uid for uid in parsed.values() if uid)

        results: dict[str, ParticipantResult] = {}
        pending: list[tuple[str, User]] = []
        for raw in requested:
            uid = parsed[raw]
            if uid is None:
                results[raw] = _failed(raw, "Invalid user id", ErrorCode.VALIDATION_ERROR)
            elif uid not in users:
                results[raw] = _failed(raw, "User not found", ErrorCode.NOT_FOUND)
            else:
                pending.append((raw, users[uid]))

        outcomes = await asyncio.gather(
            *(
                self.gateway.add_participant(conversation_id, user.identity, {"userId": str(user.id)})
                for _, user in pending
            ),
            return_exceptions=True,
        )

        added: list[tuple[RemoteParticipant, User]] = []
        for (raw, user), outcome in zip(pending, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseAppException):
                results[raw] = _failed(raw, outcome.message, outcome.error_code)
            elif isinstance(outcome, Exception):
                logger.error("Unexpected failure adding user %s: %s", raw, str(outcome))
                results[raw] = _failed(raw, str(outcome), ErrorCode.INTERNAL_ERROR)
            else:
                added.append((outcome, user))
                results[raw] = ParticipantResult(
                    user_id=raw, success=True, participant=self._participant(outcome, user.id)
                )

        await self.mirror.save_participants(conversation_id, added)

        failed = sum(1 for r in results.values() if not r.success)
        if failed:
            logger.info(
                "Added %d of %d users to conversation %s", len(added), len(requested), conversation_id
            )
        return [results[raw] for raw in requested]

    async def _participants(self, members: list[RemoteParticipant]) -> list[ParticipantResponse]:
        users = await self.users.get_users_by_identities(m.identity for m in members)
        return [
            self._participant(m, users[m.identity].id if m.identity in users else None)
            for m in members
        ]

    @staticmethod
    def _conversation(remote: RemoteConversation) -> ConversationResponse:
        return ConversationResponse(
            sid=remote.sid,
            friendly_name=remote.friendly_name,
            created_at=remote.created_at,
            updated_at=remote.updated_at,
        )

    @staticmethod
    def _participant(remote: RemoteParticipant, user_id: Optional[UUID]) -> ParticipantResponse:
        return ParticipantResponse(
            id=remote.sid,
            identity=remote.identity,
            conversation_id=remote.conversation_sid,
            user_id=user_id,
            attributes=remote.attributes,
            created_at=remote.created_at,
            updated_at=remote.updated_at,
        )

    async def _envelope(self, operation: str, call: Callable[[], Awaitable[T]]) -> ApiEnvelope[T]:
        try:
            return ApiEnvelope.ok(await call())
        except BaseAppException as e:
            logger.warning("%s failed (%s): %s", operation, e.error_code.value, e.message)
            return ApiEnvelope.fail(e.message, e.error_code)
        except Exception as e:
            logger.exception("%s failed unexpectedly", operation)
            return ApiEnvelope.fail(str(e) or type(e).__name__, ErrorCode.INTERNAL_ERROR)


def _failed(user_id: str, error: str, error_code: ErrorCode) -> ParticipantResult:
    return ParticipantResult(user_id=user_id, success=False, error=error, error_code=error_code)
