"""Gateway to the remote conversation provider (Twilio Conversations)."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.jwt.access_token import AccessToken
from twilio.jwt.access_token.grants import ChatGrant
from twilio.rest import Client

from app.core.config import settings
from app.exceptions.base import BaseAppException
from app.exceptions.gateway import GatewayError, map_provider_error
from app.schemas.conversation import RemoteConversation, RemoteParticipant

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ConversationGateway:
    """Sole caller of the provider's network API.

    Every method is a thin proxy that reshapes the Twilio resource into a
    ``RemoteConversation`` or ``RemoteParticipant``. Failures are translated
    once, here: a provider 404 becomes ``NotFoundError`` and anything else
    becomes ``GatewayError``. There is no retry, throttling or circuit
    breaking; the first failure is the answer.
    """

    def __init__(
        self,
        client: Client | None = None,
        service_sid: str | None = None,
        account_sid: str | None = None,
        auth_token: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        token_ttl: int | None = None,
    ):
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.api_key = api_key or settings.twilio_api_key
        self.api_secret = api_secret or settings.twilio_api_secret
        self.service_sid = service_sid or settings.twilio_conversations_service_sid
        self.token_ttl = token_ttl or settings.provider_token_ttl
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            if not (self.account_sid and self.auth_token):
                raise GatewayError("Conversation provider is not configured")
            self._client = Client(
                self.account_sid,
                self.auth_token,
                http_client=AsyncTwilioHttpClient(),
            )
        return self._client

    def _scope(self):
        """Conversations API root, scoped to the configured service when there is one."""
        v1 = self.client.conversations.v1
        return v1.services(self.service_sid) if self.service_sid else v1

    async def _invoke(self, resource: str, operation: str, call: Callable[[], Awaitable[R]]) -> R:
        try:
            return await call()
        except BaseAppException:
            raise
        except Exception as e:
            error = map_provider_error(e, resource)
            logger.warning("Provider %s failed (%s): %s", operation, error.error_code.value, e)
            raise error from e

    async def create_conversation(self, friendly_name: str | None = None) -> RemoteConversation:
        """Create a conversation at the provider; its SID becomes the conversation id."""
        params: dict[str, Any] = {}
        if friendly_name is not None:
            params["friendly_name"] = friendly_name

        conversation = await self._invoke(
            "Conversation",
            "create_conversation",
            lambda: self._scope().conversations.create_async(**params),
        )
        logger.info("Created provider conversation %s", conversation.sid)
        return self._to_conversation(conversation)

    async def add_participant(
        self,
        conversation_id: str,
        identity: str,
        attributes: dict[str, Any] | None = None,
    ) -> RemoteParticipant:
        """Add a chat participant; attributes travel to the provider as a JSON string."""
        participant = await self._invoke(
            "Conversation",
            "add_participant",
            lambda: self._scope()
            .conversations(conversation_id)
            .participants.create_async(identity=identity, attributes=json.dumps(attributes or {})),
        )
        logger.info("Added participant %s to conversation %s", participant.sid, conversation_id)
        return self._to_participant(participant, conversation_id)

    async def remove_participant(self, conversation_id: str, participant_id: str) -> None:
        await self._invoke(
            "Participant",
            "remove_participant",
            lambda: self._scope()
            .conversations(conversation_id)
            .participants(participant_id)
            .delete_async(),
        )
        logger.info("Removed participant %s from conversation %s", participant_id, conversation_id)

    async def fetch_conversation(self, conversation_id: str) -> RemoteConversation:
        conversation = await self._invoke(
            "Conversation",
            "fetch_conversation",
            lambda: self._scope().conversations(conversation_id).fetch_async(),
        )
        return self._to_conversation(conversation)

    async def list_conversations(self, limit: int | None = None) -> list[RemoteConversation]:
        limit = limit or settings.default_conversation_page_size
        conversations = await self._invoke(
            "Conversation",
            "list_conversations",
            lambda: self._scope().conversations.list_async(limit=limit),
        )
        return [self._to_conversation(c) for c in conversations]

    async def list_conversations_for_identity(
        self, identity: str, limit: int | None = None
    ) -> list[RemoteConversation]:
        """List conversations the identity participates in, filtered by the provider."""
        limit = limit or settings.default_conversation_page_size
        memberships = await self._invoke(
            "Participant conversation",
            "list_conversations_for_identity",
            lambda: self._scope().participant_conversations.list_async(identity=identity, limit=limit),
        )
        return [
            RemoteConversation(
                sid=m.conversation_sid,
                friendly_name=m.conversation_friendly_name,
                created_at=m.conversation_date_created,
                updated_at=m.conversation_date_updated,
            )
            for m in memberships
        ]

    async def list_participants(self, conversation_id: str) -> list[RemoteParticipant]:
        participants = await self._invoke(
            "Conversation",
            "list_participants",
            lambda: self._scope().conversations(conversation_id).participants.list_async(),
        )
        return [self._to_participant(p, conversation_id) for p in participants]

    def generate_token(self, identity: str) -> str:
        """Sign a client access token for one identity. No provider round trip."""
        if not (self.account_sid and self.api_key and self.api_secret):
            raise GatewayError("Provider token signing keys are not configured")

        token = AccessToken(
            self.account_sid,
            self.api_key,
            self.api_secret,
            identity=identity,
            ttl=self.token_ttl,
        )
        token.add_grant(ChatGrant(service_sid=self.service_sid))
        return token.to_jwt()

    async def close(self) -> None:
        if self._client is not None and isinstance(self._client.http_client, AsyncTwilioHttpClient):
            await self._client.http_client.close()

    @staticmethod
    def _to_conversation(instance) -> RemoteConversation:
        return RemoteConversation(
            sid=instance.sid,
            friendly_name=instance.friendly_name,
            created_at=instance.date_created,
            updated_at=instance.date_updated,
        )

    @staticmethod
    def _to_participant(instance, conversation_id: str) -> RemoteParticipant:
        return RemoteParticipant(
            sid=instance.sid,
            identity=instance.identity,
            conversation_sid=getattr(instance, "conversation_sid", None) or conversation_id,
            attributes=_parse_attributes(instance.attributes),
            created_at=instance.date_created,
            updated_at=instance.date_updated,
        )


def _parse_attributes(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-JSON participant attributes: %r", raw)
        return {}
    return value if isinstance(value, dict) else {"value": value}


conversation_gateway = ConversationGateway()
