"""
Unit tests for ConversationService.

Runs the orchestration against the in-memory provider and the SQLite test
database, checking the call sequences, the local mirror writes and the
response envelope.
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.domains.conversation.mirror import MirrorStore
from app.domains.conversation.service import ConversationService
from app.exceptions.base import ErrorCode
from app.exceptions.gateway import GatewayError
from app.schemas.conversation import CreateConversationRequest


@pytest.fixture
def service(test_db, fake_gateway):
    return ConversationService(test_db, fake_gateway)


class TestCreateConversation:
    """Test cases for ConversationService.create_conversation."""

    @pytest.mark.asyncio
    async def test_create_adds_creator_and_mirrors(self, service, fake_gateway, test_db, test_user):
        envelope = await service.create_conversation(
            CreateConversationRequest(friendly_name="Team Chat"), test_user
        )

        assert envelope.success is True
        assert envelope.error is None
        data = envelope.data
        assert data.conversation.friendly_name == "Team Chat"
        assert len(data.participants) == 1
        assert data.participants[0].identity == test_user.identity
        assert data.participants[0].user_id == test_user.id
        assert data.results is None

        sid = data.conversation.sid
        assert [name for name, _ in fake_gateway.calls] == ["create_conversation", "add_participant"]

        mirror = MirrorStore(test_db)
        assert (await mirror.get_conversation(sid)).friendly_name == "Team Chat"
        mirrored = await mirror.list_participants(sid)
        assert [p.identity for p in mirrored] == [test_user.identity]
        assert mirrored[0].user_id == test_user.id

    @pytest.mark.asyncio
    async def test_create_without_name(self, service, test_user):
        envelope = await service.create_conversation(CreateConversationRequest(), test_user)

        assert envelope.success is True
        assert envelope.data.conversation.friendly_name is None

    @pytest.mark.asyncio
    async def test_create_with_requested_participants(self, service, test_user, test_user_2):
        request = CreateConversationRequest(
            friendly_name="Team Chat",
            participants=[str(test_user_2.id), str(test_user.id)],
        )

        envelope = await service.create_conversation(request, test_user)

        identities = {p.identity for p in envelope.data.participants}
        assert identities == {test_user.identity, test_user_2.identity}
        # The creator is not added twice
        assert [r.user_id for r in envelope.data.results] == [str(test_user_2.id)]

    @pytest.mark.asyncio
    async def test_remote_create_failure_writes_nothing(self, service, fake_gateway, test_db, test_user):
        with patch.object(
            fake_gateway, "create_conversation", AsyncMock(side_effect=GatewayError("Provider down"))
        ):
            envelope = await service.create_conversation(
                CreateConversationRequest(friendly_name="Team Chat"), test_user
            )

        assert envelope.success is False
        assert envelope.error == "Provider down"
        assert envelope.error_code == ErrorCode.GATEWAY_ERROR
        assert envelope.data is None
        assert await MirrorStore(test_db).list_conversations_for_identity(test_user.identity) == []

    @pytest.mark.asyncio
    async def test_creator_add_failure_leaves_remote_conversation(self, service, fake_gateway, test_db, test_user):
        fake_gateway.failing_identities.add(test_user.identity)

        envelope = await service.create_conversation(
            CreateConversationRequest(friendly_name="Team Chat"), test_user
        )

        assert envelope.success is False
        assert envelope.error_code == ErrorCode.GATEWAY_ERROR
        # No compensation: the provider keeps the conversation, the mirror never sees it
        assert len(fake_gateway.conversations) == 1
        sid = next(iter(fake_gateway.conversations))
        assert await MirrorStore(test_db).get_conversation(sid) is None


class TestAddParticipants:
    """Test cases for ConversationService.add_participants."""

    @pytest.mark.asyncio
    async def test_partial_success_is_reported_per_user(
        self, service, fake_gateway, test_user, test_user_2, test_user_3
    ):
        created = await service.create_conversation(CreateConversationRequest(friendly_name="Team"), test_user)
        sid = created.data.conversation.sid
        fake_gateway.failing_identities.add(test_user_3.identity)
        unknown = str(uuid.uuid4())

        envelope = await service.add_participants(
            sid, [str(test_user_2.id), unknown, "not-a-uuid", str(test_user_3.id)]
        )

        assert envelope.success is True
        results = envelope.data.results
        assert [r.user_id for r in results] == [str(test_user_2.id), unknown, "not-a-uuid", str(test_user_3.id)]
        assert [r.success for r in results] == [True, False, False, False]
        assert results[1].error_code == ErrorCode.NOT_FOUND
        assert results[1].error == "User not found"
        assert results[2].error_code == ErrorCode.VALIDATION_ERROR
        assert results[3].error_code == ErrorCode.GATEWAY_ERROR

        assert [p.identity for p in envelope.data.participants] == [test_user_2.identity]
        assert results[0].participant.conversation_id == sid

    @pytest.mark.asyncio
    async def test_added_participants_are_mirrored(self, service, test_db, test_user, test_user_2):
        created = await service.create_conversation(CreateConversationRequest(), test_user)
        sid = created.data.conversation.sid

        await service.add_participants(sid, [str(test_user_2.id)])

        mirrored = await MirrorStore(test_db).list_participants(sid)
        by_identity = {p.identity: p for p in mirrored}
        assert set(by_identity) == {test_user.identity, test_user_2.identity}
        assert by_identity[test_user_2.identity].user_id == test_user_2.id

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_added_once(self, service, fake_gateway, test_user, test_user_2):
        created = await service.create_conversation(CreateConversationRequest(), test_user)
        sid = created.data.conversation.sid

        envelope = await service.add_participants(sid, [str(test_user_2.id), str(test_user_2.id)])

        assert len(envelope.data.results) == 1
        assert sum(1 for name, _ in fake_gateway.calls if name == "add_participant") == 2

    @pytest.mark.asyncio
    async def test_unknown_conversation_fails_every_item(self, service, test_user_2):
        envelope = await service.add_participants("CH_missing", [str(test_user_2.id)])

        assert envelope.success is True
        assert envelope.data.participants == []
        assert envelope.data.results[0].error_code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_mirror_failure_fails_the_batch(self, service, test_user, test_user_2):
        created = await service.create_conversation(CreateConversationRequest(), test_user)
        sid = created.data.conversation.sid

        with patch.object(
            service.mirror, "save_participants", AsyncMock(side_effect=SQLAlchemyError("disk full"))
        ):
            envelope = await service.add_participants(sid, [str(test_user_2.id)])

        assert envelope.success is False
        assert envelope.error_code == ErrorCode.INTERNAL_ERROR
        assert "disk full" in envelope.error


class TestReads:
    """Test cases for the read operations."""

    @pytest.mark.asyncio
    async def test_get_conversation_matches_created(self, service, test_user, test_user_2):
        created = await service.create_conversation(
            CreateConversationRequest(friendly_name="Team Chat", participants=[str(test_user_2.id)]),
            test_user,
        )
        sid = created.data.conversation.sid

        envelope = await service.get_conversation(sid)

        assert envelope.success is True
        assert envelope.data.conversation.sid == sid
        assert envelope.data.conversation.friendly_name == "Team Chat"
        assert {p.user_id for p in envelope.data.participants} == {test_user.id, test_user_2.id}

    @pytest.mark.asyncio
    async def test_get_unknown_conversation(self, service):
        envelope = await service.get_conversation("CH_missing")

        assert envelope.success is False
        assert envelope.error_code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_conversations_filters_by_identity(self, service, test_user, test_user_2):
        mine = await service.create_conversation(CreateConversationRequest(friendly_name="Mine"), test_user)
        await service.create_conversation(CreateConversationRequest(friendly_name="Theirs"), test_user_2)

        envelope = await service.list_conversations(test_user)

        assert envelope.success is True
        assert [c.sid for c in envelope.data.conversations] == [mine.data.conversation.sid]

    @pytest.mark.asyncio
    async def test_list_conversations_empty(self, service, test_user):
        envelope = await service.list_conversations(test_user)

        assert envelope.success is True
        assert envelope.error is None
        assert envelope.data.conversations == []

    @pytest.mark.asyncio
    async def test_list_participants(self, service, test_user, test_user_2):
        created = await service.create_conversation(
            CreateConversationRequest(participants=[str(test_user_2.id)]), test_user
        )
        sid = created.data.conversation.sid

        envelope = await service.list_participants(sid)

        assert len(envelope.data.participants) == 2
        assert all(p.conversation_id == sid for p in envelope.data.participants)


class TestRemoveParticipant:
    """Test cases for ConversationService.remove_participant."""

    @pytest.mark.asyncio
    async def test_remove_deletes_remote_and_mirror(self, service, fake_gateway, test_db, test_user, test_user_2):
        created = await service.create_conversation(
            CreateConversationRequest(participants=[str(test_user_2.id)]), test_user
        )
        sid = created.data.conversation.sid
        target = next(p for p in created.data.participants if p.user_id == test_user_2.id)

        envelope = await service.remove_participant(sid, target.id)

        assert envelope.success is True
        assert envelope.data is None
        assert target.id not in fake_gateway.members[sid]
        assert await MirrorStore(test_db).get_participant(target.id) is None

    @pytest.mark.asyncio
    async def test_remove_unknown_participant_is_not_found(self, service, test_user):
        created = await service.create_conversation(CreateConversationRequest(), test_user)

        envelope = await service.remove_participant(created.data.conversation.sid, "MB_missing")

        assert envelope.success is False
        assert envelope.error_code == ErrorCode.NOT_FOUND
        assert envelope.error == "Participant not found"


class TestProviderToken:
    """Test cases for provider token issuance."""

    def test_token_for_user_identity(self, service, fake_gateway, test_user):
        with patch.object(fake_gateway, "generate_token", return_value="provider-token") as mock_generate:
            assert service.get_provider_token(test_user) == "provider-token"

        mock_generate.assert_called_once_with(test_user.identity)
