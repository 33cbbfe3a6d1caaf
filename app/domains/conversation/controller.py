"""Conversation API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Path, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_conversation_gateway, get_current_user, get_db, validate_token
from app.domains.conversation.service import ConversationService
from app.exceptions.base import ERROR_STATUS_CODES
from app.schemas.base import ApiEnvelope
from app.schemas.conversation import (
    AddParticipantsRequest,
    ConversationDetailData,
    ConversationListData,
    CreateConversationRequest,
    ParticipantListData,
)
from app.services.conversation_gateway import ConversationGateway
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


def get_conversation_service(
    db: AsyncSession = Depends(get_db),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
) -> ConversationService:
    return ConversationService(db, gateway)


def respond(envelope: ApiEnvelope, success_status: int = status.HTTP_200_OK):
    """Return successful envelopes as-is and failed ones with a status matching the error kind."""
    if envelope.success:
        if success_status == status.HTTP_200_OK:
            return envelope
        return JSONResponse(
            status_code=success_status,
            content=envelope.model_dump(mode="json", by_alias=True),
        )
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[envelope.error_code],
        content=envelope.model_dump(mode="json", by_alias=True),
    )


@router.post("/token", response_model=str)
async def get_provider_token(
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    """Issue a provider access token for the current user's identity."""
    return service.get_provider_token(current_user)


@router.get("", response_model=ApiEnvelope[ConversationListData])
async def get_conversations(
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    """List the conversations the current user participates in."""
    return respond(await service.list_conversations(current_user))


@router.post("", response_model=ApiEnvelope[ConversationDetailData], status_code=201)
async def create_conversation(
    create_data: CreateConversationRequest = Body(...),
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    """Create a conversation with the current user as its first participant."""
    envelope = await service.create_conversation(create_data, current_user)
    return respond(envelope, success_status=status.HTTP_201_CREATED)


@router.get("/{conversation_sid}", response_model=ApiEnvelope[ConversationDetailData])
async def get_conversation(
    conversation_sid: str = Path(..., description="Conversation SID"),
    service: ConversationService = Depends(get_conversation_service),
):
    """Get a conversation with its participants."""
    return respond(await service.get_conversation(conversation_sid))


@router.get("/{conversation_sid}/participants", response_model=ApiEnvelope[ParticipantListData])
async def get_participants(
    conversation_sid: str = Path(..., description="Conversation SID"),
    service: ConversationService = Depends(get_conversation_service),
):
    """List participants of a conversation."""
    return respond(await service.list_participants(conversation_sid))


@router.post("/{conversation_sid}/participants", response_model=ApiEnvelope[ParticipantListData])
async def add_participants(
    conversation_sid: str = Path(..., description="Conversation SID"),
    participants_data: AddParticipantsRequest = Body(...),
    service: ConversationService = Depends(get_conversation_service),
):
    """Add users to a conversation. The response reports an outcome per user id."""
    return respond(await service.add_participants(conversation_sid, participants_data.participants))


@router.delete(
    "/{conversation_sid}/participants/{participant_sid}",
    response_model=ApiEnvelope[None],
)
async def remove_participant(
    conversation_sid: str = Path(..., description="Conversation SID"),
    participant_sid: str = Path(..., description="Participant SID"),
    service: ConversationService = Depends(get_conversation_service),
):
    """Remove a participant from a conversation."""
    return respond(await service.remove_participant(conversation_sid, participant_sid))
