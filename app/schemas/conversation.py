"""Conversation and participant schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field

from app.exceptions.base import ErrorCode

from .base import BaseSchema


class RemoteConversation(BaseSchema):
    """Conversation as reported by the provider."""

    sid: str
    friendly_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RemoteParticipant(BaseSchema):
    """Participant as reported by the provider."""

    sid: str
    identity: Optional[str] = None
    conversation_sid: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateConversationRequest(BaseSchema):
    """Schema for creating a conversation."""

    friendly_name: Optional[str] = Field(None, max_length=255, description="Friendly name")
    participants: list[str] = Field(
        default_factory=list, description="User ids to add alongside the creator"
    )


class AddParticipantsRequest(BaseSchema):
    """Schema for adding participants to a conversation."""

    participants: list[str] = Field(..., min_length=1, description="User ids to add")


class ConversationResponse(BaseSchema):
    """Schema for conversation response data."""

    sid: str
    friendly_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ParticipantResponse(BaseSchema):
    """Schema for participant response data."""

    id: str
    identity: Optional[str] = None
    conversation_id: str
    user_id: Optional[UUID] = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ParticipantResult(BaseSchema):
    """Outcome of adding a single user in a batch."""

    user_id: str
    success: bool
    participant: Optional[ParticipantResponse] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None


class ConversationListData(BaseSchema):
    conversations: list[ConversationResponse] = Field(default_factory=list)


class ConversationDetailData(BaseSchema):
    conversation: ConversationResponse
    participants: list[ParticipantResponse] = Field(default_factory=list)
    results: Optional[list[ParticipantResult]] = None


class ParticipantListData(BaseSchema):
    participants: list[ParticipantResponse] = Field(default_factory=list)
    results: Optional[list[ParticipantResult]] = None
