"""
Local mirror of provider conversations.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import TimestampedModel


class Conversation(TimestampedModel):
    """
    Represents a conversation that exists at the provider.

    The primary key is the provider's conversation SID; it is never generated
    locally. Participants are owned by the conversation and deleted with it.
    """

    __tablename__ = "conversations"

    id = Column(String(64), primary_key=True)
    friendly_name = Column(String(255), nullable=True)

    participants = relationship(
        "Participant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
