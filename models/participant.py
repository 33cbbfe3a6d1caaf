"""
Local mirror of provider conversation participants.
"""

from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import UUID, TimestampedModel


class Participant(TimestampedModel):
    """
    Represents a user's membership in a mirrored conversation.

    ``identity`` must equal ``user.identity``. Nothing at the database level
    enforces it; the conversation service writes both from the same user row.
    """

    __tablename__ = "participants"

    id = Column(String(64), primary_key=True)  # Provider participant SID
    identity = Column(String(64), nullable=False, index=True)
    conversation_id = Column(
        String(64), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User", back_populates="participations")
