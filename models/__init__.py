"""
Models package initialization.
"""

from .base import Base, BaseModel, TimestampedModel
from .conversation import Conversation
from .participant import Participant
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "TimestampedModel",
    "User",
    # Mirror models
    "Conversation",
    "Participant",
]
