"""
Provides the User model for the application's database schema.

Attributes
----------
email : sqlalchemy.Column
    The email address of the user, which must be unique.
password_hash : sqlalchemy.Column
    Salted one-way hash of the user's password.
username : sqlalchemy.Column
    Display name chosen at registration. Unique, since login accepts it
    in place of the email.
identity : sqlalchemy.Column
    Opaque, stable string naming the user to the conversation provider.
    Generated once at registration and never reused.

Relationships
-------------
participations : sqlalchemy.orm.relationship
    Mirrored conversation memberships. The user references but does not
    own them; a participant row is removed with its conversation.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    Represents a registered user.

    :ivar email: Email address of the user. It must be unique.
    :type email: str
    :ivar password_hash: Hashed password, never the plain text.
    :type password_hash: str
    :ivar username: Display name of the user. It must be unique since it doubles as a login name.
    :type username: str
    :ivar identity: External identity used as the provider participant identity.
    :type identity: str
    """

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    username = Column(String(100), nullable=False, unique=True, index=True)
    identity = Column(String(64), nullable=False, unique=True, index=True)

    participations = relationship("Participant", back_populates="user")
