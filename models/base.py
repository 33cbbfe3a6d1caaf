"""
Defines base models for SQLAlchemy ORM with common attributes.

This module provides base classes for SQLAlchemy models, including standard
attributes for identifying and timestamping database records. Locally owned
records get a UUID primary key; mirrored provider records bring their own
string identifier and only take the timestamp columns.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, TypeDecorator
from sqlalchemy.dialects.postgresql import UUID as PostgreSQLUUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUID(TypeDecorator):
    """
    Platform-independent UUID type.
    Uses PostgreSQL's UUID type when available,
    otherwise uses CHAR(36), storing as string.
    """
    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PostgreSQLUUID())
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class TimestampedModel(Base):
    """
    Abstract model carrying creation and modification timestamps.

    :ivar created_at: Timestamp representing when the record was created.
    :type created_at: datetime
    :ivar updated_at: Timestamp representing when the record was last updated.
    :type updated_at: datetime
    """
    __abstract__ = True

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class BaseModel(TimestampedModel):
    """
    Base model class for locally owned database entities.

    :ivar id: Unique identifier for the record.
    :type id: UUID
    """
    __abstract__ = True

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
