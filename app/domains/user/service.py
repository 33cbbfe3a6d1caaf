# app/domains/user/service.py
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions.base import ConflictError
from models import User


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address (case-insensitive)."""
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by display name."""
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user_by_login(self, email_or_name: str) -> Optional[User]:
        """Get a user by email or display name. Email matches win over name matches."""
        return await self.get_user_by_email(email_or_name) or await self.get_user_by_username(email_or_name)

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        """Fetch many users in one query, keyed by id."""
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def get_users_by_identities(self, identities: Iterable[str]) -> dict[str, User]:
        """Fetch users by provider identity, keyed by identity."""
        values = [i for i in identities if i]
        if not values:
            return {}
        result = await self.db.execute(select(User).where(User.identity.in_(values)))
        return {user.identity: user for user in result.scalars().all()}

    async def create_user(self, email: str, password_hash: str, username: str, identity: str) -> User:
        """Create a new user."""
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            username=username,
            identity=identity,
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("A user with this email or username already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e
