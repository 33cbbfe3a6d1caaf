"""Credential service: registration, login and token issuance."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import SessionTokenAuthenticator, hash_password, verify_password
from app.domains.user.service import UserService
from app.exceptions.base import AuthError, ConflictError
from app.schemas.user import AuthResponse, UserResponse
from app.services.conversation_gateway import ConversationGateway
from models import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """Service class for authentication business logic."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: ConversationGateway,
        authenticator: SessionTokenAuthenticator | None = None,
    ):
        self.db = db
        self.users = UserService(db)
        self.gateway = gateway
        self.authenticator = authenticator or SessionTokenAuthenticator()

    async def register(self, email: str, password: str, display_name: str) -> AuthResponse:
        """Create a user with a fresh provider identity and sign them in.

        The provider token is signed before the user row is written, so a
        missing signing key fails the registration without leaving an account.
        """
        if await self.users.get_user_by_email(email):
            raise ConflictError("A user with this email already exists")
        if await self.users.get_user_by_username(display_name):
            raise ConflictError("A user with this username already exists")

        identity = str(uuid.uuid4())
        provider_token = self.gateway.generate_token(identity)

        user = await self.users.create_user(
            email=email,
            password_hash=hash_password(password),
            username=display_name,
            identity=identity,
        )
        logger.info("Registered user %s", user.id)
        return self._issue(user, provider_token)

    async def login(self, email_or_name: str, password: str) -> AuthResponse:
        """Authenticate by email or display name.

        Unknown users and wrong passwords fail with the same message so the
        endpoint cannot be used to discover which accounts exist.
        """
        user = await self.users.get_user_by_login(email_or_name)
        if not user or not verify_password(password, user.password_hash):
            logger.info("Rejected login attempt")
            raise AuthError(INVALID_CREDENTIALS)
        return self._issue(user)

    def provider_token(self, user: User) -> str:
        return self.gateway.generate_token(user.identity)

    def _issue(self, user: User, provider_token: str | None = None) -> AuthResponse:
        token = self.authenticator.create_token(user.id, user.email, user.identity)
        return AuthResponse(
            user=UserResponse.model_validate(user),
            token=token,
            provider_token=provider_token or self.provider_token(user),
        )
