# app/core/dependencies.py
import logging
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import SessionTokenAuthenticator
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import AuthError
from app.services.conversation_gateway import ConversationGateway, conversation_gateway
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
auth = SessionTokenAuthenticator()


async def validate_token(
    token: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Validate and decode the bearer session token.

    Returns:
        dict: Decoded token payload

    Raises:
        AuthError: If the token is missing, invalid or expired
    """
    if not token or not token.credentials:
        raise AuthError("Authentication token is required")

    return auth.verify_token(token.credentials)


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from the session token payload.

    Returns:
        User: Current authenticated user

    Raises:
        AuthError: If the token subject does not name an existing user
    """
    try:
        user_id = UUID(payload.get("sub", ""))
    except ValueError as e:
        raise AuthError("Invalid token payload - missing user ID") from e

    user = await UserService(db).get_user_by_id(user_id)
    if not user:
        logger.warning("Token subject %s has no matching user", user_id)
        raise AuthError("Invalid authentication token")

    # Add user info to request state for logging
    request.state.user_id = user.id
    return user


def get_conversation_gateway() -> ConversationGateway:
    """Provide the process-wide provider gateway."""
    return conversation_gateway
