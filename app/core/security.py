"""Security related functions."""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from passlib.context import CryptContext

from app.core.config import settings
from app.exceptions.base import AuthError

# Argon2 is salted and cost-factored; verify() handles both
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(plain_password, password_hash)
    except (ValueError, TypeError):
        # Malformed or unknown hash format in storage
        return False


class SessionTokenAuthenticator:
    """
    Issues and verifies the signed session tokens handed to API clients.

    Tokens are HS256 JWTs signed with the application secret. They carry the
    local user id as ``sub`` plus the user's email and provider identity, and
    expire after ``access_token_expire_minutes``.

    :ivar secret_key: The secret used to sign and verify tokens.
    :type secret_key: str
    :ivar algorithm: JWT signing algorithm.
    :type algorithm: str
    """

    def __init__(
        self,
        secret_key: str | None = None,
        algorithm: str | None = None,
        expire_minutes: int | None = None,
    ):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.expire_minutes = expire_minutes or settings.access_token_expire_minutes

    def create_token(self, subject_id: str, email: str, identity: str) -> str:
        """Sign a session token for a user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "email": email,
            "identity": identity,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> dict[str, Any]:
        """
        Verifies a session token and returns its claims.

        :param token: The JWT presented by the client.
        :return: The decoded claims if the signature and expiry are valid.
        :raises AuthError: If the token is expired, tampered with or malformed.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except ExpiredSignatureError as e:
            raise AuthError("Session token has expired") from e
        except InvalidTokenError as e:
            raise AuthError("Invalid authentication token") from e
        return payload
