import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from .errors import InvalidToken

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class Identity:
    """The caller a bearer token was issued to."""
    user_id: int
    email: str


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class CredentialService:
    """Password hashing (bcrypt) and stateless bearer tokens (signed JWT)."""

    def __init__(self, secret: str, token_ttl: timedelta = timedelta(hours=24), rounds: int = 10):
        self.secret = secret
        self.token_ttl = token_ttl
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
        except ValueError:
            # Stored value is not a bcrypt hash.
            logger.warning("Unreadable password hash encountered")
            return False

    def issue_token(self, user_id: int, email: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "id": user_id,
            "email": email,
            "iat": now,
            "exp": now + self.token_ttl,
        }
        return jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> Identity:
        """Decode a token, checking signature and expiry.

        Raises InvalidToken for anything that is not a live token this
        service issued.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "id", "email"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise InvalidToken("Invalid token.")
        except jwt.InvalidTokenError as e:
            logger.info("Rejected invalid token: %s", e)
            raise InvalidToken("Invalid token.")

        user_id = claims["id"]
        if not isinstance(user_id, int) or not isinstance(claims["email"], str):
            raise InvalidToken("Invalid token.")
        return Identity(user_id=user_id, email=claims["email"])
