from __future__ import annotations

from dataclasses import dataclass
from hashlib import sha256

import bcrypt
from itsdangerous import BadSignature, URLSafeTimedSerializer

_BCRYPT_SHA256_PREFIX = "bcrypt_sha256$"
# Passwords are pre-hashed with SHA-256 so inputs over bcrypt's 72-byte limit still count in full.

_ACCESS_TOKEN_SALT = "access-token"


def hash_password(password: str) -> str:
    digest = sha256(password.encode("utf-8")).digest()
    hashed = bcrypt.hashpw(digest, bcrypt.gensalt())
    return f"{_BCRYPT_SHA256_PREFIX}{hashed.decode()}"


def verify_password(password: str, hashed: str) -> bool:
    if not hashed.startswith(_BCRYPT_SHA256_PREFIX):
        return False
    digest = sha256(password.encode("utf-8")).digest()
    stored = hashed[len(_BCRYPT_SHA256_PREFIX) :].encode()
    try:
        return bcrypt.checkpw(digest, stored)
    except ValueError:
        return False


class InvalidTokenError(ValueError):
    """Raised when a bearer token is malformed, tampered with or expired."""


@dataclass(slots=True)
class TokenSigner:
    """Issue and verify signed, time-limited bearer tokens carrying a user id."""

    secret_key: str
    max_age_seconds: int

    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(self.secret_key, salt=_ACCESS_TOKEN_SALT)

    def issue(self, user_id: str) -> str:
        return self._serializer().dumps({"user_id": user_id})

    def verify(self, token: str) -> str:
        """Return the user id carried by ``token``.

        Expired tokens raise ``SignatureExpired`` inside itsdangerous, which is a
        ``BadSignature`` subclass, so both end up as :class:`InvalidTokenError`.
        """

        try:
            data = self._serializer().loads(token, max_age=self.max_age_seconds)
        except BadSignature as exc:
            raise InvalidTokenError("Invalid token") from exc
        user_id = data.get("user_id") if isinstance(data, dict) else None
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError("Invalid token")
        return user_id
