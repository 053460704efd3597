"""Password hashing, reset-token hashing and JWT issuance/verification."""

import hashlib
import re
import secrets
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for password validation.
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
NAME_MAX_LEN = 100
EMAIL_MAX_LEN = 255

EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$", re.ASCII)

# Raw reset tokens are 20 random bytes, hex encoded.
RESET_TOKEN_BYTES = 20

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=None)
def dummy_password_hash(rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash of a random password, checked when no account matches so login cost stays the same."""
    return hash_password(secrets.token_hex(16), rounds)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return len(email) <= EMAIL_MAX_LEN and EMAIL_PATTERN.match(email) is not None


def generate_reset_token() -> str:
    """Return a new high-entropy raw reset token (sent to the user, never stored)."""
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_reset_token(raw_token: str) -> str:
    """One-way hash of a raw reset token, as persisted on the account."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class TokenError(Exception):
    """Raised when a token fails verification (signature, expiry, shape or type)."""


class TokenService:
    """
    Issue and verify access and refresh JWTs.

    Access and refresh tokens are signed with distinct secrets and carry a
    `type` claim, so one can never be accepted in place of the other.
    Validity is a function of signature and expiry only; nothing is revoked.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(days=30),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def issue_access(self, account_id: str) -> str:
        return self._encode(account_id, ACCESS_TOKEN_TYPE, self._access_secret, self._access_ttl)

    def issue_refresh(self, account_id: str) -> str:
        return self._encode(account_id, REFRESH_TOKEN_TYPE, self._refresh_secret, self._refresh_ttl)

    def verify_access(self, token: str) -> str:
        """Return the account id encoded in a valid access token. Raises TokenError."""
        return self._decode(token, ACCESS_TOKEN_TYPE, self._access_secret)

    def verify_refresh(self, token: str) -> str:
        """Return the account id encoded in a valid refresh token. Raises TokenError."""
        return self._decode(token, REFRESH_TOKEN_TYPE, self._refresh_secret)

    def _encode(self, account_id: str, token_type: str, secret: str, ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(account_id),
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def _decode(self, token: str, token_type: str, secret: str) -> str:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            raise TokenError(str(e)) from e
        if payload.get("type") != token_type:
            raise TokenError("Unexpected token type")
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise TokenError("Invalid token subject")
        return sub
