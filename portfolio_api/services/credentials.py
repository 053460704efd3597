"""Credential and token lifecycle: register, login, refresh, password reset and change."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from portfolio_api.core.security import (
    BCRYPT_ROUNDS,
    NAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    TokenError,
    TokenService,
    dummy_password_hash,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    is_valid_email,
    normalize_email,
    verify_password,
)
from portfolio_api.models.user import DEFAULT_ROLE
from portfolio_api.services.email import (
    RESET_EMAIL_SUBJECT,
    EmailDeliveryError,
    EmailSender,
    build_reset_link,
    render_reset_email,
)
from portfolio_api.services.errors import (
    DuplicateAccountError,
    EmailDeliveryFailedError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidRequestError,
    InvalidTokenError,
    NotFoundError,
)
from portfolio_api.services.user_store import Account, UserStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _missing(value: str | None) -> bool:
    return value is None or not value.strip()


@dataclass(slots=True)
class AuthResult:
    """Account plus the token pair issued by register and login."""

    account: Account
    access_token: str
    refresh_token: str


class CredentialManager:
    """
    Account credential core. Collaborators are injected; nothing here reads
    settings or opens connections on its own.

    Expected failures raise CredentialError subclasses. Store faults propagate
    as StoreUnavailableError and are not translated here.
    """

    def __init__(
        self,
        store: UserStore,
        email_sender: EmailSender,
        tokens: TokenService,
        frontend_url: str,
        reset_token_ttl: timedelta = timedelta(hours=1),
        bcrypt_rounds: int = BCRYPT_ROUNDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._email_sender = email_sender
        self._tokens = tokens
        self._frontend_url = frontend_url
        self._reset_token_ttl = reset_token_ttl
        self._bcrypt_rounds = bcrypt_rounds
        self._clock = clock

    @property
    def tokens(self) -> TokenService:
        return self._tokens

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password, self._bcrypt_rounds)

    async def _matches(self, password: str, hashed: str | None) -> bool:
        return await asyncio.to_thread(verify_password, password, hashed)

    @staticmethod
    def _check_new_password(password: str, field: str = "Password") -> None:
        if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
            raise InvalidRequestError(
                f"{field} must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters"
            )

    @staticmethod
    def _check_email(email: str) -> str:
        normalized = normalize_email(email)
        if not is_valid_email(normalized):
            raise InvalidRequestError("Please enter a valid email")
        return normalized

    @staticmethod
    def _check_name(value: str, field: str) -> str:
        value = value.strip()
        if len(value) > NAME_MAX_LEN:
            raise InvalidRequestError(f"{field} cannot be more than {NAME_MAX_LEN} characters")
        return value

    def _issue_pair(self, account: Account) -> AuthResult:
        return AuthResult(
            account=account,
            access_token=self._tokens.issue_access(account.id),
            refresh_token=self._tokens.issue_refresh(account.id),
        )

    async def register(
        self,
        email: str | None,
        password: str | None,
        first_name: str | None,
        last_name: str | None,
    ) -> AuthResult:
        """Create a client account and issue its first token pair."""
        if _missing(email) or _missing(password) or _missing(first_name) or _missing(last_name):
            raise InvalidRequestError("Please provide email, password, first name and last name")
        normalized = self._check_email(email)
        self._check_new_password(password)
        first = self._check_name(first_name, "First name")
        last = self._check_name(last_name, "Last name")

        if await self._store.find_by_email(normalized) is not None:
            raise DuplicateAccountError()

        # A racing insert with the same email loses at the unique index and
        # surfaces from the store as DuplicateAccountError.
        account = await self._store.create(
            email=normalized,
            password_hash=await self._hash(password),
            first_name=first,
            last_name=last,
            role=DEFAULT_ROLE,
            last_login_at=self._clock(),
        )
        logger.info("Account registered", extra={"account_id": account.id})
        return self._issue_pair(account)

    async def login(self, email: str | None, password: str | None) -> AuthResult:
        """
        Authenticate by email and password.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        if _missing(email) or not password:
            raise InvalidRequestError("Please provide email and password")

        account = await self._store.find_by_email(normalize_email(email), include_hidden=True)
        if account is None:
            dummy = await asyncio.to_thread(dummy_password_hash, self._bcrypt_rounds)
            await self._matches(password, dummy)
            logger.info("Login failed", extra={"reason": "invalid_credentials"})
            raise InvalidCredentialsError()
        if not await self._matches(password, account.password_hash):
            logger.info("Login failed", extra={"reason": "invalid_credentials"})
            raise InvalidCredentialsError()

        updated = await self._store.update_by_id(account.id, last_login_at=self._clock())
        if updated is None:
            raise InvalidCredentialsError()
        logger.info("Login succeeded", extra={"account_id": updated.id})
        return self._issue_pair(updated)

    async def refresh(self, refresh_token: str | None) -> str:
        """Mint a new access token from a refresh token. The refresh token is not rotated."""
        if _missing(refresh_token):
            raise InvalidRequestError("Please provide refresh token")
        try:
            account_id = self._tokens.verify_refresh(refresh_token)
        except TokenError as e:
            raise InvalidTokenError() from e
        account = await self._store.find_by_id(account_id)
        if account is None:
            raise InvalidTokenError()
        return self._tokens.issue_access(account.id)

    async def authenticate(self, access_token: str | None) -> Account:
        """Resolve the account behind an access token; any failure is InvalidTokenError."""
        if _missing(access_token):
            raise InvalidTokenError()
        try:
            account_id = self._tokens.verify_access(access_token)
        except TokenError as e:
            raise InvalidTokenError() from e
        account = await self._store.find_by_id(account_id)
        if account is None:
            raise InvalidTokenError()
        return account

    async def forgot_password(self, email: str | None) -> None:
        """
        Start a password reset: persist the hash of a fresh token and email the
        raw token in a recovery link.

        If delivery fails the pending token is cleared before
        EmailDeliveryFailedError is raised, so no unreachable token stays live.
        """
        if _missing(email):
            raise InvalidRequestError("Please provide email")
        account = await self._store.find_by_email(normalize_email(email))
        if account is None:
            raise NotFoundError()

        raw_token = generate_reset_token()
        expires_at = self._clock() + self._reset_token_ttl
        pending = await self._store.update_by_id(
            account.id,
            reset_token_hash=hash_reset_token(raw_token),
            reset_expires_at=expires_at,
        )
        if pending is None:
            raise NotFoundError()

        body = render_reset_email(
            build_reset_link(self._frontend_url, raw_token),
            int(self._reset_token_ttl.total_seconds() // 60),
        )
        try:
            await self._email_sender.send(pending.email, RESET_EMAIL_SUBJECT, body)
        except Exception as e:
            reason = e.message if isinstance(e, EmailDeliveryError) else type(e).__name__
            logger.error(
                "Password reset email failed; clearing pending token",
                extra={"account_id": account.id, "reason": reason[:200]},
            )
            await self._store.update_by_id(
                account.id, reset_token_hash=None, reset_expires_at=None
            )
            raise EmailDeliveryFailedError() from e
        logger.info("Password reset email sent", extra={"account_id": account.id})

    async def reset_password(self, token: str | None, password: str | None) -> None:
        """Complete a reset with the raw token; the token is consumed on success."""
        if _missing(token) or not password:
            raise InvalidRequestError("Please provide token and password")
        self._check_new_password(password)

        account = await self._store.consume_reset_token(
            hash_reset_token(token.strip()),
            self._clock(),
            await self._hash(password),
        )
        if account is None:
            raise InvalidOrExpiredTokenError()
        logger.info("Password reset completed", extra={"account_id": account.id})

    async def change_password(
        self,
        account_id: str,
        current_password: str | None,
        new_password: str | None,
    ) -> None:
        """
        Replace the password of an authenticated account after checking the current one.

        Tokens issued before the change stay valid until they expire.
        """
        if not current_password or not new_password:
            raise InvalidRequestError("Please provide current and new password")
        self._check_new_password(new_password, "New password")

        account = await self._store.find_by_id(account_id, include_hidden=True)
        if account is None:
            raise NotFoundError()
        if not await self._matches(current_password, account.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")

        if await self._store.update_by_id(account.id, password_hash=await self._hash(new_password)) is None:
            raise NotFoundError()
        logger.info("Password changed", extra={"account_id": account.id})

    async def get_account(self, account_id: str) -> Account:
        account = await self._store.find_by_id(account_id)
        if account is None:
            raise NotFoundError()
        return account

    async def update_profile(
        self,
        account_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> Account:
        """Apply the non-empty profile fields; a changed email must stay unique."""
        fields: dict[str, str] = {}
        if not _missing(first_name):
            fields["first_name"] = self._check_name(first_name, "First name")
        if not _missing(last_name):
            fields["last_name"] = self._check_name(last_name, "Last name")
        if not _missing(email):
            normalized = self._check_email(email)
            existing = await self._store.find_by_email(normalized)
            if existing is not None and existing.id != account_id:
                raise DuplicateAccountError()
            fields["email"] = normalized

        if not fields:
            return await self.get_account(account_id)
        account = await self._store.update_by_id(account_id, **fields)
        if account is None:
            raise NotFoundError()
        return account
