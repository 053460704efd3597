"""User record store: domain type, store protocol and the SQLAlchemy implementation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portfolio_api.models.user import User as UserModel
from portfolio_api.services.errors import DuplicateAccountError, StoreUnavailableError

logger = logging.getLogger(__name__)

# Columns that update_by_id may change.
UPDATABLE_FIELDS = frozenset(
    {
        "email",
        "password_hash",
        "first_name",
        "last_name",
        "role",
        "last_login_at",
        "reset_token_hash",
        "reset_expires_at",
    }
)


@dataclass(slots=True)
class Account:
    """
    Account as seen by the credential core.

    password_hash, reset_token_hash and reset_expires_at are only populated
    when the read asked for hidden fields.
    """

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    password_hash: str | None = field(default=None, repr=False)
    reset_token_hash: str | None = field(default=None, repr=False)
    reset_expires_at: datetime | None = field(default=None, repr=False)


class UserStore(Protocol):
    """Persistence interface consumed by CredentialManager. Every call is atomic."""

    async def find_by_email(self, email: str, include_hidden: bool = False) -> Account | None:
        ...

    async def find_by_id(self, account_id: str, include_hidden: bool = False) -> Account | None:
        ...

    async def create(self, **fields: Any) -> Account:
        """Insert an account. Raises DuplicateAccountError if the email is taken."""
        ...

    async def update_by_id(self, account_id: str, **fields: Any) -> Account | None:
        ...

    async def consume_reset_token(
        self, token_hash: str, now: datetime, password_hash: str
    ) -> Account | None:
        """
        Set password_hash and clear the reset fields on the account whose
        reset_token_hash matches and whose reset_expires_at is after now.
        Returns None when no account matches.
        """
        ...


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is written in UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class SqlUserStore:
    """UserStore backed by SQLAlchemy; one session and transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            if "email" in str(e.orig).lower():
                raise DuplicateAccountError() from e
            logger.error("User store constraint violated: %s", type(e.orig).__name__)
            raise StoreUnavailableError("User store rejected the write") from e
        except SQLAlchemyError as e:
            logger.error("User store operation failed: %s", type(e).__name__)
            raise StoreUnavailableError("User store unavailable") from e

    async def find_by_email(self, email: str, include_hidden: bool = False) -> Account | None:
        async with self._session() as session:
            result = await session.execute(select(UserModel).where(UserModel.email == email))
            return self._to_domain(result.scalar_one_or_none(), include_hidden)

    async def find_by_id(self, account_id: str, include_hidden: bool = False) -> Account | None:
        async with self._session() as session:
            model = await session.get(UserModel, account_id)
            return self._to_domain(model, include_hidden)

    async def create(self, **fields: Any) -> Account:
        async with self._session() as session:
            model = UserModel(**fields)
            session.add(model)
            await session.flush()
            await session.refresh(model)
            return self._to_domain(model, include_hidden=False)

    async def update_by_id(self, account_id: str, **fields: Any) -> Account | None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        async with self._session() as session:
            model = await session.get(UserModel, account_id)
            if model is None:
                return None
            for name, value in fields.items():
                setattr(model, name, value)
            await session.flush()
            await session.refresh(model)
            return self._to_domain(model, include_hidden=False)

    async def consume_reset_token(
        self, token_hash: str, now: datetime, password_hash: str
    ) -> Account | None:
        stmt = (
            update(UserModel)
            .where(
                UserModel.reset_token_hash == token_hash,
                UserModel.reset_expires_at > now,
            )
            .values(
                password_hash=password_hash,
                reset_token_hash=None,
                reset_expires_at=None,
            )
            .returning(UserModel.id)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            account_id = result.scalar_one_or_none()
            if account_id is None:
                return None
            model = await session.get(UserModel, account_id, populate_existing=True)
            return self._to_domain(model, include_hidden=False)

    @staticmethod
    def _to_domain(model: UserModel | None, include_hidden: bool) -> Account | None:
        if model is None:
            return None
        account = Account(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name,
            role=model.role,
            last_login_at=_as_utc(model.last_login_at),
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )
        if include_hidden:
            account.password_hash = model.password_hash
            account.reset_token_hash = model.reset_token_hash
            account.reset_expires_at = _as_utc(model.reset_expires_at)
        return account
