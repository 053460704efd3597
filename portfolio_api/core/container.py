"""Explicitly constructed service collaborators, built once at process start."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncEngine

from portfolio_api.core.config import Settings
from portfolio_api.core.database import build_engine, build_session_factory
from portfolio_api.core.security import TokenService
from portfolio_api.services.credentials import CredentialManager
from portfolio_api.services.email import EmailSender, SmtpEmailSender
from portfolio_api.services.user_store import SqlUserStore, UserStore


@dataclass(slots=True)
class ServiceContainer:
    settings: Settings
    store: UserStore
    email_sender: EmailSender
    tokens: TokenService
    credentials: CredentialManager
    engine: AsyncEngine | None = None

    async def aclose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def build_token_service(settings: Settings) -> TokenService:
    return TokenService(
        access_secret=settings.JWT_SECRET.get_secret_value(),
        refresh_secret=settings.JWT_REFRESH_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        access_ttl=timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
        refresh_ttl=timedelta(minutes=settings.JWT_REFRESH_EXPIRE_MINUTES),
    )


def build_container(
    settings: Settings,
    store: UserStore | None = None,
    email_sender: EmailSender | None = None,
) -> ServiceContainer:
    """Wire the credential core; store and email_sender may be supplied (tests, scripts)."""
    engine = None
    if store is None:
        engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        store = SqlUserStore(build_session_factory(engine))
    if email_sender is None:
        email_sender = SmtpEmailSender.from_settings(settings)
    tokens = build_token_service(settings)
    credentials = CredentialManager(
        store=store,
        email_sender=email_sender,
        tokens=tokens,
        frontend_url=settings.FRONTEND_URL,
        reset_token_ttl=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )
    return ServiceContainer(
        settings=settings,
        store=store,
        email_sender=email_sender,
        tokens=tokens,
        credentials=credentials,
        engine=engine,
    )


__all__ = ["ServiceContainer", "build_container", "build_token_service"]
