"""ORM model for website accounts (auth, roles and password reset)."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, String, func

from portfolio_api.models.base import Base

ROLES = ("admin", "editor", "client")
DEFAULT_ROLE = "client"


def generate_account_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """
    Account for JWT authentication and role-based access control.

    email is stored normalized (stripped, lower-cased) so the unique index
    is case-insensitive. reset_token_hash and reset_expires_at are set and
    cleared together.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(reset_token_hash IS NULL) = (reset_expires_at IS NULL)",
            name="ck_users_reset_pair",
        ),
        CheckConstraint("role IN ('admin', 'editor', 'client')", name="ck_users_role"),
    )

    id = Column(String(32), primary_key=True, default=generate_account_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(16), nullable=False, default=DEFAULT_ROLE)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
