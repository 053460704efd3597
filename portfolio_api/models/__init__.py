"""SQLAlchemy ORM models."""

from portfolio_api.models.base import Base
from portfolio_api.models.user import User

__all__ = ["Base", "User"]
