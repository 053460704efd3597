"""
Create an account with any role (e.g. the first admin). Run from project root:
  python -m portfolio_api.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [role]
Example:
  python -m portfolio_api.scripts.create_user admin@example.com your-secure-password Ada Lovelace admin
"""
import argparse
import asyncio
import logging
import sys

from portfolio_api.core.config import get_settings
from portfolio_api.core.database import build_engine, build_session_factory
from portfolio_api.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
    is_valid_email,
    normalize_email,
)
from portfolio_api.models.user import DEFAULT_ROLE, ROLES
from portfolio_api.services.errors import DuplicateAccountError, StoreUnavailableError
from portfolio_api.services.user_store import SqlUserStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


async def create_user(email: str, password: str, first_name: str, last_name: str, role: str) -> int:
    settings = get_settings()
    engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    store = SqlUserStore(build_session_factory(engine))
    try:
        account = await store.create(
            email=email,
            password_hash=hash_password(password, settings.BCRYPT_ROUNDS),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
    except DuplicateAccountError:
        logger.error("User '%s' already exists.", email)
        return 1
    except StoreUnavailableError as e:
        logger.error("Could not create user: %s", e.message)
        return 1
    finally:
        await engine.dispose()
    logger.info("Created user '%s' with role '%s' (id=%s).", account.email, account.role, account.id)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a portfolio account with a chosen role.")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument("role", nargs="?", default=DEFAULT_ROLE, choices=list(ROLES))
    args = parser.parse_args(argv)

    email = normalize_email(args.email)
    if not is_valid_email(email):
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    first_name, last_name = args.first_name.strip(), args.last_name.strip()
    if not first_name or not last_name:
        print("First and last name are required.", file=sys.stderr)
        return 1

    return asyncio.run(create_user(email, args.password, first_name, last_name, args.role))


if __name__ == "__main__":
    sys.exit(main())
