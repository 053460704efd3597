"""Settings validation."""

import unittest

from pydantic import ValidationError

from portfolio_api.core.config import Settings

BASE = {
    "_env_file": None,
    "JWT_SECRET": "access-secret-0123456789abcdef",
    "JWT_REFRESH_SECRET": "refresh-secret-0123456789abcdef",
}


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings(**BASE)
        self.assertEqual(settings.JWT_ACCESS_EXPIRE_MINUTES, 43200)
        self.assertEqual(settings.JWT_REFRESH_EXPIRE_MINUTES, 10080)
        self.assertEqual(settings.RESET_TOKEN_EXPIRE_MINUTES, 60)

    def test_secrets_must_differ(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(**{**BASE, "JWT_REFRESH_SECRET": BASE["JWT_SECRET"]})

    def test_empty_secret(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(**{**BASE, "JWT_SECRET": "  "})

    def test_database_url_needs_async_driver(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(**{**BASE, "DATABASE_URL": "postgresql://u:p@localhost/db"})
        settings = Settings(**{**BASE, "DATABASE_URL": " sqlite+aiosqlite:///:memory: "})
        self.assertEqual(settings.DATABASE_URL, "sqlite+aiosqlite:///:memory:")

    def test_frontend_url(self) -> None:
        settings = Settings(**{**BASE, "FRONTEND_URL": "https://example.com/"})
        self.assertEqual(settings.FRONTEND_URL, "https://example.com")
        with self.assertRaises(ValidationError):
            Settings(**{**BASE, "FRONTEND_URL": "ftp://example.com"})

    def test_ranges(self) -> None:
        for field, value in (
            ("BCRYPT_ROUNDS", 3),
            ("RESET_TOKEN_EXPIRE_MINUTES", 0),
            ("JWT_ACCESS_EXPIRE_MINUTES", 0),
            ("SMTP_PORT", 70000),
            ("SMTP_TIMEOUT_SEC", 0),
        ):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    Settings(**{**BASE, field: value})

    def test_tls_and_ssl_exclusive(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(**{**BASE, "SMTP_USE_TLS": True, "SMTP_USE_SSL": True})

    def test_cors_origins(self) -> None:
        settings = Settings(**{**BASE, "CORS_ORIGINS": "https://a.com, https://b.com,"})
        self.assertEqual(settings.cors_origins, ["https://a.com", "https://b.com"])


if __name__ == "__main__":
    unittest.main()
