"""Caller-visible credential errors and the separate infrastructure fault."""


class CredentialError(Exception):
    """Base class for expected, caller-visible failures of a credential operation."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequestError(CredentialError):
    """A required field is missing or malformed."""

    status_code = 400
    default_message = "Invalid request"


class DuplicateAccountError(CredentialError):
    """An account with this email already exists."""

    status_code = 400
    default_message = "User already exists"


class InvalidCredentialsError(CredentialError):
    """Wrong email/password pair; never says which half was wrong."""

    status_code = 401
    default_message = "Invalid credentials"


class InvalidTokenError(CredentialError):
    """Refresh or access token is unusable (tampered, expired, or unresolvable)."""

    status_code = 401
    default_message = "Invalid token"


class NotFoundError(CredentialError):
    status_code = 404
    default_message = "User not found"


class InvalidOrExpiredTokenError(CredentialError):
    """Reset token is wrong, expired or already consumed."""

    status_code = 400
    default_message = "Invalid or expired token"


class EmailDeliveryFailedError(CredentialError):
    status_code = 500
    default_message = "Email could not be sent"


class StoreUnavailableError(Exception):
    """Raised when the user store cannot be reached or fails unexpectedly."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
