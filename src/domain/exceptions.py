"""
Domain exceptions - Semantic error types for registration and sign-in.

Each exception carries a stable machine-readable ``code``. The first group
are expected, caller-actionable outcomes. ``EmailDeliveryFailed`` and
``ServerError`` are unexpected and are logged where they are raised.

The last group (``StorageError``, ``HashingError``, ``IdentityConflict``)
is raised by adapters and never reaches the caller unchanged.
"""

from datetime import datetime


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    code = "SERVER_ERROR"
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    def details(self) -> dict[str, object]:
        """Extra machine-readable fields returned alongside the code."""
        return {}


class ValidationFailed(RegistrationError):
    """Malformed input."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(reason)
        self.field = field
        self.reason = reason

    def details(self) -> dict[str, object]:
        return {"field": self.field, "reason": self.reason}


class EmailAlreadyRegistered(RegistrationError):
    """Email already belongs to a confirmed identity."""

    code = "EMAIL_EXISTS"
    message = "Email is already registered"


class RegistrationNotFound(RegistrationError):
    """No pending registration or live code for this email."""

    code = "CODE_NOT_FOUND"
    message = "No pending registration, please register again"


class VerificationExpired(RegistrationError):
    """A time window elapsed before verification."""

    code = "CODE_EXPIRED"
    message = "Verification code has expired"
    scope = "code"

    def details(self) -> dict[str, object]:
        return {"scope": self.scope}


class RegistrationExpired(VerificationExpired):
    """The 30-minute registration window elapsed."""

    code = "REGISTRATION_EXPIRED"
    message = "Registration has expired, please register again"
    scope = "registration"


class CodeExpired(VerificationExpired):
    """The code's own window elapsed."""


class InvalidCode(RegistrationError):
    """Code mismatch while attempts remain."""

    code = "CODE_INVALID"
    message = "Verification code is incorrect"

    def __init__(self, attempts_remaining: int) -> None:
        super().__init__()
        self.attempts_remaining = attempts_remaining

    def details(self) -> dict[str, object]:
        return {"attempts_remaining": self.attempts_remaining}


class VerificationLocked(RegistrationError):
    """Attempt budget exhausted; only a resend issues a usable code."""

    code = "CODE_LOCKED"
    message = "Too many failed attempts, please request a new code"

    def details(self) -> dict[str, object]:
        return {"attempts_remaining": 0}


class ResendRateLimited(RegistrationError):
    """Resend requested inside the cooldown window."""

    code = "RATE_LIMIT"
    message = "Please wait before requesting another code"

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__()
        self.retry_after_seconds = retry_after_seconds

    def details(self) -> dict[str, object]:
        return {"retry_after_seconds": self.retry_after_seconds}


class EmailDeliveryFailed(RegistrationError):
    """Email gateway reported failure. Records are kept so resend works."""

    code = "EMAIL_SEND_FAILED"
    message = "Failed to send verification email, please request a new code"

    def __init__(self, code_expires_at: datetime | None = None) -> None:
        super().__init__()
        self.code_expires_at = code_expires_at


class ServerError(RegistrationError):
    """Storage or hashing failure not attributable to caller input."""


class InvalidCredentials(RegistrationError):
    """Email/password pair does not authenticate."""

    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class Unauthorized(RegistrationError):
    """Session token missing, unknown, expired or revoked."""

    code = "UNAUTHORIZED"
    message = "Invalid or expired session"


class StorageError(Exception):
    """Backing store failed or timed out."""


class HashingError(Exception):
    """Hashing or digest comparison failed."""


class IdentityConflict(StorageError):
    """Identity store already holds this email."""
