"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.

Every method may raise ``StorageError`` when the backing store fails or
times out. Adapters translate driver exceptions before they get here.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

from .models import (
    CodeStatus,
    Identity,
    RegistrationRequest,
    Session,
    UserProfile,
    VerificationCode,
)


class VerifyResult(Enum):
    """
    Result of a verification attempt against the code engine.

    Used by VerificationCodeEngine.attempt() to indicate success or the
    specific failure.
    """

    SUCCESS = "success"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    LOCKED = "locked"
    NOT_FOUND = "not_found"


class Clock(Protocol):
    """Current-time provider. Always returns timezone-aware UTC datetimes."""

    def now(self) -> datetime: ...


class RegistrationRepository(Protocol):
    """Port interface for registration requests and verification codes."""

    def save_request(self, request: RegistrationRequest) -> None:
        """Insert or overwrite the registration request for its email."""
        ...

    def get_request(self, email: str) -> RegistrationRequest | None: ...

    def delete_request(self, email: str) -> None:
        """Delete the request if present. Idempotent."""
        ...

    def get_code(self, email: str) -> VerificationCode | None: ...

    def replace_code(self, code: VerificationCode, issued_before: datetime | None = None) -> bool:
        """
        Store ``code`` as the only code for its email.

        Args:
            code: Freshly generated code record
            issued_before: When given, the replacement only happens if the
                existing code (if any) was created at or before this
                instant. This makes the resend cooldown atomic.

        Returns:
            True if the code was stored, False if the cooldown condition
            rejected it.
        """
        ...

    def update_code_state(
        self,
        code_id: str,
        expected_status: CodeStatus,
        expected_attempts: int,
        status: CodeStatus,
        attempt_count: int,
        verified_at: datetime | None = None,
    ) -> bool:
        """
        Compare-and-set a code's status and attempt count.

        The update applies only if the stored row still has ``code_id``,
        ``expected_status`` and ``expected_attempts``.

        Returns:
            True if the row was updated, False if a concurrent writer won.
        """
        ...

    def delete_code(self, email: str) -> None:
        """Delete the code if present. Idempotent."""
        ...


class IdentityStore(Protocol):
    """Port interface for durable account records."""

    def find_by_email(self, email: str) -> Identity | None: ...

    def create_identity(self, email: str, credential_hash: str, pre_confirmed: bool) -> Identity:
        """
        Create the durable identity.

        Raises:
            IdentityConflict: email already has an identity
            StorageError: any other failure
        """
        ...

    def delete_identity(self, identity_id: str) -> None:
        """Delete the identity if present. Idempotent."""
        ...

    def authenticate(self, email: str, password: str) -> Identity | None:
        """Return the identity if the password matches, else None."""
        ...


class ProfileStore(Protocol):
    """Port interface for application-level user metadata."""

    def create_profile(self, identity: Identity, name: str, now: datetime) -> UserProfile: ...

    def get_profile(self, identity_id: str) -> UserProfile | None: ...


class SessionIssuer(Protocol):
    """Port interface for access/refresh token pairs."""

    def issue_session(self, identity: Identity) -> Session: ...

    def refresh_session(self, refresh_token: str) -> tuple[Identity, Session] | None:
        """Rotate the pair. None if the token is unknown, expired or revoked."""
        ...

    def resolve_access_token(self, access_token: str) -> Identity | None: ...

    def revoke_session(self, access_token: str) -> bool:
        """Revoke the session. False if the token matched no live session."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str, valid_minutes: int) -> bool:
        """
        Send verification code to email address.

        Args:
            email: Recipient email address
            code: Plaintext numeric verification code
            valid_minutes: Lifetime quoted to the recipient

        Returns:
            True if the gateway accepted the message
        """
        ...
