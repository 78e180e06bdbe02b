"""
Domain records - Plain data carried between the saga and its stores.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class CodeStatus(str, Enum):
    """
    Verification code lifecycle states.

    State Transitions (forward-only):
    - PENDING -> PENDING  (wrong guess, attempts remain)
    - PENDING -> VERIFIED (matching code inside the window)
    - PENDING -> LOCKED   (attempt budget exhausted)
    - PENDING -> EXPIRED  (5-minute window elapsed, detected lazily)

    VERIFIED, LOCKED and EXPIRED are terminal for a code instance.
    A resend replaces the record instead of reviving it.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    LOCKED = "locked"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not CodeStatus.PENDING


@dataclass(frozen=True)
class RegistrationRequest:
    """In-flight registration, one per email."""

    email: str
    name: str
    credential_hash: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class VerificationCode:
    """One live code per email. ``id`` changes whenever the code is replaced."""

    id: str
    email: str
    code_hash: str
    attempt_count: int
    max_attempts: int
    status: CodeStatus
    created_at: datetime
    expires_at: datetime
    verified_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempt_count)


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    email_confirmed_at: datetime | None = None


@dataclass(frozen=True)
class UserProfile:
    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str
    expires_in: int
    expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class RegistrationResult:
    email: str
    code_expires_at: datetime


@dataclass(frozen=True)
class ResendResult:
    code_expires_at: datetime
    can_resend_after: datetime


@dataclass(frozen=True)
class AuthenticatedUser:
    """
    Outcome of a successful verification or login.

    ``session`` is None only when verification provisioned the account but
    session issuance failed; ``warning`` then tells the client to log in.
    """

    identity: Identity
    name: str
    session: Session | None
    warning: str | None = None
