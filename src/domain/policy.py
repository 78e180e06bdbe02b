"""
Verification policy - Immutable limits and windows for the registration saga.

The policy is built once from settings and handed to the domain services
at construction time. Nothing in the domain reads module-level constants.
"""

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class VerificationPolicy:
    """Limits governing codes, registrations, resends and sessions."""

    code_length: int = 6
    code_ttl: timedelta = timedelta(minutes=5)
    max_attempts: int = 5
    resend_cooldown: timedelta = timedelta(seconds=60)
    registration_ttl: timedelta = timedelta(minutes=30)
    access_token_ttl: timedelta = timedelta(hours=1)
    refresh_token_ttl: timedelta = timedelta(days=30)

    @property
    def code_valid_minutes(self) -> int:
        """Code lifetime in whole minutes, as quoted in the email."""
        return max(1, int(self.code_ttl.total_seconds() // 60))
