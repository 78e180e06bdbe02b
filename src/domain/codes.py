"""
Verification code engine - Lifecycle of a single numeric code.

Code State Machine (Forward-Only Transitions)
=============================================

    PENDING -> PENDING   (wrong guess, attempts remain)
    PENDING -> VERIFIED  (matching code inside the window)
    PENDING -> LOCKED    (attempt_count reaches max_attempts)
    PENDING -> EXPIRED   (window elapsed, detected lazily at read time)

Every transition is written with a compare-and-set on (id, status,
attempt_count). A plain read-then-write would lose increments and could
let two concurrent correct guesses both verify. When the compare-and-set
loses, the engine re-reads the row and evaluates again.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass

from .exceptions import StorageError
from .hashing import CodeHasher
from .models import CodeStatus, VerificationCode
from .policy import VerificationPolicy
from .ports import Clock, RegistrationRepository, VerifyResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptOutcome:
    result: VerifyResult
    attempts_remaining: int
    record: VerificationCode | None = None


class VerificationCodeEngine:
    """Generates, stores and evaluates verification codes."""

    def __init__(
        self,
        repository: RegistrationRepository,
        hasher: CodeHasher,
        policy: VerificationPolicy,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._policy = policy
        self._clock = clock

    def generate_code(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self._policy.code_length))

    def issue(self, email: str, issued_before=None) -> tuple[str, VerificationCode] | None:
        """
        Create a fresh code for ``email``, replacing any existing one.

        Args:
            email: Normalized email address
            issued_before: Optional cooldown cutoff forwarded to
                RegistrationRepository.replace_code()

        Returns:
            (plaintext code, stored record), or None when the cooldown
            condition rejected the replacement
        """
        plaintext = self.generate_code()
        now = self._clock.now()
        record = VerificationCode(
            id=str(uuid.uuid4()),
            email=email,
            code_hash=self._hasher.hash(plaintext),
            attempt_count=0,
            max_attempts=self._policy.max_attempts,
            status=CodeStatus.PENDING,
            created_at=now,
            expires_at=now + self._policy.code_ttl,
        )
        if not self._repository.replace_code(record, issued_before=issued_before):
            return None
        return plaintext, record

    def attempt(self, email: str, code: str) -> AttemptOutcome:
        """
        Evaluate one verification attempt.

        Return values by scenario:
        - SUCCESS: code matched, record is now VERIFIED
        - INVALID_CODE: mismatch, attempts remain
        - LOCKED: record already locked, or this mismatch used the last attempt
        - EXPIRED: window elapsed (record marked EXPIRED)
        - NOT_FOUND: no record, or it was already verified
        """
        # Each lost compare-and-set means another writer made progress,
        # which is bounded by the attempt budget.
        for _ in range(self._policy.max_attempts + 2):
            record = self._repository.get_code(email)
            if record is None or record.status is CodeStatus.VERIFIED:
                return AttemptOutcome(VerifyResult.NOT_FOUND, 0, record)

            if record.status is CodeStatus.LOCKED:
                return AttemptOutcome(VerifyResult.LOCKED, 0, record)

            now = self._clock.now()
            if record.status is CodeStatus.EXPIRED or record.is_expired(now):
                if not record.status.is_terminal:
                    self._transition(record, CodeStatus.EXPIRED, record.attempt_count)
                return AttemptOutcome(VerifyResult.EXPIRED, 0, record)

            if record.attempt_count >= record.max_attempts:
                if self._transition(record, CodeStatus.LOCKED, record.attempt_count):
                    return AttemptOutcome(VerifyResult.LOCKED, 0, record)
                continue

            if self._hasher.compare(code, record.code_hash):
                if self._transition(record, CodeStatus.VERIFIED, record.attempt_count, verified_at=now):
                    return AttemptOutcome(VerifyResult.SUCCESS, record.attempts_remaining, record)
                continue

            attempts = record.attempt_count + 1
            status = CodeStatus.LOCKED if attempts >= record.max_attempts else CodeStatus.PENDING
            if self._transition(record, status, attempts):
                remaining = max(0, record.max_attempts - attempts)
                if status is CodeStatus.LOCKED:
                    logger.info("Verification locked after %d attempts: %s", attempts, email)
                    return AttemptOutcome(VerifyResult.LOCKED, 0, record)
                return AttemptOutcome(VerifyResult.INVALID_CODE, remaining, record)

        raise StorageError(f"Verification code for {email} kept changing during attempt")

    def _transition(self, record: VerificationCode, status: CodeStatus, attempts: int, verified_at=None) -> bool:
        return self._repository.update_code_state(
            record.id,
            expected_status=record.status,
            expected_attempts=record.attempt_count,
            status=status,
            attempt_count=attempts,
            verified_at=verified_at,
        )
