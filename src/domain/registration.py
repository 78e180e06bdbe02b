"""
Registration domain service - Email verification saga.

This module coordinates the multi-store registration workflow:

    register     -> RegistrationRequest + VerificationCode, email the code
    verify_code  -> drive the code engine, then provision identity + profile,
                    clean up temporary records, issue a session
    resend_code  -> cooldown-gated replacement of the code
    login        -> authenticate directly against the identity store

Saga Steps (no cross-store transaction)
=======================================

Forward step                     Compensation on later failure
-------------------------------  --------------------------------------
save RegistrationRequest         delete RegistrationRequest
store VerificationCode           (none, last step of register)
create identity                  delete identity
create profile                   (none, commits the account)

Email delivery and session issuance never roll anything back: a failed
delivery can be retried with resend, and a failed session still leaves a
usable account the client can log in to.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .codes import VerificationCodeEngine
from .cooldown import ResendCooldown
from .exceptions import (
    CodeExpired,
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    HashingError,
    IdentityConflict,
    InvalidCode,
    InvalidCredentials,
    RegistrationExpired,
    RegistrationNotFound,
    ResendRateLimited,
    ServerError,
    StorageError,
    ValidationFailed,
    VerificationLocked,
)
from .hashing import CodeHasher
from .models import (
    AuthenticatedUser,
    RegistrationRequest,
    RegistrationResult,
    ResendResult,
    VerificationCode,
)
from .policy import VerificationPolicy
from .ports import (
    Clock,
    EmailSender,
    IdentityStore,
    ProfileStore,
    RegistrationRepository,
    SessionIssuer,
    VerifyResult,
)
from .saga import Compensations

logger = logging.getLogger(__name__)

SESSION_ISSUE_FAILED = "SESSION_ISSUE_FAILED"


@dataclass
class RegistrationService:
    """
    Domain service for user registration and sign-in.

    Holds no mutable state of its own; every decision is made against the
    backing stores, so one instance can serve concurrent requests.
    """

    registrations: RegistrationRepository
    identities: IdentityStore
    profiles: ProfileStore
    sessions: SessionIssuer
    email_sender: EmailSender
    hasher: CodeHasher
    clock: Clock
    policy: VerificationPolicy = field(default_factory=VerificationPolicy)

    def __post_init__(self) -> None:
        self.codes = VerificationCodeEngine(self.registrations, self.hasher, self.policy, self.clock)
        self.cooldown = ResendCooldown(self.policy.resend_cooldown)

    def register(self, email: str, name: str, password: str) -> RegistrationResult:
        """
        Start a registration and email a verification code.

        Any earlier pending registration for the same email is superseded.

        Args:
            email: User's email address (will be normalized)
            name: Display name
            password: User's password (only its hash is stored)

        Returns:
            Normalized email and the code's expiry time

        Raises:
            ValidationFailed: missing email, name or password
            EmailAlreadyRegistered: an identity already exists for the email
            EmailDeliveryFailed: records were created but the email was not sent
            ServerError: storage or hashing failure
        """
        normalized_email = self._normalize_email(email)
        display_name = (name or "").strip()
        if not display_name:
            raise ValidationFailed("name", "Name is required")
        if not password:
            raise ValidationFailed("password", "Password is required")

        with self._server_errors("register", normalized_email):
            if self.identities.find_by_email(normalized_email) is not None:
                raise EmailAlreadyRegistered(normalized_email)

            self.registrations.delete_code(normalized_email)
            self.registrations.delete_request(normalized_email)

            now = self.clock.now()
            request = RegistrationRequest(
                email=normalized_email,
                name=display_name,
                credential_hash=self.hasher.hash(password),
                created_at=now,
                expires_at=now + self.policy.registration_ttl,
            )

            compensations = Compensations()
            self.registrations.save_request(request)
            compensations.push(
                f"delete registration request for {normalized_email}",
                lambda: self.registrations.delete_request(normalized_email),
            )
            try:
                plaintext, record = self.codes.issue(normalized_email)
            except (StorageError, HashingError):
                compensations.run()
                raise

        self._deliver(normalized_email, plaintext, record)
        return RegistrationResult(email=normalized_email, code_expires_at=record.expires_at)

    def verify_code(self, email: str, code: str) -> AuthenticatedUser:
        """
        Verify the emailed code and provision the account.

        The registration's own 30-minute window is checked before the code
        is evaluated, so an abandoned registration reports
        RegistrationExpired even while its latest code is still fresh.

        Returns:
            The provisioned identity with a session. If only session
            issuance failed, ``session`` is None and ``warning`` is set.

        Raises:
            ValidationFailed: code is not the expected number of digits
            RegistrationNotFound: nothing pending, the caller must register again
            RegistrationExpired / CodeExpired: window elapsed, records deleted
            InvalidCode: mismatch, carries attempts_remaining
            VerificationLocked: attempt budget exhausted
            EmailAlreadyRegistered: identity appeared concurrently
            ServerError: storage failure, or profile creation failed and
                the identity was rolled back
        """
        normalized_email = self._normalize_email(email)
        code = (code or "").strip()
        if len(code) != self.policy.code_length or not (code.isascii() and code.isdigit()):
            raise ValidationFailed("code", f"Verification code must be {self.policy.code_length} digits")

        with self._server_errors("verify_code", normalized_email):
            request = self.registrations.get_request(normalized_email)
            if request is None or self.registrations.get_code(normalized_email) is None:
                raise RegistrationNotFound(normalized_email)

            if request.is_expired(self.clock.now()):
                self._discard_pending(normalized_email)
                raise RegistrationExpired(normalized_email)

            outcome = self.codes.attempt(normalized_email, code)

        if outcome.result is VerifyResult.EXPIRED:
            self._discard_pending(normalized_email)
            raise CodeExpired(normalized_email)
        if outcome.result is VerifyResult.LOCKED:
            raise VerificationLocked(normalized_email)
        if outcome.result is VerifyResult.INVALID_CODE:
            raise InvalidCode(outcome.attempts_remaining)
        if outcome.result is VerifyResult.NOT_FOUND:
            raise RegistrationNotFound(normalized_email)

        return self._provision(request)

    def resend_code(self, email: str) -> ResendResult:
        """
        Replace the pending code with a new one and email it.

        The registration request is read but never modified. Locked and
        expired codes are replaced the same way as pending ones.

        Raises:
            RegistrationNotFound: no pending registration
            RegistrationExpired: registration window elapsed; cleanup is left to
                register and verify_code
            ResendRateLimited: cooldown active, carries retry_after_seconds
            EmailDeliveryFailed: new code stored but not sent
            ServerError: storage or hashing failure
        """
        normalized_email = self._normalize_email(email)

        with self._server_errors("resend_code", normalized_email):
            request = self.registrations.get_request(normalized_email)
            if request is None:
                raise RegistrationNotFound(normalized_email)

            now = self.clock.now()
            if request.is_expired(now):
                raise RegistrationExpired(normalized_email)

            decision = self.cooldown.check(self.registrations.get_code(normalized_email), now)
            if not decision.allowed:
                raise ResendRateLimited(decision.retry_after_seconds)

            issued = self.codes.issue(normalized_email, issued_before=self.cooldown.cutoff(now))
            if issued is None:
                # A concurrent resend stored its code first
                decision = self.cooldown.check(self.registrations.get_code(normalized_email), self.clock.now())
                raise ResendRateLimited(max(1, decision.retry_after_seconds))

        plaintext, record = issued
        self._deliver(normalized_email, plaintext, record)
        return ResendResult(
            code_expires_at=record.expires_at,
            can_resend_after=record.created_at + self.policy.resend_cooldown,
        )

    def login(self, email: str, password: str) -> AuthenticatedUser:
        """
        Authenticate against the identity store and issue a session.

        Raises:
            InvalidCredentials: unknown email or wrong password
            ServerError: storage failure
        """
        normalized_email = self._normalize_email(email)
        if not password:
            raise ValidationFailed("password", "Password is required")

        with self._server_errors("login", normalized_email):
            identity = self.identities.authenticate(normalized_email, password)
            if identity is None:
                raise InvalidCredentials()
            profile = self.profiles.get_profile(identity.id)
            session = self.sessions.issue_session(identity)

        return AuthenticatedUser(identity=identity, name=profile.name if profile else "", session=session)

    def _provision(self, request: RegistrationRequest) -> AuthenticatedUser:
        email = request.email
        compensations = Compensations()

        try:
            identity = self.identities.create_identity(email, request.credential_hash, pre_confirmed=True)
        except IdentityConflict:
            logger.info("Identity already exists at provisioning time: %s", email)
            self._discard_pending(email)
            raise EmailAlreadyRegistered(email) from None
        except StorageError as e:
            logger.exception("Identity creation failed: %s", email)
            raise ServerError() from e

        compensations.push(
            f"delete identity {identity.id} for {email}",
            lambda: self.identities.delete_identity(identity.id),
        )

        try:
            profile = self.profiles.create_profile(identity, request.name, self.clock.now())
        except StorageError as e:
            logger.exception("Profile creation failed for identity %s (%s)", identity.id, email)
            compensations.run()
            raise ServerError() from e

        compensations.clear()
        self._discard_pending(email)
        logger.info("Account provisioned: %s (%s)", identity.id, email)

        try:
            session = self.sessions.issue_session(identity)
        except StorageError:
            logger.exception("Session issuance failed after provisioning %s", email)
            return AuthenticatedUser(identity=identity, name=profile.name, session=None, warning=SESSION_ISSUE_FAILED)

        return AuthenticatedUser(identity=identity, name=profile.name, session=session)

    def _deliver(self, email: str, code: str, record: VerificationCode) -> None:
        if not self.email_sender.send_verification_code(email, code, self.policy.code_valid_minutes):
            logger.error("Verification email delivery failed: %s", email)
            raise EmailDeliveryFailed(record.expires_at)

    def _discard_pending(self, email: str) -> None:
        """Best-effort removal of the code and registration request."""
        for description, delete in (
            ("verification code", self.registrations.delete_code),
            ("registration request", self.registrations.delete_request),
        ):
            try:
                delete(email)
            except StorageError:
                logger.exception("Failed to delete %s for %s", description, email)

    @contextmanager
    def _server_errors(self, operation: str, email: str) -> Iterator[None]:
        try:
            yield
        except (StorageError, HashingError) as e:
            logger.exception("%s failed for %s", operation, email)
            raise ServerError() from e

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        normalized = (email or "").strip().lower()
        if not normalized:
            raise ValidationFailed("email", "Email is required")
        return normalized
