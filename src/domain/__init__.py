"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration verification saga: code hashing,
the verification code state machine, the resend cooldown and the
coordinator that provisions identities. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .exceptions import (
    CodeExpired,
    EmailAlreadyRegistered,
    EmailDeliveryFailed,
    InvalidCode,
    InvalidCredentials,
    RegistrationError,
    RegistrationExpired,
    RegistrationNotFound,
    ResendRateLimited,
    ServerError,
    Unauthorized,
    ValidationFailed,
    VerificationExpired,
    VerificationLocked,
)
from .hashing import CodeHasher
from .models import CodeStatus
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
from .registration import RegistrationService
from .sessions import SessionService

__all__ = [
    "Clock",
    "CodeExpired",
    "CodeHasher",
    "CodeStatus",
    "EmailAlreadyRegistered",
    "EmailDeliveryFailed",
    "EmailSender",
    "IdentityStore",
    "InvalidCode",
    "InvalidCredentials",
    "ProfileStore",
    "RegistrationError",
    "RegistrationExpired",
    "RegistrationNotFound",
    "RegistrationRepository",
    "RegistrationService",
    "ResendRateLimited",
    "ServerError",
    "SessionIssuer",
    "SessionService",
    "Unauthorized",
    "ValidationFailed",
    "VerificationExpired",
    "VerificationLocked",
    "VerificationPolicy",
    "VerifyResult",
]
