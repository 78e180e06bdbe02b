"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.clock import SystemClock
from src.adapters.repository.identity import PostgresIdentityStore, PostgresProfileStore
from src.adapters.repository.postgres import PostgresRegistrationRepository
from src.adapters.repository.sessions import PostgresSessionIssuer
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.resend import ResendEmailSender
from src.config.settings import get_settings
from src.domain.hashing import CodeHasher
from src.domain.ports import EmailSender
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionService

# Module-level singletons - both are stateless
_clock = SystemClock()
_console_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_email_sender() -> EmailSender:
    """Pick the email backend configured in settings."""
    settings = get_settings()
    if settings.email_backend == "resend":
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            from_email=settings.email_from,
            api_url=settings.resend_api_url,
            timeout=settings.email_timeout_seconds,
        )
    return _console_sender


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires the PostgreSQL stores, hasher, clock, email sender and policy
    into the domain service.
    """
    settings = get_settings()
    pool = get_pool(request)
    policy = settings.verification_policy()
    hasher = CodeHasher(rounds=settings.bcrypt_cost)
    return RegistrationService(
        registrations=PostgresRegistrationRepository(pool),
        identities=PostgresIdentityStore(pool, hasher, _clock),
        profiles=PostgresProfileStore(pool),
        sessions=PostgresSessionIssuer(pool, _clock, policy),
        email_sender=get_email_sender(),
        hasher=hasher,
        clock=_clock,
        policy=policy,
    )


def get_session_service(request: Request) -> SessionService:
    settings = get_settings()
    pool = get_pool(request)
    return SessionService(
        profiles=PostgresProfileStore(pool),
        sessions=PostgresSessionIssuer(pool, _clock, settings.verification_policy()),
    )


# Bearer token security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """
    Extract the access token from the Authorization header.

    Missing or non-Bearer headers get the same 401 body as an unknown token.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHORIZED", "message": "Missing authorization header"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
