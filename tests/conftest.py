"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock and the in-memory port doubles
- A fully wired RegistrationService and SessionService
- A fast bcrypt hasher (cost 4) so tests stay quick
"""

import pytest

from src.domain.hashing import CodeHasher
from src.domain.policy import VerificationPolicy
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionService
from tests.fakes import (
    FakeClock,
    InMemoryIdentityStore,
    InMemoryProfileStore,
    InMemoryRegistrationRepository,
    InMemorySessionIssuer,
    RecordingEmailSender,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> CodeHasher:
    return CodeHasher(rounds=4)


@pytest.fixture
def policy() -> VerificationPolicy:
    return VerificationPolicy()


@pytest.fixture
def registrations() -> InMemoryRegistrationRepository:
    return InMemoryRegistrationRepository()


@pytest.fixture
def identities(hasher: CodeHasher, clock: FakeClock) -> InMemoryIdentityStore:
    return InMemoryIdentityStore(hasher, clock)


@pytest.fixture
def profiles() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def sessions(identities: InMemoryIdentityStore, clock: FakeClock, policy: VerificationPolicy) -> InMemorySessionIssuer:
    return InMemorySessionIssuer(identities, clock, policy)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def service(
    registrations: InMemoryRegistrationRepository,
    identities: InMemoryIdentityStore,
    profiles: InMemoryProfileStore,
    sessions: InMemorySessionIssuer,
    email_sender: RecordingEmailSender,
    hasher: CodeHasher,
    clock: FakeClock,
    policy: VerificationPolicy,
) -> RegistrationService:
    return RegistrationService(
        registrations=registrations,
        identities=identities,
        profiles=profiles,
        sessions=sessions,
        email_sender=email_sender,
        hasher=hasher,
        clock=clock,
        policy=policy,
    )


@pytest.fixture
def session_service(profiles: InMemoryProfileStore, sessions: InMemorySessionIssuer) -> SessionService:
    return SessionService(profiles=profiles, sessions=sessions)
