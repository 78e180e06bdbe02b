"""
In-memory test doubles for every domain port.

All stores are guarded by a lock so adversarial tests can hammer them
from threads; update_code_state() and replace_code() honour the same
compare-and-set semantics as the PostgreSQL adapter.
"""

import hashlib
import secrets
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from src.domain.exceptions import IdentityConflict, StorageError
from src.domain.hashing import CodeHasher
from src.domain.models import (
    CodeStatus,
    Identity,
    RegistrationRequest,
    Session,
    UserProfile,
    VerificationCode,
)
from src.domain.policy import VerificationPolicy


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


class InMemoryRegistrationRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.requests: dict[str, RegistrationRequest] = {}
        self.codes: dict[str, VerificationCode] = {}
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed")

    def save_request(self, request: RegistrationRequest) -> None:
        self._maybe_fail("save_request")
        with self._lock:
            self.requests[request.email] = request

    def get_request(self, email: str) -> RegistrationRequest | None:
        self._maybe_fail("get_request")
        with self._lock:
            return self.requests.get(email)

    def delete_request(self, email: str) -> None:
        self._maybe_fail("delete_request")
        with self._lock:
            self.requests.pop(email, None)

    def get_code(self, email: str) -> VerificationCode | None:
        self._maybe_fail("get_code")
        with self._lock:
            return self.codes.get(email)

    def replace_code(self, code: VerificationCode, issued_before: datetime | None = None) -> bool:
        self._maybe_fail("replace_code")
        with self._lock:
            existing = self.codes.get(code.email)
            if issued_before is not None and existing is not None and existing.created_at > issued_before:
                return False
            self.codes[code.email] = code
            return True

    def update_code_state(
        self,
        code_id: str,
        expected_status: CodeStatus,
        expected_attempts: int,
        status: CodeStatus,
        attempt_count: int,
        verified_at: datetime | None = None,
    ) -> bool:
        self._maybe_fail("update_code_state")
        with self._lock:
            for email, record in self.codes.items():
                if record.id != code_id:
                    continue
                if record.status is not expected_status or record.attempt_count != expected_attempts:
                    return False
                self.codes[email] = replace(
                    record, status=status, attempt_count=attempt_count, verified_at=verified_at
                )
                return True
            return False

    def delete_code(self, email: str) -> None:
        self._maybe_fail("delete_code")
        with self._lock:
            self.codes.pop(email, None)


class InMemoryIdentityStore:
    def __init__(self, hasher: CodeHasher, clock: FakeClock) -> None:
        self._lock = threading.Lock()
        self._hasher = hasher
        self._clock = clock
        self.identities: dict[str, Identity] = {}
        self.password_hashes: dict[str, str] = {}
        self.fail_create = False
        self.fail_delete = False
        self.deleted: list[str] = []

    def find_by_email(self, email: str) -> Identity | None:
        with self._lock:
            return next((i for i in self.identities.values() if i.email == email), None)

    def create_identity(self, email: str, credential_hash: str, pre_confirmed: bool) -> Identity:
        if self.fail_create:
            raise StorageError("create_identity failed")
        with self._lock:
            if any(i.email == email for i in self.identities.values()):
                raise IdentityConflict(email)
            identity = Identity(
                id=str(uuid.uuid4()),
                email=email,
                email_confirmed_at=self._clock.now() if pre_confirmed else None,
            )
            self.identities[identity.id] = identity
            self.password_hashes[identity.id] = credential_hash
            return identity

    def delete_identity(self, identity_id: str) -> None:
        if self.fail_delete:
            raise StorageError("delete_identity failed")
        with self._lock:
            self.identities.pop(identity_id, None)
            self.password_hashes.pop(identity_id, None)
            self.deleted.append(identity_id)

    def authenticate(self, email: str, password: str) -> Identity | None:
        identity = self.find_by_email(email)
        if identity is None:
            return None
        if not self._hasher.compare(password, self.password_hashes[identity.id]):
            return None
        return identity


class InMemoryProfileStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.profiles: dict[str, UserProfile] = {}
        self.fail_create = False

    def create_profile(self, identity: Identity, name: str, now: datetime) -> UserProfile:
        if self.fail_create:
            raise StorageError("create_profile failed")
        profile = UserProfile(id=identity.id, name=name, email=identity.email, created_at=now, updated_at=now)
        with self._lock:
            self.profiles[identity.id] = profile
        return profile

    def get_profile(self, identity_id: str) -> UserProfile | None:
        with self._lock:
            return self.profiles.get(identity_id)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class InMemorySessionIssuer:
    def __init__(self, identities: InMemoryIdentityStore, clock: FakeClock, policy: VerificationPolicy) -> None:
        self._lock = threading.Lock()
        self._identities = identities
        self._clock = clock
        self._policy = policy
        # digest -> (identity_id, access_expires_at, refresh_digest, refresh_expires_at)
        self.sessions: dict[str, dict] = {}
        self.fail_issue = False
        self.issued: list[str] = []

    def issue_session(self, identity: Identity) -> Session:
        if self.fail_issue:
            raise StorageError("issue_session failed")
        with self._lock:
            return self._issue(identity.id)

    def refresh_session(self, refresh_token: str) -> tuple[Identity, Session] | None:
        now = self._clock.now()
        with self._lock:
            for key, entry in self.sessions.items():
                if entry["refresh"] == _digest(refresh_token):
                    if entry["revoked"] or entry["refresh_expires_at"] <= now:
                        return None
                    entry["revoked"] = True
                    identity = self._identities.identities.get(entry["identity_id"])
                    return identity, self._issue(entry["identity_id"])
        return None

    def resolve_access_token(self, access_token: str) -> Identity | None:
        with self._lock:
            entry = self.sessions.get(_digest(access_token))
        if entry is None or entry["revoked"] or entry["expires_at"] <= self._clock.now():
            return None
        return self._identities.identities.get(entry["identity_id"])

    def revoke_session(self, access_token: str) -> bool:
        with self._lock:
            entry = self.sessions.get(_digest(access_token))
            if entry is None or entry["revoked"]:
                return False
            entry["revoked"] = True
            return True

    def _issue(self, identity_id: str) -> Session:
        now = self._clock.now()
        access_token = secrets.token_urlsafe(16)
        refresh_token = secrets.token_urlsafe(16)
        session = Session(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self._policy.access_token_ttl.total_seconds()),
            expires_at=now + self._policy.access_token_ttl,
            refresh_expires_at=now + self._policy.refresh_token_ttl,
        )
        self.sessions[_digest(access_token)] = {
            "identity_id": identity_id,
            "expires_at": session.expires_at,
            "refresh": _digest(refresh_token),
            "refresh_expires_at": session.refresh_expires_at,
            "revoked": False,
        }
        self.issued.append(identity_id)
        return session


class RecordingEmailSender:
    """Captures sent codes; flip ``succeed`` to simulate gateway failure."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, int]] = []
        self.succeed = True

    def send_verification_code(self, email: str, code: str, valid_minutes: int) -> bool:
        self.sent.append((email, code, valid_minutes))
        return self.succeed

    def last_code(self, email: str) -> str:
        return next(code for to, code, _ in reversed(self.sent) if to == email)
