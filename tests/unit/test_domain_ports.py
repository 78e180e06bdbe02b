"""
Unit tests for domain ports, models and exceptions.

Tests verify:
- Result and status enums are properly defined
- The in-memory doubles satisfy every port
- Exceptions carry stable codes and details
- Domain purity (zero framework imports)
"""

import inspect
import json
import subprocess
from datetime import datetime, timedelta, timezone
from enum import Enum

import pytest

from src.domain.exceptions import (
    CodeExpired,
    EmailAlreadyRegistered,
    IdentityConflict,
    InvalidCode,
    RegistrationError,
    RegistrationExpired,
    ResendRateLimited,
    StorageError,
    ValidationFailed,
    VerificationExpired,
    VerificationLocked,
)
from src.domain.models import CodeStatus, RegistrationRequest, VerificationCode
from src.domain.ports import (
    EmailSender,
    IdentityStore,
    ProfileStore,
    RegistrationRepository,
    SessionIssuer,
    VerifyResult,
)
from tests.fakes import (
    InMemoryIdentityStore,
    InMemoryProfileStore,
    InMemoryRegistrationRepository,
    InMemorySessionIssuer,
    RecordingEmailSender,
)

NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


class TestVerifyResultEnum:
    """Tests for VerifyResult enum."""

    def test_verify_result_is_enum(self) -> None:
        """VerifyResult is an Enum class."""
        assert issubclass(VerifyResult, Enum)

    def test_verify_result_members(self) -> None:
        """VerifyResult covers every attempt outcome."""
        assert {r.name for r in VerifyResult} == {"SUCCESS", "INVALID_CODE", "EXPIRED", "LOCKED", "NOT_FOUND"}


class TestCodeStatusEnum:
    """Tests for CodeStatus enum."""

    def test_code_status_is_str_mixin(self) -> None:
        """CodeStatus compares equal to its string value."""
        assert issubclass(CodeStatus, str)
        assert CodeStatus.PENDING == "pending"

    def test_code_status_json_serializable(self) -> None:
        """CodeStatus serializes as its string value."""
        assert json.dumps({"status": CodeStatus.LOCKED}) == '{"status": "locked"}'

    @pytest.mark.parametrize(
        ("status", "terminal"),
        [
            (CodeStatus.PENDING, False),
            (CodeStatus.VERIFIED, True),
            (CodeStatus.LOCKED, True),
            (CodeStatus.EXPIRED, True),
        ],
    )
    def test_terminal_states(self, status: CodeStatus, terminal: bool) -> None:
        """Only pending is non-terminal."""
        assert status.is_terminal is terminal


class TestModels:
    """Tests for domain model helpers."""

    def test_expiry_boundary_is_inclusive(self) -> None:
        """A request is expired at exactly its expiry time."""
        request = RegistrationRequest(
            email="a@example.com",
            name="A",
            credential_hash="hash",
            created_at=NOW,
            expires_at=NOW + timedelta(minutes=30),
        )

        assert not request.is_expired(NOW + timedelta(minutes=30) - timedelta(microseconds=1))
        assert request.is_expired(NOW + timedelta(minutes=30))

    def test_attempts_remaining_never_negative(self) -> None:
        """attempts_remaining bottoms out at zero."""
        code = VerificationCode(
            id="id",
            email="a@example.com",
            code_hash="hash",
            attempt_count=5,
            max_attempts=5,
            status=CodeStatus.LOCKED,
            created_at=NOW,
            expires_at=NOW + timedelta(minutes=5),
        )

        assert code.attempts_remaining == 0


def _public_methods(cls: type) -> set[str]:
    return {name for name, _ in inspect.getmembers(cls, inspect.isfunction) if not name.startswith("_")}


class TestPortConformance:
    """The test doubles implement every port method, so they stay in sync with the protocols."""

    @pytest.mark.parametrize(
        ("port", "double"),
        [
            (RegistrationRepository, InMemoryRegistrationRepository),
            (IdentityStore, InMemoryIdentityStore),
            (ProfileStore, InMemoryProfileStore),
            (SessionIssuer, InMemorySessionIssuer),
            (EmailSender, RecordingEmailSender),
        ],
    )
    def test_double_implements_port(self, port: type, double: type) -> None:
        """Each in-memory double implements its port."""
        assert _public_methods(port) <= _public_methods(double)

    def test_replace_code_accepts_cutoff(self) -> None:
        """replace_code takes an optional cooldown cutoff."""
        params = inspect.signature(RegistrationRepository.replace_code).parameters
        assert params["issued_before"].default is None


class TestDomainExceptions:
    """Tests for the domain error hierarchy."""

    def test_all_domain_errors_share_base(self) -> None:
        """Domain errors derive from RegistrationError."""
        for error in (EmailAlreadyRegistered, InvalidCode, VerificationLocked, ResendRateLimited):
            assert issubclass(error, RegistrationError)

    def test_adapter_errors_are_not_domain_errors(self) -> None:
        """Adapter errors stay outside the domain hierarchy."""
        assert not issubclass(StorageError, RegistrationError)
        assert issubclass(IdentityConflict, StorageError)

    def test_expired_variants_report_scope(self) -> None:
        """Both expired errors carry their scope."""
        assert issubclass(RegistrationExpired, VerificationExpired)
        assert RegistrationExpired().details() == {"scope": "registration"}
        assert CodeExpired().details() == {"scope": "code"}
        assert CodeExpired.code == "CODE_EXPIRED"
        assert RegistrationExpired.code == "REGISTRATION_EXPIRED"

    def test_details_carry_machine_readable_fields(self) -> None:
        """details() exposes the extra response fields."""
        assert InvalidCode(attempts_remaining=2).details() == {"attempts_remaining": 2}
        assert VerificationLocked().details() == {"attempts_remaining": 0}
        assert ResendRateLimited(retry_after_seconds=30).details() == {"retry_after_seconds": 30}
        assert ValidationFailed("email", "Email is required").details() == {
            "field": "email",
            "reason": "Email is required",
        }

    def test_default_message_from_class(self) -> None:
        """The class message is used when none is given."""
        assert str(EmailAlreadyRegistered()) == "Email is already registered"


class TestDomainPurity:
    """Domain layer has zero framework imports."""

    @pytest.mark.parametrize(
        "pattern",
        ["from fastapi", "import fastapi", "from pydantic", "import pydantic", "from psycopg", "import psycopg"],
    )
    def test_no_framework_imports_in_domain(self, pattern: str) -> None:
        """Domain layer has no framework imports."""
        result = subprocess.run(
            ["grep", "-r", pattern, "src/domain/"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0, f"Framework import found: {result.stdout}"
