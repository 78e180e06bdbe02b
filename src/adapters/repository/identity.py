"""
PostgreSQL identity and profile adapters.

Implements the IdentityStore and ProfileStore protocols.

Security Design - Timing Oracle Prevention:
------------------------------------------
authenticate() always runs bcrypt, comparing against a pre-computed dummy
hash when the email is unknown, so response time does not reveal whether
an account exists.
"""

import uuid
from datetime import datetime

import bcrypt
import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import HashingError, IdentityConflict, StorageError
from src.domain.hashing import CodeHasher
from src.domain.models import Identity, UserProfile
from src.domain.ports import Clock

from .postgres import translate_errors

# Pre-computed bcrypt hash for timing oracle prevention.
# Used when email doesn't exist to ensure constant-time password comparison.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


class PostgresIdentityStore:
    """
    Implements IdentityStore protocol via psycopg3.

    Identities adopt the bcrypt digest produced at registration time, so
    the plaintext password is never stored anywhere.
    """

    def __init__(self, pool: ConnectionPool, hasher: CodeHasher, clock: Clock) -> None:
        self._pool = pool
        self._hasher = hasher
        self._clock = clock

    def find_by_email(self, email: str) -> Identity | None:
        sql = "SELECT id, email, email_confirmed_at FROM identities WHERE email = %s"
        with translate_errors("find_by_email"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _identity(row)

    def create_identity(self, email: str, credential_hash: str, pre_confirmed: bool) -> Identity:
        """
        Insert a new identity.

        Raises:
            IdentityConflict: UNIQUE(email) violated by a concurrent registration
        """
        now = self._clock.now()
        identity = Identity(
            id=str(uuid.uuid4()),
            email=email,
            email_confirmed_at=now if pre_confirmed else None,
        )
        sql = """
            INSERT INTO identities (id, email, password_hash, email_confirmed_at, created_at)
            VALUES (%s::uuid, %s, %s, %s, %s)
        """
        params = (identity.id, email, credential_hash, identity.email_confirmed_at, now)
        try:
            with self._pool.connection() as conn:
                conn.execute(sql, params)
                conn.commit()
        except psycopg.errors.UniqueViolation as e:
            raise IdentityConflict(email) from e
        except psycopg.Error as e:
            raise StorageError("create_identity failed") from e
        return identity

    def delete_identity(self, identity_id: str) -> None:
        with translate_errors("delete_identity"), self._pool.connection() as conn:
            conn.execute("DELETE FROM identities WHERE id = %s::uuid", (identity_id,))
            conn.commit()

    def authenticate(self, email: str, password: str) -> Identity | None:
        sql = """
            SELECT id, email, email_confirmed_at, password_hash
            FROM identities
            WHERE email = %s
        """
        with translate_errors("authenticate"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()

        stored_hash = row[3] if row is not None else _DUMMY_BCRYPT_HASH
        try:
            password_valid = self._hasher.compare(password, stored_hash)
        except HashingError:
            # Over-long or undecodable input can never match a stored digest
            password_valid = False

        if row is None or not password_valid or row[2] is None:
            return None
        return _identity(row)


class PostgresProfileStore:
    """Implements ProfileStore protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create_profile(self, identity: Identity, name: str, now: datetime) -> UserProfile:
        sql = """
            INSERT INTO user_profiles (id, name, email, created_at, updated_at)
            VALUES (%s::uuid, %s, %s, %s, %s)
        """
        with translate_errors("create_profile"), self._pool.connection() as conn:
            conn.execute(sql, (identity.id, name, identity.email, now, now))
            conn.commit()
        return UserProfile(id=identity.id, name=name, email=identity.email, created_at=now, updated_at=now)

    def get_profile(self, identity_id: str) -> UserProfile | None:
        sql = "SELECT id, name, email, created_at, updated_at FROM user_profiles WHERE id = %s::uuid"
        with translate_errors("get_profile"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (identity_id,))
            row = cursor.fetchone()

        if row is None:
            return None
        return UserProfile(id=str(row[0]), name=row[1], email=row[2], created_at=row[3], updated_at=row[4])


def _identity(row) -> Identity | None:
    if row is None:
        return None
    return Identity(id=str(row[0]), email=row[1], email_confirmed_at=row[2])
