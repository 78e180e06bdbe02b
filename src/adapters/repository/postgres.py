"""
PostgreSQL repository adapter - Implements RegistrationRepository protocol.

This module provides the PostgreSQL implementation of the domain's
registration port using psycopg3 with raw SQL.

Concurrency Design - Compare-and-Set:
------------------------------------
Verification attempts never do a blind read-then-write. update_code_state()
is a single UPDATE whose WHERE clause repeats the id, status and
attempt_count the caller read. Under READ COMMITTED a concurrent UPDATE on
the same row waits for the row lock and then re-checks the WHERE clause
against the committed version, so exactly one writer wins and the loser
sees rowcount 0.

replace_code() applies the same idea to the resend cooldown: the upsert's
DO UPDATE only fires when the existing code is old enough.

Timestamps always come from the caller's clock, not NOW(), so expiry can
be driven deterministically.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StorageError
from src.domain.models import CodeStatus, RegistrationRequest, VerificationCode

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise driver and pool failures (including timeouts) as StorageError."""
    try:
        yield
    except psycopg.Error as e:
        raise StorageError(f"{operation} failed: {e.__class__.__name__}") from e


class PostgresRegistrationRepository:
    """
    Implements RegistrationRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def save_request(self, request: RegistrationRequest) -> None:
        sql = """
            INSERT INTO registration_requests (email, name, credential_hash, created_at, expires_at)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (email) DO UPDATE
            SET name = EXCLUDED.name,
                credential_hash = EXCLUDED.credential_hash,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
        """
        params = (
            request.email,
            request.name,
            request.credential_hash,
            request.created_at,
            request.expires_at,
        )
        with translate_errors("save_request"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()

    def get_request(self, email: str) -> RegistrationRequest | None:
        sql = """
            SELECT email, name, credential_hash, created_at, expires_at
            FROM registration_requests
            WHERE email = %s
        """
        with translate_errors("get_request"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()

        if row is None:
            return None
        return RegistrationRequest(
            email=row[0],
            name=row[1],
            credential_hash=row[2],
            created_at=row[3],
            expires_at=row[4],
        )

    def delete_request(self, email: str) -> None:
        with translate_errors("delete_request"), self._pool.connection() as conn:
            conn.execute("DELETE FROM registration_requests WHERE email = %s", (email,))
            conn.commit()

    def get_code(self, email: str) -> VerificationCode | None:
        sql = """
            SELECT id, email, code_hash, attempt_count, max_attempts, status,
                   created_at, expires_at, verified_at
            FROM verification_codes
            WHERE email = %s
        """
        with translate_errors("get_code"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()

        if row is None:
            return None
        return VerificationCode(
            id=str(row[0]),
            email=row[1],
            code_hash=row[2],
            attempt_count=row[3],
            max_attempts=row[4],
            status=CodeStatus(row[5]),
            created_at=row[6],
            expires_at=row[7],
            verified_at=row[8],
        )

    def replace_code(self, code: VerificationCode, issued_before: datetime | None = None) -> bool:
        """
        Upsert the code for its email.

        With ``issued_before`` set, the DO UPDATE WHERE clause only matches
        when the existing row was created at or before the cutoff. A first
        insert is never blocked.

        Returns:
            True if a row was inserted or replaced
        """
        sql = """
            INSERT INTO verification_codes
                (id, email, code_hash, attempt_count, max_attempts, status, created_at, expires_at, verified_at)
            VALUES (%s::uuid, %s, %s, %s, %s, %s, %s, %s, NULL)
            ON CONFLICT (email) DO UPDATE
            SET id = EXCLUDED.id,
                code_hash = EXCLUDED.code_hash,
                attempt_count = EXCLUDED.attempt_count,
                max_attempts = EXCLUDED.max_attempts,
                status = EXCLUDED.status,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at,
                verified_at = NULL
            WHERE %s::timestamptz IS NULL OR verification_codes.created_at <= %s::timestamptz
        """
        params = (
            code.id,
            code.email,
            code.code_hash,
            code.attempt_count,
            code.max_attempts,
            code.status.value,
            code.created_at,
            code.expires_at,
            issued_before,
            issued_before,
        )
        with translate_errors("replace_code"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount == 1

    def update_code_state(
        self,
        code_id: str,
        expected_status: CodeStatus,
        expected_attempts: int,
        status: CodeStatus,
        attempt_count: int,
        verified_at: datetime | None = None,
    ) -> bool:
        sql = """
            UPDATE verification_codes
            SET status = %s, attempt_count = %s, verified_at = %s
            WHERE id = %s::uuid AND status = %s AND attempt_count = %s
        """
        params = (
            status.value,
            attempt_count,
            verified_at,
            code_id,
            expected_status.value,
            expected_attempts,
        )
        with translate_errors("update_code_state"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount == 1

    def delete_code(self, email: str) -> None:
        with translate_errors("delete_code"), self._pool.connection() as conn:
            conn.execute("DELETE FROM verification_codes WHERE email = %s", (email,))
            conn.commit()


def create_pool(database_url: str, min_size: int, max_size: int, timeout: float, statement_timeout_ms: int) -> ConnectionPool:
    """
    Create a connection pool whose waits and statements are bounded.

    ``timeout`` caps how long a caller waits for a connection; the
    server-side statement_timeout caps each query. Both surface as
    psycopg errors, which the repositories turn into StorageError.
    """
    return ConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        open=True,
        timeout=timeout,
        kwargs={"options": f"-c statement_timeout={statement_timeout_ms}"},
    )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
