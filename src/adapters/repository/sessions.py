"""
PostgreSQL session issuer - Implements SessionIssuer protocol.

Tokens are opaque random strings. Only their SHA-256 digests are stored,
so a database dump cannot be replayed as live sessions. Refreshing
revokes the old pair and issues a new one in the same transaction.
"""

import hashlib
import secrets
import uuid

from psycopg_pool import ConnectionPool

from src.domain.models import Identity, Session
from src.domain.policy import VerificationPolicy
from src.domain.ports import Clock

from .postgres import translate_errors


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class PostgresSessionIssuer:
    """Implements SessionIssuer protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool, clock: Clock, policy: VerificationPolicy) -> None:
        self._pool = pool
        self._clock = clock
        self._policy = policy

    def issue_session(self, identity: Identity) -> Session:
        with translate_errors("issue_session"), self._pool.connection() as conn, conn.cursor() as cursor:
            session = self._insert(cursor, identity.id)
            conn.commit()
        return session

    def refresh_session(self, refresh_token: str) -> tuple[Identity, Session] | None:
        select_sql = """
            SELECT s.id, i.id, i.email, i.email_confirmed_at
            FROM sessions s
            JOIN identities i ON i.id = s.identity_id
            WHERE s.refresh_token_hash = %s
              AND s.revoked_at IS NULL
              AND s.refresh_expires_at > %s
            FOR UPDATE OF s
        """
        now = self._clock.now()
        with translate_errors("refresh_session"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(select_sql, (token_digest(refresh_token), now))
            row = cursor.fetchone()
            if row is None:
                conn.commit()
                return None

            cursor.execute("UPDATE sessions SET revoked_at = %s WHERE id = %s::uuid", (now, row[0]))
            identity = Identity(id=str(row[1]), email=row[2], email_confirmed_at=row[3])
            session = self._insert(cursor, identity.id)
            conn.commit()
        return identity, session

    def resolve_access_token(self, access_token: str) -> Identity | None:
        sql = """
            SELECT i.id, i.email, i.email_confirmed_at
            FROM sessions s
            JOIN identities i ON i.id = s.identity_id
            WHERE s.access_token_hash = %s
              AND s.revoked_at IS NULL
              AND s.access_expires_at > %s
        """
        with translate_errors("resolve_access_token"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (token_digest(access_token), self._clock.now()))
            row = cursor.fetchone()

        if row is None:
            return None
        return Identity(id=str(row[0]), email=row[1], email_confirmed_at=row[2])

    def revoke_session(self, access_token: str) -> bool:
        sql = """
            UPDATE sessions
            SET revoked_at = %s
            WHERE access_token_hash = %s AND revoked_at IS NULL
        """
        with translate_errors("revoke_session"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (self._clock.now(), token_digest(access_token)))
            conn.commit()
            return cursor.rowcount == 1

    def _insert(self, cursor, identity_id: str) -> Session:
        now = self._clock.now()
        access_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(48)
        expires_at = now + self._policy.access_token_ttl
        refresh_expires_at = now + self._policy.refresh_token_ttl

        cursor.execute(
            """
            INSERT INTO sessions
                (id, identity_id, access_token_hash, refresh_token_hash,
                 access_expires_at, refresh_expires_at, created_at)
            VALUES (%s::uuid, %s::uuid, %s, %s, %s, %s, %s)
            """,
            (
                str(uuid.uuid4()),
                identity_id,
                token_digest(access_token),
                token_digest(refresh_token),
                expires_at,
                refresh_expires_at,
                now,
            ),
        )
        return Session(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self._policy.access_token_ttl.total_seconds()),
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
        )
