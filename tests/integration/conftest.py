"""
Shared fixtures for integration tests.

Every test here talks to a real PostgreSQL database at DATABASE_URL.
When the database is unreachable the whole directory is
skipped rather than failed.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import create_pool, run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Connection pool with migrations applied; skips when PostgreSQL is down."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = create_pool(
        settings.database_url,
        min_size=1,
        max_size=10,
        timeout=5.0,
        statement_timeout_ms=settings.statement_timeout_ms,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty every table before each test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE verification_codes, registration_requests, sessions, user_profiles, identities")
        conn.commit()
    yield
