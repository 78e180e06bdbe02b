"""Repository adapters - Database implementations."""

from .identity import PostgresIdentityStore, PostgresProfileStore
from .postgres import PostgresRegistrationRepository, create_pool, run_migrations
from .sessions import PostgresSessionIssuer

__all__ = [
    "PostgresIdentityStore",
    "PostgresProfileStore",
    "PostgresRegistrationRepository",
    "PostgresSessionIssuer",
    "create_pool",
    "run_migrations",
]
