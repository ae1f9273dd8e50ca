"""Database migrations module."""

from kardex.infrastructure.storage.sqlite.migrations.migrator import (
    Migration,
    MigrationResult,
    apply_migration,
    discover_migrations,
    get_migration_status,
    initialize_database,
    verify_integrity,
)

__all__ = [
    "Migration",
    "MigrationResult",
    "apply_migration",
    "discover_migrations",
    "get_migration_status",
    "initialize_database",
    "verify_integrity",
]
