"""
Schema migrations for the kardex database.

Files named ``vNNN_<name>.sql`` in this package are applied in version
order. Each one runs in a single transaction together with its
schema_migrations record, so a failing migration leaves the database at the
previous version. Applied files are tracked by checksum; an edited migration
halts the run instead of being applied twice.
"""

import argparse
import asyncio
import hashlib
import re
import time
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from kardex.config import configure_logging, get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILENAME = re.compile(r"v(\d{3})_(\w+)\.sql")

TRACKING_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT NOT NULL,
    applied_at TEXT DEFAULT (datetime('now')),
    execution_time_ms INTEGER
)
"""

KARDEX_TABLES = ("products", "inventory_movements", "inventory_snapshots", "schema_migrations")

# Rows that no product replay will ever read
ORPHAN_QUERIES = {
    "orphan_movements": """
        SELECT COUNT(*) FROM inventory_movements m
        LEFT JOIN products p ON p.id = m.product_id
        WHERE p.id IS NULL
    """,
    "orphan_snapshots": """
        SELECT COUNT(*) FROM inventory_snapshots s
        LEFT JOIN products p ON p.id = s.product_id
        WHERE p.id IS NULL
    """,
}


@dataclass(frozen=True)
class Migration:
    """A versioned schema file."""

    version: str
    name: str
    sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode()).hexdigest()[:16]

    @classmethod
    def load(cls, path: Path) -> "Migration":
        match = MIGRATION_FILENAME.fullmatch(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        return cls(
            version=match.group(1),
            name=match.group(2),
            sql=path.read_text(encoding="utf-8"),
        )


@dataclass
class MigrationResult:
    """Outcome of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int = 0
    error: str | None = None


def discover_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Load migration files in version order, skipping misnamed ones."""
    migrations = []
    for path in sorted(migrations_dir.glob("v*.sql")):
        try:
            migrations.append(Migration.load(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return migrations


async def _recorded_checksums(conn: aiosqlite.Connection) -> dict[str, str]:
    cursor = await conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_migrations'"
    )
    if await cursor.fetchone() is None:
        return {}
    cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def apply_migration(
    conn: aiosqlite.Connection, migration: Migration
) -> MigrationResult:
    """Run one migration and record it, all in one transaction."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    start = time.perf_counter()

    try:
        # executescript commits whatever is pending, then BEGIN opens the
        # transaction that the record insert and commit below close
        await conn.executescript(f"BEGIN;\n{migration.sql}")
        elapsed = int((time.perf_counter() - start) * 1000)
        await conn.execute(
            """
            INSERT INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (migration.version, migration.name, migration.checksum, elapsed),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error(
            "migration_failed",
            version=migration.version,
            name=migration.name,
            error=str(e),
        )
        return MigrationResult(
            version=migration.version,
            name=migration.name,
            success=False,
            error=str(e),
        )

    logger.info("migration_applied", version=migration.version, execution_time_ms=elapsed)
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=True,
        execution_time_ms=elapsed,
    )


async def initialize_database(
    db_path: Path | None = None,
    migrations_dir: Path = MIGRATIONS_DIR,
) -> list[MigrationResult]:
    """
    Bring a database up to the latest schema version.

    Stops at the first failed or edited migration; later versions stay
    pending.

    Returns:
        Results of the migrations attempted in this run
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    results: list[MigrationResult] = []
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.execute(TRACKING_TABLE)
        await conn.commit()

        recorded = await _recorded_checksums(conn)
        for migration in discover_migrations(migrations_dir):
            checksum = recorded.get(migration.version)
            if checksum == migration.checksum:
                continue
            if checksum is not None:
                logger.error(
                    "migration_checksum_mismatch",
                    version=migration.version,
                    recorded=checksum,
                    found=migration.checksum,
                )
                results.append(
                    MigrationResult(
                        version=migration.version,
                        name=migration.name,
                        success=False,
                        error="file changed after it was applied",
                    )
                )
                break

            result = await apply_migration(conn, migration)
            results.append(result)
            if not result.success:
                break

    logger.info(
        "database_initialized",
        db_path=str(db_path),
        applied=sum(1 for r in results if r.success),
        failed=sum(1 for r in results if not r.success),
    )
    return results


async def get_migration_status(
    db_path: Path | None = None,
    migrations_dir: Path = MIGRATIONS_DIR,
) -> dict:
    """Applied, pending and edited migration versions of a database."""
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations(migrations_dir)

    recorded: dict[str, str] = {}
    if db_path.exists():
        async with aiosqlite.connect(db_path) as conn:
            recorded = await _recorded_checksums(conn)

    applied = sorted(recorded)
    return {
        "exists": db_path.exists(),
        "current_version": applied[-1] if applied else None,
        "applied_migrations": applied,
        "pending_migrations": [m.version for m in discovered if m.version not in recorded],
        "modified_migrations": [
            m.version
            for m in discovered
            if m.version in recorded and recorded[m.version] != m.checksum
        ],
    }


async def verify_integrity(db_path: Path | None = None) -> list[dict]:
    """
    Check a kardex database: SQLite integrity, foreign keys, tables and
    movement or snapshot rows whose product is gone.
    """
    db_path = db_path or get_settings().storage.db_path
    if not db_path.exists():
        return [{"check": "database_exists", "status": "FAIL", "path": str(db_path)}]

    checks = []
    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA integrity_check")
        result = (await cursor.fetchone())[0]
        checks.append({
            "check": "integrity",
            "status": "PASS" if result == "ok" else "FAIL",
            "result": result,
        })

        cursor = await conn.execute("PRAGMA foreign_key_check")
        violations = len(await cursor.fetchall())
        checks.append({
            "check": "foreign_keys",
            "status": "PASS" if not violations else "FAIL",
            "violations": violations,
        })

        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        tables = {row[0] for row in await cursor.fetchall()}
        missing = [t for t in KARDEX_TABLES if t not in tables]
        checks.append({
            "check": "required_tables",
            "status": "PASS" if not missing else "FAIL",
            "missing": missing,
        })

        if not missing:
            for check, query in ORPHAN_QUERIES.items():
                cursor = await conn.execute(query)
                count = (await cursor.fetchone())[0]
                checks.append({
                    "check": check,
                    "status": "PASS" if not count else "FAIL",
                    "rows": count,
                })

    failed = [c["check"] for c in checks if c["status"] != "PASS"]
    if failed:
        logger.warning("integrity_check_failed", db_path=str(db_path), checks=failed)
    return checks


def main(argv: list[str] | None = None) -> int:
    """Entry point of ``kardex-migrate``. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        prog="kardex-migrate",
        description="Apply kardex schema migrations",
    )
    parser.add_argument("--db-path", type=Path, help="Database file (default from settings)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--status", action="store_true", help="Show applied and pending versions")
    mode.add_argument("--verify", action="store_true", help="Run integrity checks")
    args = parser.parse_args(argv)

    configure_logging()

    if args.status:
        status = asyncio.run(get_migration_status(args.db_path))
        for key, value in status.items():
            print(f"{key}: {value}")
        return 0 if not status["modified_migrations"] else 1

    if args.verify:
        checks = asyncio.run(verify_integrity(args.db_path))
        for check in checks:
            print(f"[{check['status']}] {check['check']}")
        return 0 if all(c["status"] == "PASS" for c in checks) else 1

    results = asyncio.run(initialize_database(args.db_path))
    for result in results:
        line = f"[{'OK' if result.success else 'FAILED'}] v{result.version}_{result.name}"
        print(f"{line}: {result.error}" if result.error else line)
    if not results:
        print("Schema is up to date")
    return 0 if all(r.success for r in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
