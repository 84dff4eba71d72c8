"""
PostgreSQL credential store - Implements CredentialStore protocol.

This module persists the credential pair in a shared database using
psycopg3 with raw SQL, for deployments where several client processes
(workers, CLI runs) must see the same session.

Rows are scoped by profile so one database can hold the sessions of
several client installations. All SQL uses parameterized queries.
"""

import logging
from pathlib import Path

from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


class PostgresCredentialStore:
    """
    Implements CredentialStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool, profile: str = "default") -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            profile: Namespace separating credential pairs in one table
        """
        self._pool = pool
        self._profile = profile

    def get(self, key: str) -> str | None:
        sql = "SELECT value FROM credentials WHERE profile = %s AND key = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (self._profile, key))
            row = cursor.fetchone()
        return row[0] if row is not None else None

    def set(self, key: str, value: str) -> None:
        """
        Upsert one credential.

        INSERT ... ON CONFLICT DO UPDATE keeps the write atomic when two
        processes log in at the same time; the last writer wins.
        """
        sql = """
            INSERT INTO credentials (profile, key, value, updated_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (profile, key) DO UPDATE
            SET value = EXCLUDED.value,
                updated_at = NOW()
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (self._profile, key, value))
            conn.commit()

    def remove(self, key: str) -> None:
        sql = "DELETE FROM credentials WHERE profile = %s AND key = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (self._profile, key))
            conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/credentials/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
