"""SQLite database connection manager with migration support.

Manages the connection lifecycle, applies PRAGMAs (WAL, foreign keys,
busy_timeout) on every connect, and runs pending SQL migrations from
the package's migrations/ directory using PRAGMA user_version for tracking.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


class Database:
    """SQLite connection manager with migration support.

    Usage::

        db = Database("data/ballstats.db")
        db.initialize()  # connect + apply migrations
        # ... use db.conn ...
        db.close()

    Or as a context manager::

        with Database("data/ballstats.db") as db:
            db.apply_migrations()
            # ... use db.conn ...
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open connection and configure PRAGMAs.

        Sets WAL journal mode, enables foreign keys, and configures
        a 5-second busy timeout for lock contention.
        """
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        # PRAGMAs must be set per-connection
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute("PRAGMA synchronous = NORMAL")
        self._conn.execute("PRAGMA busy_timeout = 5000")
        return self._conn

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection or raise if not connected."""
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def get_schema_version(self) -> int:
        """Return the current schema version (PRAGMA user_version)."""
        return self.conn.execute("PRAGMA user_version").fetchone()[0]

    def apply_migrations(self, migrations_dir: Path | None = None) -> int:
        """Apply pending SQL migration files.

        Migration files are named ``NNN_description.sql`` where NNN is
        the version number.  Files with version <= current user_version
        are skipped.  After each file is applied, user_version is set
        to the file's version number.

        Args:
            migrations_dir: Directory containing .sql files.
                Defaults to the migrations shipped with the package.

        Returns:
            Number of migrations applied.
        """
        migrations_dir = Path(migrations_dir or MIGRATIONS_DIR)

        current = self.get_schema_version()
        applied = 0

        for migration_file in sorted(migrations_dir.glob("*.sql")):
            # 001_initial.sql -> 1
            version = int(migration_file.name.split("_")[0])
            if version <= current:
                continue

            sql = migration_file.read_text(encoding="utf-8")
            self.conn.executescript(sql)
            self.conn.execute(f"PRAGMA user_version = {version}")
            logger.debug("Applied migration %s", migration_file.name)
            applied += 1

        return applied

    def initialize(self) -> sqlite3.Connection:
        """Connect and apply all pending migrations.

        This is the standard entry point for application code.

        Returns:
            The active sqlite3.Connection.
        """
        self.connect()
        self.apply_migrations()
        return self.conn
