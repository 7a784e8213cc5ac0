"""
Database Infrastructure for HAL

Provides the SQLite backed key/value store used by the store command,
with connection pooling, migrations, and transaction management.
"""

import sqlite3
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Tuple
from dataclasses import dataclass


@dataclass
class Migration:
    """Database migration definition"""
    version: int
    name: str
    sql: str


class DatabaseError(Exception):
    """Database-related errors"""
    pass


class ConnectionPool:
    """Simple SQLite connection pool"""

    def __init__(self, database_path: str, max_connections: int = 5):
        self.database_path = database_path
        self.max_connections = max_connections
        self.connections = []
        self.in_use = set()
        self.lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection from the pool"""
        with self.lock:
            for conn in self.connections:
                if conn not in self.in_use:
                    self.in_use.add(conn)
                    return conn

            if len(self.connections) < self.max_connections:
                try:
                    conn = sqlite3.connect(
                        self.database_path,
                        check_same_thread=False,
                        timeout=30.0
                    )
                except sqlite3.Error as e:
                    raise DatabaseError(f"Cannot open {self.database_path}: {e}")
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode = WAL")
                self.connections.append(conn)
                self.in_use.add(conn)
                return conn

            raise DatabaseError("Connection pool exhausted")

    def return_connection(self, conn: sqlite3.Connection):
        """Return a connection to the pool"""
        with self.lock:
            if conn in self.in_use:
                self.in_use.remove(conn)

    def close_all(self):
        """Close all connections in the pool"""
        with self.lock:
            for conn in self.connections:
                try:
                    conn.close()
                except sqlite3.Error as e:
                    self.logger.warning(f"Error closing connection: {e}")
            self.connections.clear()
            self.in_use.clear()


class KeyValueStore:
    """
    Persistent name/value store backed by a single SQLite table.

    All methods are blocking; async callers run them in a worker thread.
    """

    def __init__(self, database_path: str, max_connections: int = 5):
        self.database_path = Path(database_path)
        self.pool = ConnectionPool(str(self.database_path), max_connections)
        self.logger = logging.getLogger(__name__)
        self.migrations = self._get_migrations()

        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_database()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections"""
        conn = self.pool.get_connection()
        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            self.pool.return_connection(conn)

    @contextmanager
    def transaction(self):
        """Context manager for database transactions"""
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _initialize_database(self):
        """Initialize database with schema and migrations"""
        self.logger.info(f"Initializing database at {self.database_path}")

        with self.get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS migrations (
                    version INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()

        self._run_migrations()

    def _get_migrations(self) -> List[Migration]:
        """Get all database migrations"""
        return [
            Migration(
                version=1,
                name="initial_schema",
                sql="""
                CREATE TABLE IF NOT EXISTS store (
                    name TEXT PRIMARY KEY,
                    value TEXT
                );
                """
            ),
        ]

    def _run_migrations(self):
        """Run pending database migrations"""
        with self.get_connection() as conn:
            cursor = conn.execute("SELECT MAX(version) FROM migrations")
            result = cursor.fetchone()
            current_version = result[0] if result[0] is not None else 0

            for migration in self.migrations:
                if migration.version > current_version:
                    self.logger.info(f"Running migration {migration.version}: {migration.name}")

                    try:
                        conn.executescript(migration.sql)
                        conn.execute(
                            "INSERT INTO migrations (version, name) VALUES (?, ?)",
                            (migration.version, migration.name)
                        )
                        conn.commit()
                    except sqlite3.Error as e:
                        conn.rollback()
                        self.logger.error(f"Migration {migration.version} failed: {e}")
                        raise DatabaseError(f"Migration failed: {e}")

    def execute_query(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        """Execute a SELECT query and return results"""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchall()

    def execute_update(self, query: str, params: Tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE query and return affected rows"""
        with self.transaction() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount

    def exists(self, name: str) -> bool:
        """Check if a name has a stored value"""
        rows = self.execute_query(
            "SELECT EXISTS (SELECT 1 FROM store WHERE name = ?)",
            (name,)
        )
        return bool(rows[0][0])

    def get(self, name: str) -> Optional[str]:
        """Get the value stored under name, or None"""
        rows = self.execute_query(
            "SELECT value FROM store WHERE name = ?",
            (name,)
        )
        return rows[0]['value'] if rows else None

    def put(self, name: str, value: str) -> None:
        """Insert a new name"""
        self.execute_update(
            "INSERT INTO store (name, value) VALUES (?, ?)",
            (name, value)
        )

    def update(self, name: str, value: str) -> None:
        """Replace the value of an existing name"""
        self.execute_update(
            "UPDATE store SET value = ? WHERE name = ?",
            (value, name)
        )

    def set(self, name: str, value: str) -> None:
        """Insert or update name in a single statement"""
        self.execute_update(
            "INSERT INTO store (name, value) VALUES (?, ?) "
            "ON CONFLICT(name) DO UPDATE SET value = excluded.value",
            (name, value)
        )
        self.logger.debug(f"Stored value for {name!r}")

    def close(self):
        """Close all database connections"""
        self.pool.close_all()
