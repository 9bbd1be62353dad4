"""
Database management and connection handling.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

try:
    import psycopg2
    from psycopg2.extras import RealDictCursor
    PSYCOPG2_AVAILABLE = True
except ImportError:
    PSYCOPG2_AVAILABLE = False

from ..core.enums import DatabaseType
from ..core.exceptions import PersistenceError, ConfigurationError


logger = logging.getLogger(__name__)


def build_schema(id_column: str) -> Dict[str, str]:
    """Table definitions shared by every backend; only the key column differs."""
    return {
        "courses": f"""
            CREATE TABLE IF NOT EXISTS courses (
                id {id_column},
                code VARCHAR(20) UNIQUE NOT NULL,
                title VARCHAR(200) NOT NULL,
                credits INTEGER NOT NULL CHECK (credits BETWEEN 1 AND 10),
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """,
        "sections": f"""
            CREATE TABLE IF NOT EXISTS sections (
                id {id_column},
                course_id INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
                instructor_id INTEGER,
                section_name VARCHAR(10) NOT NULL,
                schedule_text VARCHAR(100) NOT NULL DEFAULT '',
                capacity INTEGER NOT NULL,
                enrolled_count INTEGER NOT NULL DEFAULT 0,
                status VARCHAR(10) NOT NULL DEFAULT 'OPEN',
                semester VARCHAR(20) NOT NULL,
                year INTEGER NOT NULL,
                drop_deadline TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                CHECK (enrolled_count >= 0 AND enrolled_count <= capacity),
                UNIQUE (course_id, section_name, semester, year)
            )
        """,
        "enrollments": f"""
            CREATE TABLE IF NOT EXISTS enrollments (
                id {id_column},
                student_id INTEGER NOT NULL,
                section_id INTEGER NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
                status VARCHAR(10) NOT NULL DEFAULT 'ACTIVE',
                enrolled_at TEXT NOT NULL,
                dropped_at TEXT,
                final_grade VARCHAR(5),
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (student_id, section_id)
            )
        """,
        "assessments": f"""
            CREATE TABLE IF NOT EXISTS assessments (
                id {id_column},
                student_id INTEGER NOT NULL,
                section_id INTEGER NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
                quiz REAL,
                midterm REAL,
                final REAL,
                updated_at TEXT NOT NULL,
                UNIQUE (student_id, section_id)
            )
        """,
        "settings": """
            CREATE TABLE IF NOT EXISTS settings (
                setting_key VARCHAR(100) PRIMARY KEY,
                setting_value TEXT NOT NULL,
                description TEXT
            )
        """,
    }


DEFAULT_SETTINGS = [
    ("maintenance_mode", "false", "System maintenance mode flag"),
]


class DatabaseManager(ABC):
    """Abstract base class for database management.

    Queries are written with ``?`` placeholders. Every call either runs on the
    connection passed in (and leaves committing to its owner) or opens its
    own short transaction.
    """

    @abstractmethod
    def connect(self) -> Any:
        """Create a database connection."""
        pass

    @abstractmethod
    def _driver_errors(self) -> Tuple[type, ...]:
        """Exception types raised by the driver."""
        pass

    @abstractmethod
    def _cursor(self, conn: Any) -> Any:
        """Create a cursor whose rows convert to dictionaries."""
        pass

    @abstractmethod
    def _last_insert_id(self, cursor: Any) -> int:
        """ID generated by the last INSERT on the cursor."""
        pass

    def _adapt_query(self, query: str) -> str:
        return query

    def _adapt_insert(self, query: str) -> str:
        return query

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Yield a connection; commit on success, roll back on any error."""
        conn = None
        try:
            conn = self.connect()
            yield conn
            conn.commit()
        except self._driver_errors() as e:
            if conn:
                conn.rollback()
            raise PersistenceError(f"Database error: {str(e)}") from e
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def _using(self, conn: Optional[Any]) -> Iterator[Any]:
        if conn is not None:
            try:
                yield conn
            except self._driver_errors() as e:
                raise PersistenceError(f"Database error: {str(e)}") from e
        else:
            with self.transaction() as own:
                yield own

    def execute_query(self, query: str, params: Optional[tuple] = None,
                      conn: Optional[Any] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._using(conn) as active:
            cursor = self._cursor(active)
            cursor.execute(self._adapt_query(query), params or ())
            return [dict(row) for row in cursor.fetchall()]

    def execute_update(self, query: str, params: Optional[tuple] = None,
                       conn: Optional[Any] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._using(conn) as active:
            cursor = self._cursor(active)
            cursor.execute(self._adapt_query(query), params or ())
            return cursor.rowcount

    def execute_insert(self, query: str, params: Optional[tuple] = None,
                       conn: Optional[Any] = None) -> int:
        """Execute an INSERT and return the generated ID."""
        with self._using(conn) as active:
            cursor = self._cursor(active)
            cursor.execute(self._adapt_query(self._adapt_insert(query)), params or ())
            return self._last_insert_id(cursor)

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            for table_name, table_schema in schema.items():
                cursor.execute(table_schema)
            for key, value, description in DEFAULT_SETTINGS:
                cursor.execute(
                    self._adapt_query(
                        "INSERT INTO settings (setting_key, setting_value, description) "
                        "VALUES (?, ?, ?) ON CONFLICT (setting_key) DO NOTHING"
                    ),
                    (key, value, description),
                )


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation."""

    def __init__(self, database_path: str = "registrar.db", timeout: float = 30.0):
        self._database_path = database_path
        self._timeout = timeout
        self.create_tables(build_schema("INTEGER PRIMARY KEY AUTOINCREMENT"))
        logger.debug("SQLite database ready at %s", database_path)

    def connect(self) -> sqlite3.Connection:
        """Create a database connection."""
        conn = sqlite3.connect(self._database_path, timeout=self._timeout,
                               check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _driver_errors(self) -> Tuple[type, ...]:
        return (sqlite3.Error,)

    def _cursor(self, conn: sqlite3.Connection) -> sqlite3.Cursor:
        return conn.cursor()

    def _last_insert_id(self, cursor: sqlite3.Cursor) -> int:
        return cursor.lastrowid


class PostgreSQLDatabase(DatabaseManager):
    """PostgreSQL database implementation."""

    def __init__(self, host: str = "localhost", port: int = 5432,
                 database: str = "registrar", user: str = "registrar", password: str = ""):
        if not PSYCOPG2_AVAILABLE:
            raise ConfigurationError("psycopg2 is required for PostgreSQL support")

        self._host = host
        self._port = port
        self._database = database
        self._user = user
        self._password = password
        self.create_tables(build_schema("SERIAL PRIMARY KEY"))

    def _get_connection_string(self) -> str:
        """Get PostgreSQL connection string."""
        return f"host={self._host} port={self._port} dbname={self._database} user={self._user} password={self._password}"

    def connect(self):
        """Create a database connection."""
        return psycopg2.connect(self._get_connection_string())

    def _driver_errors(self) -> Tuple[type, ...]:
        return (psycopg2.Error,)

    def _cursor(self, conn):
        return conn.cursor(cursor_factory=RealDictCursor)

    def _adapt_query(self, query: str) -> str:
        return query.replace("?", "%s")

    def _adapt_insert(self, query: str) -> str:
        return query.rstrip() + " RETURNING id"

    def _last_insert_id(self, cursor) -> int:
        return cursor.fetchone()["id"]


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(database_type: str, **kwargs) -> DatabaseManager:
        """Create a database instance based on type."""
        try:
            kind = DatabaseType(database_type.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported database type: {database_type}")

        if kind == DatabaseType.SQLITE:
            return SQLiteDatabase(**kwargs)
        return PostgreSQLDatabase(**kwargs)
