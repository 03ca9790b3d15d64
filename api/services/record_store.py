"""
Record Store for Rapport.

Thin persistence gateway over the four record tables:
relationships, events, insights, messages.

Callers only need three operations:
- find(table, filters, order_by, descending, limit)
- get(table, record_id)
- insert(table, rows)

The default backend is a local SQLite file. When a hosted store is
configured (SUPABASE_URL + SUPABASE_ANON_KEY) the PostgREST-backed store in
api.services.supabase_store is used instead.
"""
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Optional, Union

from config.settings import settings
from api.services.errors import UpstreamError
from api.utils.datetime_utils import utc_now_iso

logger = logging.getLogger(__name__)

# Writable columns per table. id and created_at are filled in by the store.
TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "relationships": ("person_name", "type", "notes"),
    "events": ("relationship_id", "event_type", "description"),
    "insights": (
        "relationship_id",
        "summary",
        "pattern",
        "risk_score",
        "growth_score",
        "recommended_action",
        "suggested_message",
    ),
    "messages": ("user_id", "platform", "thread_id", "from_me", "text", "timestamp"),
}

# SQLite has no boolean type; these columns round-trip through INTEGER
BOOLEAN_COLUMNS: dict[str, set[str]] = {
    "messages": {"from_me"},
}


def check_table(table: str) -> tuple[str, ...]:
    """Return the writable columns of a table, or raise ValueError."""
    if table not in TABLE_COLUMNS:
        raise ValueError(f"Unknown table: {table}")
    return TABLE_COLUMNS[table]


def check_column(table: str, column: str) -> str:
    """Validate a column name used in a filter or ORDER BY clause."""
    if column not in ("id", "created_at") + check_table(table):
        raise ValueError(f"Unknown column for {table}: {column}")
    return column


class RecordStore:
    """
    Interface shared by the record store backends.

    Backends raise UpstreamError for any storage failure, and ValueError
    for unknown tables or columns.
    """

    backend = "base"

    def find(
        self,
        table: str,
        filters: Optional[dict] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        raise NotImplementedError

    def get(self, table: str, record_id: str) -> Optional[dict]:
        raise NotImplementedError

    def insert(self, table: str, rows: Union[dict, list[dict]]) -> list[dict]:
        raise NotImplementedError


class SQLiteRecordStore(RecordStore):
    """
    SQLite-backed record storage.

    Opens a short-lived connection per operation. Inserts run in a single
    transaction so a batch is written completely or not at all.
    """

    backend = "sqlite"

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize record store.

        Args:
            db_path: Path to SQLite database (default from settings)
        """
        self.db_path = db_path or get_record_db_path()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with dict-like rows."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Create database tables if they don't exist."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS relationships (
                    id TEXT PRIMARY KEY,
                    person_name TEXT NOT NULL,
                    type TEXT,
                    notes TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id TEXT PRIMARY KEY,
                    relationship_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    description TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS insights (
                    id TEXT PRIMARY KEY,
                    relationship_id TEXT NOT NULL,
                    summary TEXT,
                    pattern TEXT,
                    risk_score REAL,
                    growth_score REAL,
                    recommended_action TEXT,
                    suggested_message TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    platform TEXT NOT NULL,
                    thread_id TEXT NOT NULL,
                    from_me INTEGER NOT NULL DEFAULT 0,
                    text TEXT NOT NULL DEFAULT '',
                    timestamp TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_relationship
                ON events(relationship_id, created_at)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_insights_relationship
                ON insights(relationship_id, created_at)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_thread
                ON messages(user_id, platform, thread_id)
            """)
            conn.commit()
        finally:
            conn.close()

    def _to_dict(self, table: str, row: sqlite3.Row) -> dict:
        record = dict(row)
        for column in BOOLEAN_COLUMNS.get(table, ()):
            if record.get(column) is not None:
                record[column] = bool(record[column])
        return record

    def find(
        self,
        table: str,
        filters: Optional[dict] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Select rows matching equality filters.

        Args:
            table: Table name
            filters: Column -> value equality filters
            order_by: Column to sort on (default created_at)
            descending: Newest first when True
            limit: Optional maximum number of rows

        Returns:
            List of rows as dicts
        """
        check_table(table)
        filters = filters or {}
        clauses = [f"{check_column(table, column)} = ?" for column in filters]
        params: list = list(filters.values())

        direction = "DESC" if descending else "ASC"
        sql = f"SELECT * FROM {table}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        # rowid breaks ties between rows created in the same microsecond
        sql += f" ORDER BY {check_column(table, order_by)} {direction}, rowid {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            conn = self._get_connection()
            try:
                cursor = conn.execute(sql, params)
                return [self._to_dict(table, row) for row in cursor.fetchall()]
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Record store read failed on {table}: {e}")
            raise UpstreamError(str(e)) from e

    def get(self, table: str, record_id: str) -> Optional[dict]:
        """Get a single row by id, or None if not found."""
        rows = self.find(table, {"id": record_id}, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, rows: Union[dict, list[dict]]) -> list[dict]:
        """
        Insert one or more rows in a single transaction.

        Args:
            table: Table name
            rows: A row dict or a list of row dicts (unknown keys are ignored)

        Returns:
            The stored rows, including id and created_at
        """
        columns = check_table(table)
        if isinstance(rows, dict):
            rows = [rows]

        stored = []
        for row in rows:
            record = {"id": str(uuid.uuid4())}
            for column in columns:
                record[column] = row.get(column)
            record["created_at"] = utc_now_iso()
            stored.append(record)

        names = ["id", *columns, "created_at"]
        sql = (
            f"INSERT INTO {table} ({', '.join(names)}) "
            f"VALUES ({', '.join('?' for _ in names)})"
        )

        try:
            conn = self._get_connection()
            try:
                # Connection context manager commits, or rolls back on error
                with conn:
                    conn.executemany(sql, [[record[name] for name in names] for record in stored])
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Record store insert failed on {table}: {e}")
            raise UpstreamError(str(e)) from e

        logger.debug(f"Inserted {len(stored)} row(s) into {table}")
        return stored


def get_record_db_path() -> str:
    """Get the path to the SQLite database, creating its directory."""
    db_path = Path(settings.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return str(db_path)


# Singleton store instance
_store_instance: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Get the singleton RecordStore for the configured backend."""
    global _store_instance
    if _store_instance is None:
        if settings.supabase_enabled:
            from api.services.supabase_store import SupabaseRecordStore
            _store_instance = SupabaseRecordStore()
            logger.info("Using hosted record store")
        else:
            _store_instance = SQLiteRecordStore()
            logger.info(f"Using SQLite record store at {_store_instance.db_path}")
    return _store_instance


def reset_record_store():
    """Drop the singleton so the next call re-reads settings."""
    global _store_instance
    _store_instance = None
