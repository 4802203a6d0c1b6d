"""
Database Manager Module - Room Cleaning Tracker

This module is the data store boundary of the cleaning tracker. It owns the
SQLite connection, creates the schema for the five relations the application
works with (users, locations, rooms, cleaning_logs, problem_reports) and
exposes row-oriented select / insert / update operations on top of raw query
execution. Store failures are logged and surfaced as ReadError or WriteError
so callers never see driver exceptions.

Features:
- Thread-local SQLite connection management
- Idempotent schema creation with foreign keys enforced
- Optional seed data for a fresh installation
- Row-oriented select/insert/update over named relations
- Raw query execution for joined reads
"""

import sqlite3
import logging
import os
import re
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from werkzeug.security import generate_password_hash

from .errors import ReadError, WriteError

RELATIONS = ('users', 'locations', 'rooms', 'cleaning_logs', 'problem_reports')

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


class DatabaseManager:
    """
    SQLite-backed data store for the cleaning tracker.
    Handles connection management, schema creation and the generic
    select/insert/update operations used by the other managers.
    """

    def __init__(self, db_path: str, seed_default_data: bool = False):
        """
        Initialize the database manager with the specified database path.

        Args:
            db_path (str): Path to the SQLite database file, or ':memory:'
            seed_default_data (bool): Insert sample accounts and rooms into an empty database
        """
        self.db_path = str(db_path)
        self.seed_default_data = seed_default_data
        self.logger = logging.getLogger(__name__)
        self._local = threading.local()

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.initialize_database()

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.
        Provides thread-local connections for thread safety.

        Yields:
            sqlite3.Connection: Database connection object
        """
        if not hasattr(self._local, 'connection'):
            self._local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self._local.connection.row_factory = sqlite3.Row
            self._local.connection.execute("PRAGMA foreign_keys = ON")

        try:
            yield self._local.connection
        except Exception:
            self._local.connection.rollback()
            raise

    def initialize_database(self):
        """
        Create all tables used by the cleaning tracker.
        This method is idempotent and can be called multiple times safely.
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS locations (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        building_name VARCHAR(100) NOT NULL,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS rooms (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_number VARCHAR(20) NOT NULL,
                        location_id INTEGER NOT NULL,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (location_id) REFERENCES locations(id),
                        UNIQUE(location_id, room_number)
                    )
                """)

                # role is free text; the role router denies unknown values
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email VARCHAR(100) UNIQUE NOT NULL,
                        username VARCHAR(50) UNIQUE,
                        name VARCHAR(100),
                        password_hash VARCHAR(255) NOT NULL,
                        role VARCHAR(20) NOT NULL DEFAULT 'client',
                        assigned_room_id INTEGER,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (assigned_room_id) REFERENCES rooms(id)
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS cleaning_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_id INTEGER NOT NULL,
                        user_id INTEGER NOT NULL,
                        status VARCHAR(20) NOT NULL DEFAULT 'cleaned',
                        timestamp TIMESTAMP NOT NULL,
                        FOREIGN KEY (room_id) REFERENCES rooms(id),
                        FOREIGN KEY (user_id) REFERENCES users(id)
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS problem_reports (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_id INTEGER NOT NULL,
                        client_id INTEGER NOT NULL,
                        description TEXT NOT NULL,
                        status VARCHAR(20) NOT NULL DEFAULT 'open',
                        timestamp TIMESTAMP NOT NULL,
                        resolved_at TIMESTAMP,
                        resolved_by INTEGER,
                        FOREIGN KEY (room_id) REFERENCES rooms(id),
                        FOREIGN KEY (client_id) REFERENCES users(id),
                        FOREIGN KEY (resolved_by) REFERENCES users(id),
                        CHECK (status IN ('open', 'resolved'))
                    )
                """)

                cursor.execute("CREATE INDEX IF NOT EXISTS idx_cleaning_logs_room ON cleaning_logs(room_id)")
                cursor.execute("CREATE INDEX IF NOT EXISTS idx_cleaning_logs_timestamp ON cleaning_logs(timestamp)")
                cursor.execute("CREATE INDEX IF NOT EXISTS idx_problem_reports_room ON problem_reports(room_id)")

                conn.commit()

                if self.seed_default_data:
                    self._insert_default_data(cursor)
                    conn.commit()

                self.logger.info("Database initialized successfully")

        except sqlite3.Error as e:
            self.logger.error(f"Failed to initialize database: {str(e)}")
            raise WriteError('Failed to initialize database') from e

    def _insert_default_data(self, cursor):
        """
        Insert sample accounts, locations and rooms into an empty database.

        Args:
            cursor: Database cursor object
        """
        default_rooms = {
            'Main Building': ['101', '102', '201'],
            'North Wing': ['N1', 'N2'],
        }

        cursor.execute("SELECT COUNT(*) FROM locations")
        client_room_id = None
        if cursor.fetchone()[0] == 0:
            for building_name, room_numbers in default_rooms.items():
                cursor.execute("INSERT INTO locations (building_name) VALUES (?)", (building_name,))
                location_id = cursor.lastrowid
                for room_number in room_numbers:
                    cursor.execute(
                        "INSERT INTO rooms (room_number, location_id) VALUES (?, ?)",
                        (room_number, location_id)
                    )
                    if client_room_id is None:
                        client_room_id = cursor.lastrowid

        cursor.execute("SELECT COUNT(*) FROM users WHERE role = 'admin'")
        if cursor.fetchone()[0] == 0:
            if client_room_id is None:
                cursor.execute("SELECT id FROM rooms ORDER BY id LIMIT 1")
                row = cursor.fetchone()
                client_room_id = row[0] if row else None

            default_users = [
                ('admin@cleanscan.local', 'admin', 'System Administrator',
                 generate_password_hash('admin123'), 'admin', None),
                ('staff@cleanscan.local', 'staff1', 'Cleaning Staff',
                 generate_password_hash('staff123'), 'staff', None),
                ('client@cleanscan.local', 'client1', 'Sample Client',
                 generate_password_hash('client123'), 'client', client_room_id),
            ]
            cursor.executemany("""
                INSERT OR IGNORE INTO users (email, username, name, password_hash, role, assigned_room_id)
                VALUES (?, ?, ?, ?, ?, ?)
            """, default_users)

        self.logger.info("Default data inserted successfully")

    def execute_query(self, query: str, params: Sequence = None,
                      fetch_all: bool = True) -> Union[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """
        Execute a SELECT query and return results.

        Args:
            query (str): SQL query string
            params (tuple): Query parameters
            fetch_all (bool): Whether to fetch all results or just one

        Returns:
            list or dict: Query results

        Raises:
            ReadError: If the store rejects the query
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params or ())

                if fetch_all:
                    return [dict(row) for row in cursor.fetchall()]
                result = cursor.fetchone()
                return dict(result) if result else None

        except sqlite3.Error as e:
            self.logger.error(f"Query execution failed: {str(e)}")
            raise ReadError('Failed to read from the data store') from e

    def execute_update(self, query: str, params: Sequence = None) -> int:
        """
        Execute an INSERT or UPDATE query.

        Args:
            query (str): SQL query string
            params (tuple): Query parameters

        Returns:
            int: Last inserted row ID for inserts, affected rows otherwise

        Raises:
            WriteError: If the store rejects the write
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params or ())
                conn.commit()

                if query.strip().upper().startswith('INSERT'):
                    return cursor.lastrowid
                return cursor.rowcount

        except sqlite3.Error as e:
            self.logger.error(f"Update execution failed: {str(e)}")
            raise WriteError('Failed to write to the data store') from e

    def _where(self, filters: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
        if not filters:
            return '', []
        conditions = []
        params = []
        for column, value in filters.items():
            _check_identifier(column)
            if value is None:
                conditions.append(f"{column} IS NULL")
            else:
                conditions.append(f"{column} = ?")
                params.append(value)
        return ' WHERE ' + ' AND '.join(conditions), params

    def select(self, table: str, filters: Dict[str, Any] = None,
               columns: Sequence[str] = None,
               order_by: Sequence[Tuple[str, bool]] = None,
               single: bool = False):
        """
        Read rows from a named relation.

        Args:
            table (str): Relation name
            filters (dict): Column equality filters
            columns (list): Columns to return, all when omitted
            order_by (list): (column, descending) pairs
            single (bool): Return the first row or None instead of a list

        Returns:
            list or dict: Matching rows
        """
        if table not in RELATIONS:
            raise ValueError(f"Unknown relation: {table}")

        column_sql = ', '.join(_check_identifier(c) for c in columns) if columns else '*'
        where_sql, params = self._where(filters)
        order_sql = ''
        if order_by:
            order_sql = ' ORDER BY ' + ', '.join(
                f"{_check_identifier(column)} {'DESC' if descending else 'ASC'}"
                for column, descending in order_by
            )

        query = f"SELECT {column_sql} FROM {table}{where_sql}{order_sql}"
        if single:
            query += " LIMIT 1"
        return self.execute_query(query, params, fetch_all=not single)

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert one row into a named relation.

        Args:
            table (str): Relation name
            values (dict): Column values

        Returns:
            dict: The inserted row as stored
        """
        if table not in RELATIONS:
            raise ValueError(f"Unknown relation: {table}")

        columns = [_check_identifier(c) for c in values]
        placeholders = ', '.join('?' for _ in columns)
        row_id = self.execute_update(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            list(values.values())
        )
        return self.select(table, {'id': row_id}, single=True)

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> int:
        """
        Update rows of a named relation.

        Args:
            table (str): Relation name
            values (dict): Column values to set
            filters (dict): Column equality filters selecting the rows

        Returns:
            int: Number of affected rows
        """
        if table not in RELATIONS:
            raise ValueError(f"Unknown relation: {table}")
        if not filters:
            raise ValueError("Refusing to update without filters")

        set_sql = ', '.join(f"{_check_identifier(c)} = ?" for c in values)
        where_sql, params = self._where(filters)
        return self.execute_update(
            f"UPDATE {table} SET {set_sql}{where_sql}",
            list(values.values()) + params
        )

    def count(self, table: str, filters: Dict[str, Any] = None) -> int:
        """Count rows of a named relation."""
        if table not in RELATIONS:
            raise ValueError(f"Unknown relation: {table}")
        where_sql, params = self._where(filters)
        result = self.execute_query(
            f"SELECT COUNT(*) AS count FROM {table}{where_sql}", params, fetch_all=False
        )
        return result['count'] if result else 0

    def close_all_connections(self):
        """Close the connection held by the current thread."""
        if hasattr(self._local, 'connection'):
            self._local.connection.close()
            del self._local.connection
