"""
SQLite storage implementation.

Uses aiosqlite for async database operations. Every unit of work gets
its own connection; `Database.transaction()` publishes its connection in
a context variable so that every store call inside the block runs on it.

Writers are serialized by SQLite itself (`BEGIN IMMEDIATE` + busy
timeout), which is what the current-cycle flip relies on.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from practicum.core.models import Cycle, Student, User
from practicum.core.utils import utc_now
from practicum.storage.base import (
    CycleStore,
    StorageProvider,
    StudentStore,
    TransactionManager,
    UniqueViolationError,
    UserStore,
)

logger = logging.getLogger(__name__)

_active_transaction: ContextVar[aiosqlite.Connection | None] = ContextVar(
    "practicum_active_transaction", default=None
)


SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        role TEXT,
        permissions TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS users_email_unique ON users(email);

    CREATE TABLE IF NOT EXISTS students (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        code TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        career_id INTEGER NOT NULL,
        email TEXT NOT NULL,
        telephone TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS students_code_unique ON students(code);
    CREATE UNIQUE INDEX IF NOT EXISTS students_email_unique ON students(email);
    CREATE UNIQUE INDEX IF NOT EXISTS students_telephone_unique ON students(telephone);

    CREATE TABLE IF NOT EXISTS cycles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        slug TEXT NOT NULL,
        is_current INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS cycles_slug_unique ON cycles(slug);

    -- Backstop for the current-cycle invariant: at most one current row
    CREATE UNIQUE INDEX IF NOT EXISTS cycles_is_current_unique
        ON cycles(is_current) WHERE is_current = 1;
"""


def _unique_violation(error: sqlite3.IntegrityError) -> UniqueViolationError | None:
    # sqlite reports "UNIQUE constraint failed: cycles.is_current"
    message = str(error)
    if message.startswith("UNIQUE constraint failed"):
        return UniqueViolationError(message.split(":", 1)[-1].strip())
    return None


# =============================================================================
# Connection Manager
# =============================================================================


class Database(TransactionManager):
    """Connection manager for one SQLite database file."""

    def __init__(self, path: str | Path, busy_timeout: float = 10.0):
        self.path = Path(path)
        self.busy_timeout = busy_timeout

    def initialize(self) -> None:
        """Create the schema (sync, called once at startup)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        logger.info("Database ready at %s", self.path)

    async def _open(self) -> aiosqlite.Connection:
        # isolation_level=None: we issue BEGIN/COMMIT ourselves
        conn = await aiosqlite.connect(
            str(self.path),
            timeout=self.busy_timeout,
            isolation_level=None,
        )
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """The active transaction's connection, or a fresh autocommit one."""
        active = _active_transaction.get()
        if active is not None:
            yield active
            return

        conn = await self._open()
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        active = _active_transaction.get()
        if active is not None:
            yield active
            return

        conn = await self._open()
        token = _active_transaction.set(conn)
        try:
            # IMMEDIATE takes the write lock up front so concurrent
            # read-modify-write units serialize instead of interleaving
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            else:
                await conn.execute("COMMIT")
        finally:
            _active_transaction.reset(token)
            await conn.close()

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Row | None:
        async with self.connection() as conn:
            async with conn.execute(sql, params) as cursor:
                return await cursor.fetchone()

    async def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[aiosqlite.Row]:
        async with self.connection() as conn:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())

    async def execute(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Cursor:
        """Run a write. Unique violations become UniqueViolationError."""
        async with self.connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
            except sqlite3.IntegrityError as e:
                violation = _unique_violation(e)
                if violation is not None:
                    raise violation from e
                raise
            await cursor.close()
            return cursor


# =============================================================================
# Stores
# =============================================================================


class SqliteUserStore(UserStore):

    _COLUMNS = "id, name, email, password_hash, role, permissions, created_at, updated_at"

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _to_model(row: aiosqlite.Row | None) -> User | None:
        if row is None:
            return None
        data = dict(row)
        data["permissions"] = json.loads(data["permissions"])
        return User.model_validate(data)

    async def get_by_id(self, user_id: int) -> User | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM users WHERE id = ?", (user_id,))
        return self._to_model(row)

    async def get_by_email(self, email: str) -> User | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM users WHERE email = ?", (email,))
        return self._to_model(row)

    async def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str,
        permissions: list[str],
    ) -> User:
        now = utc_now().isoformat()
        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO users (name, email, password_hash, role, permissions, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (name, email, password_hash, role, json.dumps(permissions), now, now),
            )
            user = await self.get_by_id(cursor.lastrowid)
        logger.info("User created: id=%s email=%s role=%s", user.id, user.email, user.role)
        return user

    async def set_password(self, user_id: int, password_hash: str) -> User | None:
        async with self.db.transaction():
            await self.db.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, utc_now().isoformat(), user_id),
            )
            return await self.get_by_id(user_id)

    async def set_permissions(self, user_id: int, permissions: list[str]) -> User | None:
        async with self.db.transaction():
            await self.db.execute(
                "UPDATE users SET permissions = ?, updated_at = ? WHERE id = ?",
                (json.dumps(permissions), utc_now().isoformat(), user_id),
            )
            return await self.get_by_id(user_id)


class SqliteStudentStore(StudentStore):

    _COLUMNS = "id, name, code, password_hash, career_id, email, telephone, created_at, updated_at"

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _to_model(row: aiosqlite.Row | None) -> Student | None:
        return Student.model_validate(dict(row)) if row is not None else None

    async def get_by_id(self, student_id: int) -> Student | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM students WHERE id = ?", (student_id,))
        return self._to_model(row)

    async def get_by_email(self, email: str) -> Student | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM students WHERE email = ?", (email,))
        return self._to_model(row)

    async def create(
        self,
        name: str,
        code: str,
        password_hash: str,
        career_id: int,
        email: str,
        telephone: str,
    ) -> Student:
        now = utc_now().isoformat()
        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO students (name, code, password_hash, career_id, email, telephone, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (name, code, password_hash, career_id, email, telephone, now, now),
            )
            student = await self.get_by_id(cursor.lastrowid)
        logger.info("Student created: id=%s code=%s", student.id, student.code)
        return student

    async def set_password(self, student_id: int, password_hash: str) -> Student | None:
        async with self.db.transaction():
            await self.db.execute(
                "UPDATE students SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, utc_now().isoformat(), student_id),
            )
            return await self.get_by_id(student_id)


class SqliteCycleStore(CycleStore):

    _COLUMNS = "id, slug, is_current, created_at, updated_at"

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _to_model(row: aiosqlite.Row | None) -> Cycle | None:
        return Cycle.model_validate(dict(row)) if row is not None else None

    async def get_by_id(self, cycle_id: int) -> Cycle | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM cycles WHERE id = ?", (cycle_id,))
        return self._to_model(row)

    async def get_by_slug(self, slug: str) -> Cycle | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM cycles WHERE slug = ?", (slug,))
        return self._to_model(row)

    async def get_current(self) -> Cycle | None:
        row = await self.db.fetch_one(f"SELECT {self._COLUMNS} FROM cycles WHERE is_current = 1")
        return self._to_model(row)

    async def find_and_count(
        self,
        limit: int = 50,
        offset: int = 0,
        search: str | None = None,
    ) -> tuple[int, list[Cycle]]:
        where, params = "", ()
        if search:
            where, params = "WHERE slug LIKE '%' || ? || '%'", (search,)

        total_row = await self.db.fetch_one(f"SELECT COUNT(*) AS count FROM cycles {where}", params)
        rows = await self.db.fetch_all(
            f"SELECT {self._COLUMNS} FROM cycles {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        return total_row["count"], [self._to_model(row) for row in rows]

    async def insert(self, slug: str) -> Cycle:
        now = utc_now().isoformat()
        async with self.db.transaction():
            cursor = await self.db.execute(
                "INSERT INTO cycles (slug, is_current, created_at, updated_at) VALUES (?, 0, ?, ?)",
                (slug, now, now),
            )
            return await self.get_by_id(cursor.lastrowid)

    async def update_slug(self, cycle_id: int, slug: str) -> Cycle | None:
        async with self.db.transaction():
            await self.db.execute(
                "UPDATE cycles SET slug = ?, updated_at = ? WHERE id = ?",
                (slug, utc_now().isoformat(), cycle_id),
            )
            return await self.get_by_id(cycle_id)

    async def clear_current(self) -> int:
        cursor = await self.db.execute(
            "UPDATE cycles SET is_current = 0, updated_at = ? WHERE is_current = 1",
            (utc_now().isoformat(),),
        )
        return cursor.rowcount

    async def set_current_flag(self, cycle_id: int, is_current: bool) -> Cycle | None:
        async with self.db.transaction():
            await self.db.execute(
                "UPDATE cycles SET is_current = ?, updated_at = ? WHERE id = ?",
                (1 if is_current else 0, utc_now().isoformat(), cycle_id),
            )
            return await self.get_by_id(cycle_id)


# =============================================================================
# Factory
# =============================================================================


def create_sqlite_storage(path: str | Path, busy_timeout: float = 10.0) -> StorageProvider:
    """
    Create SQLite-backed storage for the given database file.

    Creates the schema if it does not exist yet.
    """
    db = Database(path, busy_timeout=busy_timeout)
    db.initialize()

    return StorageProvider(
        transactions=db,
        users=SqliteUserStore(db),
        students=SqliteStudentStore(db),
        cycles=SqliteCycleStore(db),
    )
