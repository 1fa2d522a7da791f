"""
db.py
SQLite helpers + initialization (creates DB/tables, seeds the owner account)
and the client record store used by the services.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

from config import settings

logger = logging.getLogger(__name__)

# Columns callers may write through insert_client/update_client
CLIENT_COLUMNS = ("name", "phone", "photo_ref", "join_date", "expiry_date", "last_visit", "fee_status")


@contextmanager
def get_conn():
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(settings.db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def execute_rowcount(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS admin_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            phone TEXT NOT NULL UNIQUE,
            photo_ref TEXT,
            join_date TEXT NOT NULL,
            expiry_date TEXT NOT NULL,
            last_visit TEXT,
            fee_status TEXT NOT NULL DEFAULT 'Unpaid' CHECK(fee_status IN ('Paid','Unpaid','Pending')),
            created_at TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 0
        )
        """
    )

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(owner_username: str, owner_hash: str, force_password_change: bool = True) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert the owner account if no admin exists
    - Optionally force a password change on first login
    """
    _create_tables()

    admin = fetch_one("SELECT id FROM admin_users LIMIT 1")
    if not admin:
        execute(
            "INSERT INTO admin_users(username, password_hash, created_at) VALUES(?,?,?)",
            (owner_username, owner_hash, utc_now_iso()),
        )
        _set_setting("force_password_change", "1" if force_password_change else "0")
        logger.info("Created owner account %r", owner_username)
    elif _get_setting("force_password_change") is None:
        _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")


# ---------- Client record store ----------

def insert_client(values: dict) -> int:
    cols = [c for c in CLIENT_COLUMNS if c in values]
    placeholders = ",".join("?" for _ in cols)
    return execute(
        f"INSERT INTO clients({','.join(cols)}, created_at, version) VALUES({placeholders}, ?, 0)",
        tuple(values[c] for c in cols) + (utc_now_iso(),),
    )


def get_client(client_id: int):
    return fetch_one("SELECT * FROM clients WHERE id = ?", (client_id,))


def find_client_by_phone(phone: str, exclude_id: int | None = None):
    if exclude_id is None:
        return fetch_one("SELECT id FROM clients WHERE phone = ?", (phone,))
    return fetch_one("SELECT id FROM clients WHERE phone = ? AND id != ?", (phone, exclude_id))


def update_client(client_id: int, changes: dict, expected_version: int) -> bool:
    """
    Compare-and-swap update: writes only if the row still has expected_version.
    Returns False when the row changed (or vanished) since it was read.
    """
    cols = [c for c in CLIENT_COLUMNS if c in changes]
    if not cols:
        return True
    assignments = ", ".join(f"{c} = ?" for c in cols)
    count = execute_rowcount(
        f"UPDATE clients SET {assignments}, version = version + 1 WHERE id = ? AND version = ?",
        tuple(changes[c] for c in cols) + (client_id, expected_version),
    )
    return count == 1


def delete_client(client_id: int) -> bool:
    return execute_rowcount("DELETE FROM clients WHERE id = ?", (client_id,)) == 1
