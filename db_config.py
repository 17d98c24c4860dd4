"""
Centralized Database Configuration - SQLite Only

Usage:
    from db_config import get_db_connection, db_connection

    # Get connection for a named store
    conn = get_db_connection('tickets')

    # Use context manager for safe connections
    with db_connection('accounts') as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM accounts")
"""
import os
import sqlite3
from contextlib import contextmanager
from typing import Optional

# ============================================
# SQLite Database Paths
# ============================================

SQLITE_PATHS = {
    'tickets': os.getenv('TICKETS_DB_PATH', 'data/tickets.db'),
    'accounts': os.getenv('ACCOUNTS_DB_PATH', 'data/accounts.db'),
}

DEFAULT_TIMEOUT = 30  # seconds


# ============================================
# Public API
# ============================================

def resolve_db_path(module: str = 'tickets', db_path: Optional[str] = None) -> str:
    """Return an explicit path when given, otherwise the configured path for the store"""
    if db_path:
        return db_path
    return SQLITE_PATHS.get(module, SQLITE_PATHS['tickets'])


def get_db_connection(module: str = 'tickets', db_path: Optional[str] = None):
    """
    Get SQLite database connection for specified store.

    Args:
        module: One of 'tickets', 'accounts'
        db_path: Optional explicit file path (tests pass a temporary file)

    Returns:
        sqlite3 connection with dict-like rows
    """
    path = resolve_db_path(module, db_path)

    # Ensure data directory exists
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path, timeout=DEFAULT_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


@contextmanager
def db_connection(module: str = 'tickets', db_path: Optional[str] = None):
    """
    Context manager for safe database connections.
    Auto-commits on success, rolls back on error, always closes.

    Usage:
        with db_connection('tickets') as conn:
            conn.execute("UPDATE tickets SET status = ? WHERE ticket_id = ?", (...))
    """
    conn = get_db_connection(module, db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def get_db_info() -> dict:
    """Get current database configuration info"""
    return {
        'backend': 'SQLite',
        'tickets': SQLITE_PATHS['tickets'],
        'accounts': SQLITE_PATHS['accounts'],
    }
