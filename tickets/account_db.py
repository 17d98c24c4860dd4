"""
Account Database Handler
Accounts, their 1:1 login record, and role memberships scoped by business entity.
"""
import logging
from typing import Dict, List, Optional

from auth_utils import hash_password
from db_config import db_connection, resolve_db_path
from tickets.lifecycle import utc_now

logger = logging.getLogger('account_db')


class AccountDatabase:
    """Handles account, login and role lookups for authentication"""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = resolve_db_path('accounts', db_path)
        self._ensure_database_exists()

    def _ensure_database_exists(self):
        """Create database and tables if they don't exist"""
        with db_connection('accounts', self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS roles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    role_name TEXT NOT NULL,
                    order_no INTEGER,
                    business_entity TEXT NOT NULL
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    national_id TEXT NOT NULL DEFAULT '',
                    email TEXT NOT NULL COLLATE NOCASE,
                    phone TEXT,
                    role_id INTEGER,
                    full_name_en TEXT NOT NULL,
                    full_name_ar TEXT,
                    is_active INTEGER DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            # Imported logins are not guaranteed to still have an account row
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS logins (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id INTEGER NOT NULL,
                    email TEXT UNIQUE NOT NULL COLLATE NOCASE,
                    password_hash TEXT NOT NULL,
                    status_id INTEGER
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS account_roles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    role_id INTEGER NOT NULL,
                    account_id INTEGER NOT NULL,
                    business_entity_name TEXT,
                    FOREIGN KEY (role_id) REFERENCES roles(id),
                    FOREIGN KEY (account_id) REFERENCES accounts(id)
                )
            ''')

            cursor.execute('CREATE INDEX IF NOT EXISTS idx_login_email ON logins(email)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_account_roles_account ON account_roles(account_id)')

        logger.info(f"ACCOUNT_DB_READY | {self.db_path}")

    def _fetch_one(self, sql: str, params: tuple = ()) -> Optional[Dict]:
        with db_connection('accounts', self.db_path) as conn:
            row = conn.execute(sql, params).fetchone()
        return dict(row) if row else None

    def _execute(self, sql: str, params: tuple = ()) -> int:
        with db_connection('accounts', self.db_path) as conn:
            cursor = conn.execute(sql, params)
        return cursor.lastrowid

    # ============================================
    # Lookups used by the login resolver
    # ============================================

    def find_login_by_email(self, email: str) -> Optional[Dict]:
        return self._fetch_one(
            "SELECT id, account_id, email, password_hash, status_id FROM logins WHERE email = ?",
            ((email or '').strip(),)
        )

    def get_account(self, account_id: int) -> Optional[Dict]:
        account = self._fetch_one("SELECT * FROM accounts WHERE id = ?", (account_id,))
        if account:
            account['is_active'] = bool(account['is_active'])
        return account

    def get_role(self, role_id: int) -> Optional[Dict]:
        return self._fetch_one("SELECT * FROM roles WHERE id = ?", (role_id,))

    def get_scoped_roles(self, account_id: int, business_entity: str) -> List[Dict]:
        """Roles reached through memberships, in membership order"""
        with db_connection('accounts', self.db_path) as conn:
            rows = conn.execute('''
                SELECT r.id, r.role_name, r.order_no, r.business_entity
                FROM account_roles ar
                JOIN roles r ON r.id = ar.role_id
                WHERE ar.account_id = ? AND r.business_entity = ?
                ORDER BY ar.id
            ''', (account_id, business_entity)).fetchall()
        return [dict(row) for row in rows]

    def update_password_hash(self, login_id: int, password_hash: str) -> None:
        self._execute("UPDATE logins SET password_hash = ? WHERE id = ?", (password_hash, login_id))
        logger.info(f"PASSWORD_REHASHED | login={login_id}")

    # ============================================
    # Provisioning helpers (seed script, tests)
    # ============================================

    def create_role(self, role_name: str, business_entity: str, order_no: Optional[int] = None) -> int:
        return self._execute(
            "INSERT INTO roles (role_name, order_no, business_entity) VALUES (?, ?, ?)",
            (role_name, order_no, business_entity)
        )

    def get_or_create_role(self, role_name: str, business_entity: str) -> int:
        existing = self._fetch_one(
            "SELECT id FROM roles WHERE role_name = ? AND business_entity = ?",
            (role_name, business_entity)
        )
        if existing:
            return existing['id']
        return self.create_role(role_name, business_entity)

    def create_account(
        self,
        email: str,
        full_name_en: str,
        password: Optional[str] = None,
        password_hash: Optional[str] = None,
        national_id: str = '',
        full_name_ar: Optional[str] = None,
        phone: Optional[str] = None,
        role_id: Optional[int] = None
    ) -> int:
        """
        Create an account and, when a password or hash is given, its login.

        Returns:
            The new account id
        """
        email = email.strip().lower()
        account_id = self._execute('''
            INSERT INTO accounts (national_id, email, phone, role_id, full_name_en, full_name_ar, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (national_id, email, phone, role_id, full_name_en, full_name_ar, utc_now().isoformat()))

        if password is not None or password_hash is not None:
            self.create_login(account_id, email, password=password, password_hash=password_hash)

        logger.info(f"ACCOUNT_CREATED | {email} | id={account_id}")
        return account_id

    def create_login(self, account_id: int, email: str, password: Optional[str] = None,
                     password_hash: Optional[str] = None) -> int:
        if password_hash is None:
            password_hash = hash_password(password)
        return self._execute(
            "INSERT INTO logins (account_id, email, password_hash) VALUES (?, ?, ?)",
            (account_id, email.strip().lower(), password_hash)
        )

    def assign_role(self, account_id: int, role_id: int, business_entity_name: Optional[str] = None) -> int:
        return self._execute(
            "INSERT INTO account_roles (role_id, account_id, business_entity_name) VALUES (?, ?, ?)",
            (role_id, account_id, business_entity_name)
        )
