"""
Ticket Database Handler
Repository interface for tickets with SQLite and in-memory implementations.

Lifecycle logic only talks to TicketRepository, so a durable store can be
swapped in without touching it. Ticket ids are handed out by the repository
itself (monotonic counter), never derived from the current list size.
"""
import copy
import itertools
import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from db_config import get_db_connection, resolve_db_path
from tickets.lifecycle import utc_now, ensure_aware, stamp_updated
from tickets.ticket_config import TICKET_ID_PREFIX, STORED_FIELDS

logger = logging.getLogger('ticket_db')

# Constants for retry logic
MAX_RETRIES = 5
RETRY_DELAY = 0.2

# Fields copied from a student submission
CREATE_FIELDS = [
    'student_id', 'student_name', 'student_email', 'department', 'year', 'class_year',
    'instructor_name', 'device_type', 'device_ip_address', 'issue_description',
    'issue_type', 'issue_category', 'priority', 'notes'
]

# Plain columns shared by the row <-> dict mapping
TICKET_COLUMNS = ['ticket_id'] + CREATE_FIELDS + [
    'status', 'internal_notes', 'estimated_repair_time', 'is_external',
    'external_repair_company', 'external_tracking_number', 'assigned_engineer',
    'created_at', 'updated_at'
]


def format_ticket_id(number: int) -> str:
    """TKT-001, TKT-002, ... (grows past three digits when needed)"""
    return f"{TICKET_ID_PREFIX}-{number:03d}"


def build_ticket_record(data: Dict, now: datetime) -> Dict:
    """Full ticket dict for a new submission (without ticket_id)"""
    record = {field: data.get(field) for field in CREATE_FIELDS}
    record['issue_type'] = record['issue_type'] or record['issue_category']
    record.update({
        'status': 'open',
        'internal_notes': None,
        'estimated_repair_time': None,
        'is_external': False,
        'external_repair_company': None,
        'external_tracking_number': None,
        'assigned_engineer': None,
        'report_file': None,
        'created_at': now,
        'updated_at': now,
    })
    return record


class TicketRepository(ABC):
    """Storage contract used by the ticket service"""

    @abstractmethod
    def create(self, data: Dict, now: Optional[datetime] = None) -> Dict:
        """Persist a new ticket (status open, fresh id and timestamps)"""

    @abstractmethod
    def get(self, ticket_id: str) -> Optional[Dict]:
        """Return one ticket or None"""

    @abstractmethod
    def list(self) -> List[Dict]:
        """Return every ticket, newest first"""

    @abstractmethod
    def update(self, ticket_id: str, fields: Dict, now: Optional[datetime] = None) -> Optional[Dict]:
        """Apply fields, stamp updated_at, persist; None when the id is unknown"""

    def list_by_student(self, student_id: str) -> List[Dict]:
        return [t for t in self.list() if t.get('student_id') == student_id]


class InMemoryTicketRepository(TicketRepository):
    """Process-local store; hands out copies so callers cannot mutate it"""

    def __init__(self):
        self._tickets: List[Dict] = []
        self._counter = itertools.count(1)

    def create(self, data: Dict, now: Optional[datetime] = None) -> Dict:
        now = ensure_aware(now) if now is not None else utc_now()
        record = build_ticket_record(data, now)
        record['ticket_id'] = format_ticket_id(next(self._counter))
        self._tickets.append(record)
        logger.info(f"TICKET_CREATED | {record['ticket_id']} | memory")
        return copy.deepcopy(record)

    def _find(self, ticket_id: str) -> Optional[Dict]:
        for ticket in self._tickets:
            if ticket['ticket_id'] == ticket_id:
                return ticket
        return None

    def get(self, ticket_id: str) -> Optional[Dict]:
        ticket = self._find(ticket_id)
        return copy.deepcopy(ticket) if ticket else None

    def list(self) -> List[Dict]:
        ordered = sorted(
            enumerate(self._tickets),
            key=lambda pair: (pair[1]['created_at'], pair[0]),
            reverse=True
        )
        return [copy.deepcopy(ticket) for _, ticket in ordered]

    def update(self, ticket_id: str, fields: Dict, now: Optional[datetime] = None) -> Optional[Dict]:
        ticket = self._find(ticket_id)
        if ticket is None:
            return None
        for key in STORED_FIELDS:
            if key in fields:
                ticket[key] = copy.deepcopy(fields[key])
        ticket['updated_at'] = stamp_updated(ticket['created_at'], now)
        return copy.deepcopy(ticket)


class SQLiteTicketRepository(TicketRepository):
    """Handles all database operations for the ticketing system"""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = resolve_db_path('tickets', db_path)
        self._ensure_database_exists()

    def _ensure_database_exists(self):
        """Create tables and indexes if they don't exist"""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS tickets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ticket_id TEXT UNIQUE,
                    student_id TEXT NOT NULL,
                    student_name TEXT NOT NULL,
                    student_email TEXT,
                    department TEXT NOT NULL,
                    year TEXT NOT NULL,
                    class_year TEXT,
                    instructor_name TEXT,
                    device_type TEXT,
                    device_ip_address TEXT,
                    issue_description TEXT NOT NULL,
                    issue_type TEXT,
                    issue_category TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'open',
                    priority TEXT,
                    notes TEXT,
                    internal_notes TEXT,
                    estimated_repair_time TEXT,
                    is_external INTEGER NOT NULL DEFAULT 0,
                    external_repair_company TEXT,
                    external_tracking_number TEXT,
                    assigned_engineer TEXT,
                    report_file_name TEXT,
                    report_file_data TEXT,
                    report_uploaded_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')

            cursor.execute('CREATE INDEX IF NOT EXISTS idx_ticket_id ON tickets(ticket_id)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_student_id ON tickets(student_id)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_status ON tickets(status)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_created_at ON tickets(created_at DESC)')

            conn.commit()
            logger.info(f"TICKET_DB_READY | {self.db_path}")
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        return get_db_connection('tickets', self.db_path)

    def _execute_with_retry(self, operation, *args, **kwargs):
        """Execute a write operation with retry logic for lock errors"""
        last_error = None
        delay = RETRY_DELAY

        for attempt in range(MAX_RETRIES):
            conn = self._get_connection()
            try:
                result = operation(conn, *args, **kwargs)
                conn.commit()
                return result
            except sqlite3.OperationalError as e:
                conn.rollback()
                last_error = e
                error_msg = str(e).lower()
                if ("locked" in error_msg or "busy" in error_msg) and attempt < MAX_RETRIES - 1:
                    logger.warning(
                        f"TICKET_DB_LOCKED | retry in {delay:.2f}s | attempt {attempt + 1}/{MAX_RETRIES}"
                    )
                    time.sleep(delay)
                    delay *= 1.5
                    continue
                raise
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

        logger.error(f"TICKET_DB_RETRIES_EXHAUSTED | {MAX_RETRIES}")
        raise last_error

    # ============================================
    # Row mapping
    # ============================================

    @staticmethod
    def _to_db_value(value):
        if isinstance(value, datetime):
            return ensure_aware(value).isoformat(timespec='microseconds')
        if isinstance(value, bool):
            return int(value)
        return value

    @staticmethod
    def _row_to_ticket(row: sqlite3.Row) -> Dict:
        ticket = {column: row[column] for column in TICKET_COLUMNS}
        ticket['is_external'] = bool(ticket['is_external'])
        ticket['created_at'] = ensure_aware(ticket['created_at'])
        ticket['updated_at'] = ensure_aware(ticket['updated_at'])
        ticket['report_file'] = None
        if row['report_file_name']:
            ticket['report_file'] = {
                'name': row['report_file_name'],
                'data': row['report_file_data'] or '',
                'uploaded_at': ensure_aware(row['report_uploaded_at'])
            }
        return ticket

    def _update_columns(self, fields: Dict) -> Dict:
        columns = {}
        for key in STORED_FIELDS:
            if key not in fields:
                continue
            if key == 'report_file':
                report = fields[key] or {}
                columns['report_file_name'] = report.get('name')
                columns['report_file_data'] = report.get('data')
                columns['report_uploaded_at'] = self._to_db_value(report.get('uploaded_at'))
            else:
                columns[key] = self._to_db_value(fields[key])
        return columns

    # ============================================
    # Repository API
    # ============================================

    def create(self, data: Dict, now: Optional[datetime] = None) -> Dict:
        now = ensure_aware(now) if now is not None else utc_now()
        record = build_ticket_record(data, now)
        record.pop('report_file')

        def _insert(conn):
            columns = list(record.keys())
            placeholders = ", ".join("?" for _ in columns)
            cursor = conn.execute(
                f"INSERT INTO tickets ({', '.join(columns)}) VALUES ({placeholders})",
                tuple(self._to_db_value(record[c]) for c in columns)
            )
            # the row id is the repository's counter; AUTOINCREMENT never reuses it
            ticket_id = format_ticket_id(cursor.lastrowid)
            conn.execute("UPDATE tickets SET ticket_id = ? WHERE id = ?", (ticket_id, cursor.lastrowid))
            return ticket_id

        ticket_id = self._execute_with_retry(_insert)
        logger.info(f"TICKET_CREATED | {ticket_id} | {self.db_path}")
        return self.get(ticket_id)

    def get(self, ticket_id: str) -> Optional[Dict]:
        conn = self._get_connection()
        try:
            row = conn.execute('SELECT * FROM tickets WHERE ticket_id = ?', (ticket_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_ticket(row) if row else None

    def list(self) -> List[Dict]:
        conn = self._get_connection()
        try:
            rows = conn.execute('SELECT * FROM tickets ORDER BY created_at DESC, id DESC').fetchall()
        finally:
            conn.close()
        return [self._row_to_ticket(row) for row in rows]

    def list_by_student(self, student_id: str) -> List[Dict]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                'SELECT * FROM tickets WHERE student_id = ? ORDER BY created_at DESC, id DESC',
                (student_id,)
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_ticket(row) for row in rows]

    def update(self, ticket_id: str, fields: Dict, now: Optional[datetime] = None) -> Optional[Dict]:
        current = self.get(ticket_id)
        if current is None:
            return None

        columns = self._update_columns(fields)
        columns['updated_at'] = self._to_db_value(stamp_updated(current['created_at'], now))

        def _update(conn):
            assignments = ", ".join(f"{column} = ?" for column in columns)
            conn.execute(
                f"UPDATE tickets SET {assignments} WHERE ticket_id = ?",
                tuple(columns.values()) + (ticket_id,)
            )

        self._execute_with_retry(_update)
        logger.info(f"TICKET_UPDATED | {ticket_id} | {', '.join(sorted(columns))}")
        return self.get(ticket_id)
