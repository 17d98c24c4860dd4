"""
Activity Service
Append-only history of changes made to tickets.
Uses enum-style event types and UTC timestamps.
"""

import logging
from datetime import datetime
from typing import Optional

import pytz

from db_config import db_connection, resolve_db_path

logger = logging.getLogger('activity_service')


class ActivityType:
    """Standardized activity event types"""
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_UPDATED = "TICKET_UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    REPORT_UPLOADED = "REPORT_UPLOADED"

    ALL_TYPES = [TICKET_CREATED, TICKET_UPDATED, STATUS_CHANGED, REPORT_UPLOADED]


class ActivityService:
    """Handles activity logging and retrieval for tickets."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = resolve_db_path('tickets', db_path)
        with db_connection('tickets', self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ticket_activity (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ticket_id TEXT NOT NULL,
                    actor_email TEXT,
                    action_type TEXT NOT NULL,
                    action_description TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_activity_ticket_ts ON ticket_activity(ticket_id, created_at)"
            )

    def log_activity(self, ticket_id: str, action_type: str, description: str,
                     actor_email: Optional[str] = None):
        """
        Log a ticket activity event.

        Args:
            ticket_id: Ticket the event belongs to
            action_type: One of ActivityType constants
            description: Human-readable description of the action
            actor_email: Who made the change, when known
        """
        if action_type not in ActivityType.ALL_TYPES:
            logger.warning(f"Unknown activity type: {action_type} for {ticket_id}")

        try:
            with db_connection('tickets', self.db_path) as conn:
                conn.execute("""
                    INSERT INTO ticket_activity (ticket_id, actor_email, action_type, action_description, created_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (ticket_id, actor_email, action_type, description,
                      datetime.now(pytz.utc).isoformat(timespec='microseconds')))
            logger.info(f"ACTIVITY_LOG | {ticket_id} | {action_type} | {description}")
        except Exception as e:
            logger.error(f"ACTIVITY_LOG_FAIL | {ticket_id} | {action_type} | {e}")

    def get_ticket_activity(self, ticket_id: str, limit: int = 50) -> list:
        """
        Get activity events for a ticket, newest first.

        Returns:
            List of activity dicts with type, description, actor, timestamp
        """
        with db_connection('tickets', self.db_path) as conn:
            rows = conn.execute("""
                SELECT action_type, action_description, actor_email, created_at
                FROM ticket_activity
                WHERE ticket_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            """, (ticket_id, limit)).fetchall()

        return [
            {
                'type': row['action_type'],
                'description': row['action_description'],
                'actor': row['actor_email'],
                'timestamp': row['created_at']
            }
            for row in rows
        ]
