"""
Stats Service
Dashboard aggregation for the IT portal.
All stats are computed from the ticket list passed in, never from cached counters.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

import pytz

from config import DISPLAY_TIMEZONE, OVERDUE_THRESHOLD_MINUTES
from tickets.lifecycle import (
    utc_now, ensure_aware, filter_by_category, overdue_tickets, unassigned_over_threshold
)
from tickets.ticket_config import TICKET_STATUS, ISSUE_CATEGORIES

logger = logging.getLogger('stats_service')


class StatsService:
    """Computes live statistics for the IT dashboard."""

    @staticmethod
    def _local_date(value: datetime, timezone: str):
        return ensure_aware(value).astimezone(pytz.timezone(timezone)).date()

    @staticmethod
    def get_dashboard_stats(
        tickets: Iterable[Dict],
        now: Optional[datetime] = None,
        category: str = 'all',
        threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES,
        timezone: str = DISPLAY_TIMEZONE
    ) -> dict:
        """
        Aggregate a ticket collection. Pure read; nothing is mutated.

        Returns:
            dict with total, by_status, by_category, external, overdue_count,
                  overdue, unassigned_over_threshold, created_today
        """
        now = ensure_aware(now) if now is not None else utc_now()
        tickets = filter_by_category(tickets, category)

        by_status = {status: 0 for status in TICKET_STATUS}
        by_category = {name: 0 for name in ISSUE_CATEGORIES}
        external = 0
        created_today = 0
        today = StatsService._local_date(now, timezone)

        for ticket in tickets:
            status = ticket.get('status')
            if status in by_status:
                by_status[status] += 1
            else:
                logger.warning(f"UNKNOWN_STATUS | {ticket.get('ticket_id')} | {status}")

            issue_category = ticket.get('issue_category')
            if issue_category in by_category:
                by_category[issue_category] += 1

            if ticket.get('is_external'):
                external += 1

            if ticket.get('created_at') and StatsService._local_date(ticket['created_at'], timezone) == today:
                created_today += 1

        overdue = overdue_tickets(tickets, now, threshold_minutes)
        unassigned = unassigned_over_threshold(tickets, now, threshold_minutes)

        return {
            'category': category or 'all',
            'total': len(tickets),
            'by_status': by_status,
            'by_category': by_category,
            'external': external,
            'overdue_count': len(overdue),
            'overdue': [t['ticket_id'] for t in overdue],
            'unassigned_over_threshold': [t['ticket_id'] for t in unassigned],
            'created_today': created_today,
            'threshold_minutes': threshold_minutes,
            'generated_at': now.isoformat()
        }
