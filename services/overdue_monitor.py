"""
Overdue Monitor
Polls the ticket store and alerts IT once per ticket when it becomes overdue.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from config import OVERDUE_THRESHOLD_MINUTES
from tickets.lifecycle import overdue_tickets

logger = logging.getLogger('overdue_monitor')


class OverdueMonitor:
    """Remembers which overdue tickets were already announced"""

    def __init__(self, repository, notifier, threshold_minutes: int = OVERDUE_THRESHOLD_MINUTES):
        self.repository = repository
        self.notifier = notifier
        self.threshold_minutes = threshold_minutes
        self._announced: Set[str] = set()

    def check(self, now: Optional[datetime] = None) -> List[Dict]:
        """
        Run one poll.

        Returns:
            The tickets that became overdue since the previous poll
        """
        overdue = overdue_tickets(self.repository.list(), now, self.threshold_minutes)
        current_ids = {t['ticket_id'] for t in overdue}

        # resolved or closed tickets may come back later and should alert again
        self._announced &= current_ids

        fresh = [t for t in overdue if t['ticket_id'] not in self._announced]
        if fresh:
            sent = self.notifier.notify_overdue(fresh)
            logger.info(f"OVERDUE_ALERT | {len(fresh)} new | sent={sent}")
            self._announced.update(t['ticket_id'] for t in fresh)

        return fresh
