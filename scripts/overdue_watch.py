"""
Overdue Watcher
Polls the ticket store and e-mails IT when tickets cross the overdue threshold.

Usage:
    python -m scripts.overdue_watch
    python -m scripts.overdue_watch --interval 30 --once
"""
import argparse
import logging
import time

from config import DASHBOARD_POLL_SECONDS, LOG_LEVEL, OVERDUE_THRESHOLD_MINUTES
from services.notification_service import Notifier
from services.overdue_monitor import OverdueMonitor
from tickets.ticket_db import SQLiteTicketRepository

logger = logging.getLogger('overdue_watch')


def main():
    parser = argparse.ArgumentParser(description='Alert IT about overdue tickets')
    parser.add_argument('--interval', type=int, default=DASHBOARD_POLL_SECONDS, help='Seconds between polls')
    parser.add_argument('--once', action='store_true', help='Run a single poll and exit')
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    )

    monitor = OverdueMonitor(SQLiteTicketRepository(), Notifier(), OVERDUE_THRESHOLD_MINUTES)
    logger.info(f"WATCH_START | every {args.interval}s | threshold {OVERDUE_THRESHOLD_MINUTES}m")

    try:
        while True:
            fresh = monitor.check()
            if fresh:
                logger.info(f"WATCH_NEW_OVERDUE | {', '.join(t['ticket_id'] for t in fresh)}")
            if args.once:
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        logger.info("WATCH_STOP")


if __name__ == "__main__":
    main()
