"""
TicTrack Services Package
Dashboard stats, activity history, notifications and the overdue monitor.
"""

from services.activity_service import ActivityService, ActivityType
from services.stats_service import StatsService
from services.notification_service import Notifier
from services.overdue_monitor import OverdueMonitor

__all__ = [
    'ActivityService', 'ActivityType',
    'StatsService',
    'Notifier',
    'OverdueMonitor',
]
