from datetime import timedelta

import pytest

from conftest import T0
from services.stats_service import StatsService


def ticket(ticket_id, status, category, minutes_old, external=False):
    return {
        'ticket_id': ticket_id,
        'status': status,
        'issue_category': category,
        'is_external': external,
        'created_at': T0 - timedelta(minutes=minutes_old),
    }


@pytest.fixture
def tickets():
    return [
        ticket('TKT-007', 'open', 'software', 2),
        ticket('TKT-006', 'open', 'hardware', 25),
        ticket('TKT-005', 'assigned', 'software', 40),
        ticket('TKT-004', 'waiting-external', 'hardware', 60 * 20, external=True),
        ticket('TKT-003', 'resolved', 'software', 60 * 30),
        ticket('TKT-002', 'closed', 'hardware', 60 * 48, external=True),
        ticket('TKT-001', 'in-progress', 'hardware', 8),
    ]


def test_counts_by_status_are_zero_filled():
    stats = StatsService.get_dashboard_stats([], now=T0)
    assert stats['total'] == 0
    assert stats['by_status'] == {
        'open': 0, 'assigned': 0, 'in-progress': 0,
        'waiting-external': 0, 'resolved': 0, 'closed': 0
    }
    assert stats['overdue'] == []


def test_dashboard_stats(tickets):
    stats = StatsService.get_dashboard_stats(tickets, now=T0)

    assert stats['total'] == 7
    assert sum(stats['by_status'].values()) == stats['total']
    assert stats['by_status']['open'] == 2
    assert stats['by_category'] == {'software': 3, 'hardware': 4}
    assert stats['external'] == 2
    assert stats['overdue'] == ['TKT-006', 'TKT-005', 'TKT-004']
    assert stats['overdue_count'] == 3
    assert stats['unassigned_over_threshold'] == ['TKT-006']
    assert stats['threshold_minutes'] == 15
    assert stats['generated_at'] == T0.isoformat()


def test_created_today_uses_display_timezone(tickets):
    # T0 is 09:00 UTC; anything older than 9h was created "yesterday" in UTC
    assert StatsService.get_dashboard_stats(tickets, now=T0)['created_today'] == 4
    # in UTC-10 the local day started at 10:00 UTC the day before
    assert StatsService.get_dashboard_stats(tickets, now=T0, timezone='Pacific/Honolulu')['created_today'] == 5


def test_category_filter(tickets):
    stats = StatsService.get_dashboard_stats(tickets, now=T0, category='hardware')
    assert stats['category'] == 'hardware'
    assert stats['total'] == 4
    assert stats['by_category'] == {'software': 0, 'hardware': 4}
    assert stats['overdue'] == ['TKT-006', 'TKT-004']


def test_invalid_category(tickets):
    with pytest.raises(ValueError):
        StatsService.get_dashboard_stats(tickets, now=T0, category='printers')


def test_input_is_not_mutated(tickets):
    snapshot = [dict(t) for t in tickets]
    StatsService.get_dashboard_stats(tickets, now=T0)
    assert tickets == snapshot
