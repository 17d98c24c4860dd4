from datetime import timedelta

import pytest

from conftest import T0, make_ticket_data
from services.overdue_monitor import OverdueMonitor


class RecordingNotifier:
    def __init__(self, result=True):
        self.result = result
        self.batches = []

    def notify_overdue(self, tickets):
        self.batches.append([t['ticket_id'] for t in tickets])
        return self.result


@pytest.fixture
def recorder():
    return RecordingNotifier()


@pytest.fixture
def monitor(memory_repo, recorder):
    return OverdueMonitor(memory_repo, recorder, threshold_minutes=15)


def ids(tickets):
    return [t['ticket_id'] for t in tickets]


def test_alerts_once_per_ticket(memory_repo, monitor, recorder):
    memory_repo.create(make_ticket_data(), now=T0)

    assert monitor.check(T0 + timedelta(minutes=10)) == []
    assert ids(monitor.check(T0 + timedelta(minutes=16))) == ['TKT-001']
    assert monitor.check(T0 + timedelta(minutes=17)) == []
    assert recorder.batches == [['TKT-001']]


def test_new_overdue_tickets_are_batched(memory_repo, monitor, recorder):
    memory_repo.create(make_ticket_data(), now=T0)
    monitor.check(T0 + timedelta(minutes=16))

    memory_repo.create(make_ticket_data(), now=T0 + timedelta(minutes=5))
    memory_repo.create(make_ticket_data(), now=T0 + timedelta(minutes=6))

    assert ids(monitor.check(T0 + timedelta(minutes=30))) == ['TKT-003', 'TKT-002']
    assert recorder.batches[-1] == ['TKT-003', 'TKT-002']


def test_reopened_ticket_alerts_again(memory_repo, monitor, recorder):
    ticket_id = memory_repo.create(make_ticket_data(), now=T0)['ticket_id']
    monitor.check(T0 + timedelta(minutes=16))

    memory_repo.update(ticket_id, {'status': 'resolved'}, now=T0 + timedelta(minutes=20))
    assert monitor.check(T0 + timedelta(minutes=21)) == []

    memory_repo.update(ticket_id, {'status': 'open'}, now=T0 + timedelta(minutes=40))
    assert ids(monitor.check(T0 + timedelta(minutes=41))) == [ticket_id]
    assert len(recorder.batches) == 2


def test_failed_delivery_is_not_retried(memory_repo):
    recorder = RecordingNotifier(result=False)
    monitor = OverdueMonitor(memory_repo, recorder, threshold_minutes=15)
    memory_repo.create(make_ticket_data(), now=T0)

    monitor.check(T0 + timedelta(minutes=16))
    monitor.check(T0 + timedelta(minutes=17))
    assert recorder.batches == [['TKT-001']]
