from datetime import timedelta

from conftest import T0, make_ticket_data
from tickets.ticket_db import SQLiteTicketRepository, format_ticket_id


def test_format_ticket_id():
    assert format_ticket_id(1) == 'TKT-001'
    assert format_ticket_id(1234) == 'TKT-1234'


def test_create_sets_defaults(repository):
    ticket = repository.create(make_ticket_data(student_id='STU-ABC123456'), now=T0)

    assert ticket['ticket_id'] == 'TKT-001'
    assert ticket['status'] == 'open'
    assert ticket['is_external'] is False
    assert ticket['report_file'] is None
    assert ticket['issue_type'] == 'software'
    assert ticket['created_at'] == T0
    assert ticket['updated_at'] == T0


def test_ids_are_sequential(repository):
    first = repository.create(make_ticket_data(), now=T0)
    second = repository.create(make_ticket_data(), now=T0 + timedelta(minutes=1))
    assert (first['ticket_id'], second['ticket_id']) == ('TKT-001', 'TKT-002')


def test_list_is_newest_first(repository):
    repository.create(make_ticket_data(student_name='First One'), now=T0)
    repository.create(make_ticket_data(student_name='Second One'), now=T0 + timedelta(minutes=5))
    repository.create(make_ticket_data(student_name='Third One'), now=T0 + timedelta(minutes=2))

    assert [t['ticket_id'] for t in repository.list()] == ['TKT-002', 'TKT-003', 'TKT-001']


def test_get_unknown_returns_none(repository):
    assert repository.get('TKT-404') is None


def test_update_applies_fields_and_stamps(repository):
    created = repository.create(make_ticket_data(), now=T0)
    later = T0 + timedelta(minutes=7)

    updated = repository.update(created['ticket_id'], {
        'status': 'assigned',
        'assigned_engineer': 'eng-khalid',
        'priority': 'high',
    }, now=later)

    assert updated['status'] == 'assigned'
    assert updated['assigned_engineer'] == 'eng-khalid'
    assert updated['priority'] == 'high'
    assert updated['updated_at'] == later
    assert updated['created_at'] == T0
    assert updated['ticket_id'] == created['ticket_id']
    assert repository.get(created['ticket_id'])['status'] == 'assigned'


def test_update_never_moves_updated_at_before_creation(repository):
    created = repository.create(make_ticket_data(), now=T0)
    updated = repository.update(created['ticket_id'], {'notes': 'clock skew'}, now=T0 - timedelta(hours=1))
    assert updated['updated_at'] >= updated['created_at']


def test_update_ignores_identity_fields(repository):
    created = repository.create(make_ticket_data(), now=T0)
    updated = repository.update(created['ticket_id'], {
        'ticket_id': 'TKT-999',
        'created_at': T0 - timedelta(days=3),
        'status': 'in-progress',
    }, now=T0 + timedelta(minutes=1))

    assert updated['ticket_id'] == 'TKT-001'
    assert updated['created_at'] == T0


def test_update_unknown_returns_none(repository):
    assert repository.update('TKT-404', {'status': 'closed'}) is None


def test_list_by_student(repository):
    repository.create(make_ticket_data(student_id='STU-AAAAAAAAA'), now=T0)
    repository.create(make_ticket_data(student_id='STU-BBBBBBBBB'), now=T0)
    repository.create(make_ticket_data(student_id='STU-AAAAAAAAA'), now=T0 + timedelta(minutes=3))

    ids = [t['ticket_id'] for t in repository.list_by_student('STU-AAAAAAAAA')]
    assert ids == ['TKT-003', 'TKT-001']


def test_report_file_roundtrip(repository):
    created = repository.create(make_ticket_data(), now=T0)
    report = {'name': 'repair.csv', 'data': 'part,cost\nscreen,120\n', 'uploaded_at': T0 + timedelta(hours=1)}

    repository.update(created['ticket_id'], {'report_file': report}, now=T0 + timedelta(hours=1))
    stored = repository.get(created['ticket_id'])['report_file']

    assert stored['name'] == 'repair.csv'
    assert stored['data'] == 'part,cost\nscreen,120\n'
    assert stored['uploaded_at'] == T0 + timedelta(hours=1)


def test_returned_tickets_are_copies(memory_repo):
    created = memory_repo.create(make_ticket_data(), now=T0)
    created['status'] = 'closed'
    assert memory_repo.get(created['ticket_id'])['status'] == 'open'


def test_sqlite_store_survives_reopen(tickets_db_path):
    SQLiteTicketRepository(tickets_db_path).create(make_ticket_data(), now=T0)

    reopened = SQLiteTicketRepository(tickets_db_path)
    assert [t['ticket_id'] for t in reopened.list()] == ['TKT-001']
    assert reopened.create(make_ticket_data(), now=T0)['ticket_id'] == 'TKT-002'
