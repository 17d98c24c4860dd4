"""
Shared fixtures: temporary SQLite stores, seeded accounts, a fake SendGrid
client and bearer-token helpers.
"""
from datetime import datetime

import pytest
import pytz

from app import create_app
from auth_utils import generate_jwt_token, legacy_sha256_digest
from services.activity_service import ActivityService
from services.notification_service import Notifier
from tickets.account_db import AccountDatabase
from tickets.common_issues import CommonIssueDatabase
from tickets.ticket_db import InMemoryTicketRepository, SQLiteTicketRepository

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=pytz.utc)

PASSWORDS = {
    'student@school.edu': 'student-pass',
    'it@school.edu': 'it-pass',
    'teacher@school.edu': 'teacher-pass',
    'legacy@school.edu': 'legacy-pass',
    'norole@school.edu': 'norole-pass',
    'direct@school.edu': 'direct-pass',
    'guest@school.edu': 'guest-pass',
    'dual@school.edu': 'dual-pass',
    'orphan@school.edu': 'orphan-pass',
}


def make_ticket_data(**overrides):
    data = {
        'student_name': 'Sara Ali Hassan',
        'department': 'CS',
        'year': 'junior',
        'class_year': '2026',
        'instructor_name': 'Dr. Omar',
        'device_type': 'HP Zbook G3',
        'device_ip_address': '192.168.1.24',
        'issue_description': 'Laptop does not connect to the campus Wi-Fi',
        'issue_category': 'software',
    }
    data.update(overrides)
    return data


class FakeSendGridResponse:
    status_code = 202


class FakeSendGridClient:
    """Records messages instead of calling the SendGrid API"""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, message):
        if self.fail:
            raise RuntimeError("sendgrid unavailable")
        self.sent.append(message)
        return FakeSendGridResponse()

    @property
    def subjects(self):
        return [message.get()['subject'] for message in self.sent]


@pytest.fixture
def tickets_db_path(tmp_path):
    return str(tmp_path / 'tickets.db')


@pytest.fixture
def accounts_db_path(tmp_path):
    return str(tmp_path / 'accounts.db')


@pytest.fixture(params=['memory', 'sqlite'])
def repository(request, tickets_db_path):
    if request.param == 'memory':
        return InMemoryTicketRepository()
    return SQLiteTicketRepository(tickets_db_path)


@pytest.fixture
def memory_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def activity_service(tickets_db_path):
    return ActivityService(tickets_db_path)


@pytest.fixture
def common_issues(tickets_db_path):
    return CommonIssueDatabase(tickets_db_path)


@pytest.fixture
def fake_sendgrid():
    return FakeSendGridClient()


@pytest.fixture
def notifier(fake_sendgrid):
    return Notifier(api_key=None, enabled=True, client=fake_sendgrid)


@pytest.fixture
def account_db(accounts_db_path):
    db = AccountDatabase(accounts_db_path)

    student_role = db.create_role('Student', 'TicTrack', 1)
    it_role = db.create_role('IT', 'TicTrack', 2)
    teacher_role = db.create_role('Teacher', 'TicTrack', 3)
    guest_role = db.create_role('Guest', 'TicTrack', 9)
    other_role = db.create_role('IT', 'OtherApp', 1)

    def add(email, name, role_ids, **kwargs):
        account_id = db.create_account(email, name, password=kwargs.pop('password', PASSWORDS[email]), **kwargs)
        for role_id in role_ids:
            db.assign_role(account_id, role_id, 'TicTrack')
        return account_id

    add('student@school.edu', 'Sara Hassan', [student_role],
        full_name_ar='سارة حسن', phone='+966500000001', national_id='1000000001')
    add('it@school.edu', 'Khalid Omar', [it_role])
    add('teacher@school.edu', 'Huda Saleh', [teacher_role])
    add('norole@school.edu', 'No Role', [other_role])
    add('guest@school.edu', 'Guest User', [guest_role])
    add('dual@school.edu', 'Dual Role', [student_role, it_role])

    legacy_id = db.create_account(
        'legacy@school.edu', 'Legacy User',
        password_hash=legacy_sha256_digest(PASSWORDS['legacy@school.edu'])
    )
    db.assign_role(legacy_id, student_role, 'TicTrack')

    db.create_account('direct@school.edu', 'Direct Role', password=PASSWORDS['direct@school.edu'],
                      role_id=it_role)

    # login whose account row no longer exists
    db.create_login(9999, 'orphan@school.edu', password=PASSWORDS['orphan@school.edu'])

    return db


@pytest.fixture
def app(memory_repo, account_db, notifier, activity_service, common_issues):
    app = create_app(
        ticket_repository=memory_repo,
        account_db=account_db,
        notifier=notifier,
        activity_service=activity_service,
        common_issues=common_issues
    )
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers():
    return bearer(generate_jwt_token(1, 'student@school.edu', 'Student', 'student'))


@pytest.fixture
def it_headers():
    return bearer(generate_jwt_token(2, 'it@school.edu', 'IT', 'it'))
