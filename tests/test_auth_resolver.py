import pytest

from auth_utils import (
    hash_password, verify_password, is_legacy_digest, legacy_sha256_digest,
    generate_jwt_token, decode_jwt_token
)
from conftest import PASSWORDS
from tickets.auth_resolver import (
    LoginResolver, Unauthorized, Forbidden, AccountNotFound, INVALID_CREDENTIALS, resolve_portal
)


@pytest.fixture
def resolver(account_db):
    return LoginResolver(account_db, business_entity='TicTrack')


def login(resolver, email):
    return resolver.resolve(email, PASSWORDS[email])


class TestPasswords:

    def test_new_hashes_are_salted(self):
        first, second = hash_password('secret'), hash_password('secret')
        assert first != second
        assert verify_password(first, 'secret')
        assert not verify_password(first, 'Secret')

    def test_legacy_digest_verifies(self):
        digest = legacy_sha256_digest('secret')
        assert is_legacy_digest(digest)
        assert verify_password(digest, 'secret')
        assert verify_password(digest.upper(), 'secret')
        assert not verify_password(digest, 'other')

    def test_empty_inputs_never_verify(self):
        assert not verify_password('', 'secret')
        assert not verify_password(None, 'secret')
        assert not verify_password(hash_password('secret'), None)


def test_token_roundtrip():
    token = generate_jwt_token(7, 'it@school.edu', 'IT', 'it')
    payload = decode_jwt_token(token)
    assert payload['account_id'] == 7
    assert payload['portal'] == 'it'
    assert decode_jwt_token(token + 'x') is None


@pytest.mark.parametrize('role, portal', [
    ('Student', 'student'),
    ('IT', 'it'),
    ('Teacher', 'it'),
    ('TechStaff', 'it'),
    ('Reviewer', 'it'),
    ('Board', 'it'),
    ('Guest', 'unknown'),
    (None, 'unknown'),
])
def test_resolve_portal(role, portal):
    assert resolve_portal(role) == portal


class TestLoginResolver:

    def test_student_login(self, resolver):
        identity = login(resolver, 'student@school.edu')
        assert identity['email'] == 'student@school.edu'
        assert identity['full_name_en'] == 'Sara Hassan'
        assert identity['full_name_ar'] == 'سارة حسن'
        assert identity['phone'] == '+966500000001'
        assert identity['role'] == 'Student'
        assert identity['portal_type'] == 'student'

    @pytest.mark.parametrize('email, role', [
        ('it@school.edu', 'IT'),
        ('teacher@school.edu', 'Teacher'),
    ])
    def test_it_portal_roles(self, resolver, email, role):
        identity = login(resolver, email)
        assert identity['role'] == role
        assert identity['portal_type'] == 'it'

    def test_email_lookup_ignores_case(self, resolver):
        identity = resolver.resolve('Student@School.EDU', PASSWORDS['student@school.edu'])
        assert identity['portal_type'] == 'student'

    def test_first_membership_is_primary(self, resolver):
        identity = login(resolver, 'dual@school.edu')
        assert identity['role'] == 'Student'
        assert identity['portal_type'] == 'student'

    def test_direct_role_fallback(self, resolver):
        identity = login(resolver, 'direct@school.edu')
        assert identity['role'] == 'IT'
        assert identity['portal_type'] == 'it'

    def test_unmapped_role_gets_unknown_portal(self, resolver):
        assert login(resolver, 'guest@school.edu')['portal_type'] == 'unknown'

    def test_wrong_password_and_unknown_email_look_the_same(self, resolver):
        with pytest.raises(Unauthorized) as wrong_password:
            resolver.resolve('student@school.edu', 'not-the-password')
        with pytest.raises(Unauthorized) as unknown_email:
            resolver.resolve('nobody@school.edu', 'whatever')

        assert wrong_password.value.message == unknown_email.value.message == INVALID_CREDENTIALS
        assert wrong_password.value.status_code == unknown_email.value.status_code == 401

    def test_missing_account(self, resolver):
        with pytest.raises(AccountNotFound) as exc:
            login(resolver, 'orphan@school.edu')
        assert exc.value.status_code == 404
        assert exc.value.message == 'Account not found'

    def test_role_from_another_application_is_forbidden(self, resolver):
        with pytest.raises(Forbidden) as exc:
            login(resolver, 'norole@school.edu')
        assert exc.value.status_code == 403
        assert exc.value.message == 'No TicTrack role found for this account'

    def test_other_business_entity_scope(self, account_db):
        other = LoginResolver(account_db, business_entity='OtherApp')
        assert other.resolve('norole@school.edu', PASSWORDS['norole@school.edu'])['role'] == 'IT'
        with pytest.raises(Forbidden):
            other.resolve('student@school.edu', PASSWORDS['student@school.edu'])

    def test_legacy_digest_is_upgraded_on_login(self, resolver, account_db):
        before = account_db.find_login_by_email('legacy@school.edu')['password_hash']
        assert is_legacy_digest(before)

        assert login(resolver, 'legacy@school.edu')['portal_type'] == 'student'

        after = account_db.find_login_by_email('legacy@school.edu')['password_hash']
        assert not is_legacy_digest(after)
        assert verify_password(after, PASSWORDS['legacy@school.edu'])
        assert login(resolver, 'legacy@school.edu')['role'] == 'Student'

    def test_failed_legacy_login_keeps_digest(self, resolver, account_db):
        with pytest.raises(Unauthorized):
            resolver.resolve('legacy@school.edu', 'wrong')
        assert is_legacy_digest(account_db.find_login_by_email('legacy@school.edu')['password_hash'])
