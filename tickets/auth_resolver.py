"""
Login and Role Resolution
Turns (email, password) into an account identity, its primary role and the
portal the user is routed to.
"""
import logging
from typing import Dict, List, Optional

from auth_utils import verify_password, needs_rehash, hash_password
from config import BUSINESS_ENTITY

logger = logging.getLogger('auth_resolver')

STUDENT_ROLES = ["Student"]
IT_PORTAL_ROLES = ["IT", "Teacher", "TechStaff", "Reviewer", "Board"]

# Same message for unknown email and wrong password (no user enumeration)
INVALID_CREDENTIALS = "Invalid email or password"


class AuthError(Exception):
    """Base class for login failures; carries the HTTP status to report"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(AuthError):
    status_code = 401


class Forbidden(AuthError):
    status_code = 403


class AccountNotFound(AuthError):
    status_code = 404


def resolve_portal(role_name: Optional[str]) -> str:
    """Map a role name to 'student', 'it' or 'unknown'"""
    if role_name in STUDENT_ROLES:
        return "student"
    if role_name in IT_PORTAL_ROLES:
        return "it"
    return "unknown"


class LoginResolver:
    """Resolves credentials against the account store"""

    def __init__(self, account_db, business_entity: str = BUSINESS_ENTITY):
        self.account_db = account_db
        self.business_entity = business_entity

    def _resolve_roles(self, account: Dict) -> List[Dict]:
        roles = self.account_db.get_scoped_roles(account['id'], self.business_entity)
        if roles:
            return roles

        # Fallback: a direct role reference on the account, same scope rule
        if account.get('role_id') is not None:
            direct_role = self.account_db.get_role(account['role_id'])
            if direct_role and direct_role['business_entity'] == self.business_entity:
                return [direct_role]
        return []

    def resolve(self, email: str, password: str) -> Dict:
        """
        Authenticate and resolve the primary role.

        Raises:
            Unauthorized: unknown email or wrong password
            AccountNotFound: the login points at a missing account
            Forbidden: no role scoped to the business entity

        Returns:
            dict with account_id, email, full_name_en, full_name_ar, phone,
            role and portal_type
        """
        login = self.account_db.find_login_by_email(email)
        if not login:
            logger.info(f"LOGIN_FAIL | {email} | unknown email")
            raise Unauthorized(INVALID_CREDENTIALS)

        if not verify_password(login['password_hash'], password):
            logger.info(f"LOGIN_FAIL | {email} | password mismatch")
            raise Unauthorized(INVALID_CREDENTIALS)

        account = self.account_db.get_account(login['account_id'])
        if not account:
            logger.warning(f"LOGIN_FAIL | {email} | account {login['account_id']} missing")
            raise AccountNotFound("Account not found")

        roles = self._resolve_roles(account)
        if not roles:
            logger.warning(f"LOGIN_FAIL | {email} | no {self.business_entity} role")
            raise Forbidden(f"No {self.business_entity} role found for this account")

        if needs_rehash(login['password_hash']):
            self.account_db.update_password_hash(login['id'], hash_password(password))

        primary_role = roles[0]['role_name']
        portal_type = resolve_portal(primary_role)
        logger.info(f"LOGIN_OK | {email} | role={primary_role} | portal={portal_type}")

        return {
            'account_id': account['id'],
            'email': account['email'],
            'full_name_en': account['full_name_en'],
            'full_name_ar': account.get('full_name_ar'),
            'phone': account.get('phone'),
            'role': primary_role,
            'portal_type': portal_type
        }
