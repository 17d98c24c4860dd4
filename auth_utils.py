"""
Authentication utilities for the TicTrack ticketing system
Handles password hashing, JWT tokens, and portal-based route protection
"""
import hashlib
import hmac
import re
import jwt
from datetime import datetime, timedelta
from functools import wraps
from flask import request, jsonify
from werkzeug.security import generate_password_hash, check_password_hash

from config import JWT_SECRET_KEY, JWT_ALGORITHM, JWT_EXPIRY_HOURS

# Unsalted SHA-256 hex digests written by the previous system
LEGACY_DIGEST_PATTERN = re.compile(r'^[0-9a-fA-F]{64}$')

PORTALS = ['student', 'it']


def hash_password(password):
    """Hash a password using werkzeug's salted PBKDF2"""
    return generate_password_hash(password, method='pbkdf2:sha256')


def legacy_sha256_digest(password):
    """Hex SHA-256 of the UTF-8 password, as stored by the previous system"""
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def is_legacy_digest(password_hash):
    return bool(password_hash) and bool(LEGACY_DIGEST_PATTERN.match(password_hash))


def verify_password(password_hash, password):
    """Verify a password against its stored hash (PBKDF2 or legacy SHA-256)"""
    if not password_hash or password is None:
        return False
    if is_legacy_digest(password_hash):
        return hmac.compare_digest(password_hash.lower(), legacy_sha256_digest(password))
    return check_password_hash(password_hash, password)


def needs_rehash(password_hash):
    """Legacy digests are upgraded to a salted hash after the next good login"""
    return is_legacy_digest(password_hash)


def generate_jwt_token(account_id, email, role, portal_type):
    """Generate a JWT token for an authenticated account"""
    payload = {
        'account_id': account_id,
        'email': email,
        'role': role,
        'portal': portal_type,
        'exp': datetime.utcnow() + timedelta(hours=JWT_EXPIRY_HOURS),
        'iat': datetime.utcnow()
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token):
    """Decode and validate a JWT token"""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_bearer_token():
    """Pull the token out of an 'Authorization: Bearer <token>' header"""
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    parts = auth_header.split()
    return parts[1] if len(parts) > 1 else None


def require_auth(allowed_portals=None):
    """Decorator to protect routes with JWT authentication"""
    if allowed_portals is None:
        allowed_portals = PORTALS

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            token = get_bearer_token()
            if not token:
                return jsonify({'success': False, 'message': 'Missing or invalid authorization header'}), 401

            payload = decode_jwt_token(token)
            if not payload:
                return jsonify({'success': False, 'message': 'Invalid or expired token'}), 401

            if payload.get('portal') not in allowed_portals:
                return jsonify({'success': False, 'message': 'Insufficient permissions'}), 403

            request.current_user = payload
            return f(*args, **kwargs)

        return decorated_function
    return decorator
