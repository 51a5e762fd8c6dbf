# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with uppercase, lowercase, digit and special char
- Session tokens managed separately (see session_service.py)
- Wrong email and wrong password produce the same error
"""

import re

import bcrypt

from ..errors import ForbiddenError, InvalidCredentialError, ValidationError
from ..models import User
from ..time_utils import utcnow

BCRYPT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


def validate_password_strength(password) -> None:
    """
    Raises ValidationError unless the password has:
    - at least 8 characters, at most 72 bytes (bcrypt limit)
    - an uppercase letter, a lowercase letter, a digit
    - a special character (!@#$%^&*(),.'":{}|<>)
    """
    if not isinstance(password, str):
        raise ValidationError("Password is required")

    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    # bcrypt only hashes the first 72 bytes and rejects longer input
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

    if not re.search(r'[A-Z]', password):
        raise ValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise ValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise ValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise ValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Strength-check, then bcrypt. Stored as str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    # bcrypt.checkpw is constant-time
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def authenticate(session, email, password) -> User:
    """
    Check email + password.

    Raises:
        ValidationError: email or password missing
        InvalidCredentialError: no such user or wrong password
        ForbiddenError: correct credentials on an inactive account
    """
    if not email or not password:
        raise ValidationError("Email and password are required")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Email and password must be strings")

    user = session.query(User).filter(User.email == email.strip().lower()).first()
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialError("Invalid email or password")

    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    user.last_login_at = utcnow()
    session.commit()
    return user
