# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

An admin signs up and owns a shop. Workers are created by their admin
(see worker_service) and log in the same way.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_LOG_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re

from flask import current_app

from ..extensions import db
from ..models import User, ROLE_ADMIN
from ..validation import ValidationError, ConflictError, require_text, optional_text
from . import settings_service
from shopbook.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PHONE_DIGITS = 10
MIN_NAME_LENGTH = 2


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    email = require_text(email, "email", max_length=255).lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    return email


def validate_full_name(full_name) -> str:
    name = require_text(full_name, "full_name", max_length=128)
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"full_name must be at least {MIN_NAME_LENGTH} characters")
    return name


def validate_phone(phone, *, required: bool) -> str | None:
    phone = optional_text(phone)
    if phone is None:
        if required:
            raise ValidationError("phone_number is required")
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) < MIN_PHONE_DIGITS:
        raise ValidationError(f"phone_number must have at least {MIN_PHONE_DIGITS} digits")
    return phone


def ensure_email_available(email: str) -> None:
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError(f"An account with email {email} already exists")


def create_admin(
    email: str,
    password: str,
    full_name: str,
    phone_number: str | None = None,
    business_name: str | None = None,
) -> User:
    """
    Create a shop owner account plus its default settings row.

    Raises:
        ValidationError: bad email, name, phone or weak password
        ConflictError: email already registered
    """
    email = normalize_email(email)
    full_name = validate_full_name(full_name)
    phone_number = validate_phone(phone_number, required=False)
    password_hash = hash_password(password)
    ensure_email_available(email)

    user = User(
        email=email,
        full_name=full_name,
        phone_number=phone_number,
        password_hash=password_hash,
        role=ROLE_ADMIN,
        admin_id=None,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()

    settings_service.ensure_settings(user.id, business_name=optional_text(business_name))

    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise. Workers whose admin
    has been deactivated cannot log in.
    Updates last_login_at timestamp on successful authentication.
    """
    if not email or not password:
        return None

    user = db.session.query(User).filter(
        User.email == str(email).strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if not user.is_admin and (not user.admin or not user.admin.is_active):
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
