"""
Authentication Service

WHY: Every balance-affecting action must be attributable. Uses bcrypt for
password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters; upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt

from ..extensions import db
from ..models import User, Role, UserRole
from . import permission_service
from marketledger.time_utils import utcnow


DEFAULT_ROLES = [
    ("admin", "Full platform access: payouts, deposits, billing, flash sales"),
    ("seller", "Own wallet, payouts, subscription, deposits and nominations"),
    ("customer", "Customer wallet deposits"),
    ("support_agent", "Read-only finance and audit access"),
]

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
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
    """Validate strength, then bcrypt with cost factor 12."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    email: str,
    password: str,
    full_name: str | None = None,
    role_name: str | None = None,
    is_super_admin: bool = False,
) -> User:
    """
    Create a user with a bcrypt password hash, optionally assigning a role.

    Raises:
        ValueError: invalid or duplicate email, unknown role
        PasswordValidationError: weak password
    """
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValueError("A valid email is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ValueError("Email already registered")

    user = User(
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=hash_password(password),
        is_super_admin=is_super_admin,
    )
    db.session.add(user)
    db.session.commit()

    if role_name:
        assign_role(user.id, role_name)

    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns User if credentials valid, None otherwise.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def assign_role(user_id: int, role_name: str) -> UserRole:
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise ValueError(f"Role {role_name} not found")

    existing = db.session.query(UserRole).filter_by(
        user_id=user_id,
        role_id=role.id
    ).first()

    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)

    db.session.add(user_role)
    db.session.commit()
    permission_service.clear_permission_cache(user_id)
    return user_role


def create_default_roles() -> int:
    """Create the standard roles if they don't exist."""
    created = 0
    for name, desc in DEFAULT_ROLES:
        existing = db.session.query(Role).filter_by(name=name).first()
        if not existing:
            db.session.add(Role(name=name, description=desc))
            created += 1

    db.session.commit()
    return created
