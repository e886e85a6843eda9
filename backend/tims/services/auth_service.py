# Overview: Service-layer operations for users and passwords.

"""
Accounts and passwords.

bcrypt (12 rounds) protects stored passwords, and every new or changed password
has to clear validate_password_strength first. Tokens live in session_service.
"""

import bcrypt
import re
from ..extensions import db
from ..models import User
from ..validation import ValidationError, ConflictError, enforce_rules_user
from tims.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserNotFoundError(Exception):
    """Raised when a user is not found."""
    pass


MIN_PASSWORD_LENGTH = 8
BCRYPT_ROUNDS = 12

# (pattern, what the password is missing when the pattern does not match)
_PASSWORD_CLASSES = (
    (re.compile(r"[A-Z]"), "uppercase letter"),
    (re.compile(r"[a-z]"), "lowercase letter"),
    (re.compile(r"\d"), "digit"),
    (re.compile(r"[!@#$%^&*(),.'\":{}|<>_\-]"), "special character"),
)


def validate_password_strength(password: str) -> None:
    """Raise PasswordValidationError naming the first rule the password breaks."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )

    for pattern, missing in _PASSWORD_CLASSES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password must contain at least one {missing}")


def hash_password(password: str) -> str:
    """Strength-check, then bcrypt the password. Returns the hash as text."""
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # stored hash is not a bcrypt hash
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    full_name: str,
    role: str = "staff",
) -> User:
    """
    Insert a user after validating fields, uniqueness and password strength.

    Raises:
        ValidationError: missing fields or unknown role
        ConflictError: username or email already taken
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    full_name = (full_name or "").strip()

    if not username:
        raise ValidationError("Username is required")
    if not full_name:
        raise ValidationError("Full name is required")
    enforce_rules_user({"email": email, "role": role})

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user by username (or email) and password.

    Returns User if credentials valid and account active, None otherwise.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == (username or "").lower())
    ).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def update_profile(user_id: int, *, email: str | None = None, full_name: str | None = None) -> User:
    """Update the caller's own email / full name. Omitted fields are kept."""
    user = get_user(user_id)

    if email is not None:
        email = email.strip().lower()
        enforce_rules_user({"email": email})
        clash = db.session.query(User).filter(User.email == email, User.id != user_id).first()
        if clash:
            raise ConflictError("Email already in use")
        user.email = email

    if full_name is not None:
        full_name = full_name.strip()
        if not full_name:
            raise ValidationError("Full name cannot be empty")
        user.full_name = full_name

    db.session.commit()
    return user


def change_password(user_id: int, current_password: str, new_password: str) -> User:
    """
    Change a user's password after verifying the current one.

    Raises PermissionError when current_password is wrong.
    Callers should revoke existing sessions afterwards.
    """
    user = get_user(user_id)
    if not verify_password(current_password or "", user.password_hash):
        raise PermissionError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.session.commit()
    return user
