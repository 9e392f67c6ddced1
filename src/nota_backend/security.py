from __future__ import annotations

import secrets

import bcrypt

_MAX_BCRYPT_PASSWORD_BYTES = 72
_INITIAL_PASSWORD_LENGTH = 16
_SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
_INITIAL_PASSWORD_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789" + _SPECIAL_CHARS
)
PASSWORD_MIN_LENGTH = 12


def hash_password(password: str) -> str:
    pw_bytes = password.encode("utf-8")
    if len(pw_bytes) > _MAX_BCRYPT_PASSWORD_BYTES:
        raise ValueError("password too long (bcrypt supports at most 72 bytes)")
    hashed = bcrypt.hashpw(pw_bytes, bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        pw_bytes = password.encode("utf-8")
        if len(pw_bytes) > _MAX_BCRYPT_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def password_complexity_errors(password: str) -> list[str]:
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one digit")
    if all(c.isalnum() for c in password):
        errors.append("Password must contain at least one special character")
    return errors


def generate_initial_password() -> str:
    # Re-draw until the random password satisfies the complexity rules users must meet.
    while True:
        candidate = "".join(
            secrets.choice(_INITIAL_PASSWORD_ALPHABET) for _ in range(_INITIAL_PASSWORD_LENGTH)
        )
        if not password_complexity_errors(candidate):
            return candidate
