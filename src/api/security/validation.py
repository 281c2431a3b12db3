"""Input rules shared by registration, profile updates and membership.

National-id validation is a format check only (DDMMYY-NNNN shape, day
and month ranges). No checksum is computed.
"""

from __future__ import annotations

import re

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

NAME_MAX_LENGTH = 50
NAME_PATTERN = r"^[a-zA-ZÀ-ÿĀ-žÐðÞþ\s'-]+$"
EMAIL_MAX_LENGTH = 255
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
REGISTRATION_NUM_PATTERN = r"^[0-9-]+$"
ASSOCIATION_NAME_PATTERN = r"^[a-zA-ZÀ-ÿĀ-žÐðÞþ0-9\s\-.,&()]+$"

NATIONAL_ID_LENGTH = 10

_NAME_RE = re.compile(NAME_PATTERN)
_EMAIL_RE = re.compile(EMAIL_PATTERN)
_NON_DIGITS_RE = re.compile(r"\D")


def check_password_strength(password: str) -> list[str]:
    """Return every password rule the value fails, empty when it passes."""
    errors: list[str] = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append("Password is too long")
    if not any(c.isascii() and c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter")
    if not any(c.isascii() and c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter")
    if not any(c.isascii() and c.isdigit() for c in password):
        errors.append("Password must contain at least one number")
    if not any(c in PASSWORD_SYMBOLS for c in password):
        errors.append("Password must contain at least one special character")

    return errors


def normalize_national_id(value: str) -> str:
    """Strip every non-digit character."""
    return _NON_DIGITS_RE.sub("", value)


def is_valid_national_id(value: str) -> bool:
    """Check national-id format.

    Exactly 10 digits once separators are removed. The first two digits
    must be a day (1-31) and the next two a month (1-12).
    """
    cleaned = normalize_national_id(value)
    if len(cleaned) != NATIONAL_ID_LENGTH:
        return False

    day = int(cleaned[0:2])
    month = int(cleaned[2:4])
    return 1 <= day <= 31 and 1 <= month <= 12


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address."""
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    email = email.strip()
    return 0 < len(email) <= EMAIL_MAX_LENGTH and _EMAIL_RE.match(email) is not None


def is_valid_person_name(name: str) -> bool:
    """Letters (including accented and Icelandic), spaces, apostrophes and hyphens."""
    name = name.strip()
    return 0 < len(name) <= NAME_MAX_LENGTH and _NAME_RE.match(name) is not None
