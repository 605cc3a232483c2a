"""
Shared validation functions for Pydantic schemas.

Entity-specific validators remain in their respective schema modules.
"""
import re
from typing import Annotated

from pydantic import StringConstraints

# Loose email shape check: something@something.tld
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# bcrypt only considers the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    """
    Trim and lower-case an email address, rejecting obviously malformed ones.

    Raises:
        ValueError: If the email is empty or not shaped like an address.
    """
    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("Email cannot be empty")
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Please enter a valid email address")
    return normalized


def validate_password(password: str) -> str:
    """
    Check a password is non-blank and fits bcrypt's input limit.

    The value is returned untrimmed; surrounding whitespace is part of the password.

    Raises:
        ValueError: If the password is empty, whitespace only, or longer than 72 bytes.
    """
    if not password.strip():
        raise ValueError("Password cannot be empty")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")
    return password


# Non-empty after trimming; used for every required free-text field
RequiredText = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255),
]
