"""
Generic form field checks. Each validator returns a message or None.
"""
from __future__ import annotations

import math
import re
from typing import Any, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SPECIAL_CHARS_RE = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def is_empty(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_required(value: Any, field_name: str) -> Optional[str]:
    if is_empty(value):
        return f"{field_name} is required"
    return None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def validate_numeric(
    value: Any,
    field_name: str,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    required: bool = True,
) -> Optional[str]:
    if value is None or value == "":
        return f"{field_name} is required" if required else None

    number = _to_number(value)
    if number is None:
        return f"{field_name} must be a valid number"
    if min_value is not None and number < min_value:
        return f"{field_name} must be at least {min_value}"
    if max_value is not None and number > max_value:
        return f"{field_name} must be at most {max_value}"
    return None


def validate_integer(
    value: Any,
    field_name: str,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    required: bool = True,
) -> Optional[str]:
    error = validate_numeric(value, field_name, min_value, max_value, required)
    if error or value is None or value == "":
        return error
    if not _to_number(value).is_integer():
        return f"{field_name} must be a whole number"
    return None


def validate_email(email: Any) -> Optional[str]:
    if is_empty(email):
        return "Email is required"
    if not EMAIL_RE.match(email):
        return "Please enter a valid email address"
    return None


def validate_password(
    password: Any,
    min_length: int = 8,
    require_uppercase: bool = False,
    require_lowercase: bool = False,
    require_numbers: bool = False,
    require_special_chars: bool = False,
) -> Optional[str]:
    if is_empty(password):
        return "Password is required"
    if len(password) < min_length:
        return f"Password must be at least {min_length} characters long"
    if require_uppercase and not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if require_lowercase and not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if require_numbers and not re.search(r"\d", password):
        return "Password must contain at least one number"
    if require_special_chars and not SPECIAL_CHARS_RE.search(password):
        return "Password must contain at least one special character"
    return None


def validate_password_confirmation(password: str, confirmation: str) -> Optional[str]:
    if password != confirmation:
        return "Passwords do not match"
    return None


def sanitize_string(value: str) -> str:
    """Trim and collapse inner whitespace."""
    return re.sub(r"\s+", " ", value.strip())
