"""
Input validation utilities shared by the services.
"""
import enum
import re
from datetime import datetime, time
from typing import Optional, Tuple, Type, TypeVar, Union

from core.errors import ValidationError

E = TypeVar("E", bound=enum.Enum)

PHONE_PATTERN = re.compile(r"^\+?[0-9\- ]{3,15}$")

# Search screens send "All" for "no filter"
ALL_FILTER = "All"


def parse_enum(enum_class: Type[E], value: Union[str, E], label: Optional[str] = None) -> E:
    """
    Turn an enum member or its string value into the member.

    Args:
        enum_class: Target enum
        value: Member or raw value (e.g. "In Custody")
        label: Field name for the error message

    Raises:
        ValidationError: if the value is not one of the enum's values
    """
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_class)
        raise ValidationError(f"Invalid {label or enum_class.__name__}: {value} (allowed: {allowed})")


def parse_optional_filter(enum_class: Type[E], value: Optional[str], label: Optional[str] = None) -> Optional[E]:
    """Like parse_enum, but None, "" and "All" mean no filter."""
    if value is None or value == "" or value == ALL_FILTER:
        return None
    return parse_enum(enum_class, value, label)


def require_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> str:
    """Strip and require a non-empty string."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} cannot be longer than {max_length} characters")
    return value


def validate_phone(phone: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate a phone number (digits, spaces, dashes, optional leading +).

    Returns:
        Tuple of (is_valid, error_message); an empty phone is valid
    """
    if not phone:
        return True, None
    if not PHONE_PATTERN.match(phone):
        return False, f"Invalid phone number: {phone}"
    return True, None


def require_non_negative(value: Optional[Union[int, float]], field: str) -> None:
    if value is not None and value < 0:
        raise ValidationError(f"{field} cannot be negative")


def format_time_of_day(value: Union[str, time, datetime, None]) -> Optional[str]:
    """
    Normalize a time of day to HH:MM:SS (seconds kept, fractions dropped).

    Raises:
        ValidationError: on an unparseable string
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return value.replace(microsecond=0).strftime("%H:%M:%S")
    for fmt in ("%H:%M:%S", "%H:%M", "%H:%M:%S.%f"):
        try:
            return datetime.strptime(value, fmt).strftime("%H:%M:%S")
        except ValueError:
            continue
    raise ValidationError(f"Invalid time of day: {value}")
