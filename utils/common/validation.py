"""
Reusable field checks. Each one records its problem on the given
ValidationResult and returns the parsed value (or None).
"""

import re
from datetime import date
from typing import Any, Iterable, Optional

from .formatters import to_date, to_float
from .results import ValidationResult

CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')


def check_required(result: ValidationResult, value: Any, label: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        result.add_error(f"{label} is required")
        return None
    return value


def check_date(result: ValidationResult, value: Any, label: str, required: bool = True) -> Optional[date]:
    if value in (None, ''):
        if required:
            result.add_error(f"{label} is required")
        return None
    parsed = to_date(value)
    if parsed is None:
        result.add_error(f"{label} must be a date (YYYY-MM-DD)")
    return parsed


def check_date_range(result: ValidationResult, start: Optional[date], end: Optional[date],
                     start_label: str = "Valid from", end_label: str = "Valid to"):
    if start and end and start > end:
        result.add_error(f"{start_label} ({start}) must be on or before {end_label} ({end})")


def check_currency(result: ValidationResult, value: Any, required: bool = True) -> Optional[str]:
    if not value:
        if required:
            result.add_error("Currency is required")
        return None
    code = str(value).strip().upper()
    if not CURRENCY_PATTERN.match(code):
        result.add_error(f"Currency must be a 3-letter ISO code, got '{value}'")
        return None
    return code


def check_choice(result: ValidationResult, value: Any, choices: Iterable[str], label: str,
                 required: bool = True) -> Optional[str]:
    if value in (None, ''):
        if required:
            result.add_error(f"{label} is required")
        return None
    choices = tuple(choices)
    if value not in choices:
        result.add_error(f"{label} must be one of: {', '.join(choices)}")
        return None
    return value


def check_number(result: ValidationResult, value: Any, label: str, minimum: float = None,
                 maximum: float = None, required: bool = False, integer: bool = False) -> Optional[float]:
    if value is None or value == '':
        if required:
            result.add_error(f"{label} is required")
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        result.add_error(f"{label} must be a number")
        return None
    if integer and number != int(number):
        result.add_error(f"{label} must be a whole number")
    if minimum is not None and number < minimum:
        result.add_error(f"{label} must be at least {minimum:g}")
    if maximum is not None and number > maximum:
        result.add_error(f"{label} must be at most {maximum:g}")
    return int(number) if integer else to_float(number)
