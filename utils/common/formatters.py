"""
Formatting utilities shared by all back-office pages
"""
import pandas as pd
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Optional, Union
import logging

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    'EUR': '€',
    'GBP': '£',
    'USD': '$',
    'JPY': '¥',
}


def to_date(value: Any) -> Optional[date]:
    """
    Coerce DB/date-input values to date.

    Accepts date, datetime, pandas Timestamp and ISO strings
    ('2025-05-01', '2025-05-01 10:00:00', '2025-05-01T10:00:00Z').
    """
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            logger.debug(f"Unparseable date value: {value}")
            return None
    return None


def to_iso_date(value: Any) -> Any:
    """ISO string for date-like values; anything unparseable is returned as-is for the validators"""
    parsed = to_date(value)
    return parsed.isoformat() if parsed else value


def to_datetime(value: Any) -> Optional[datetime]:
    """Coerce DB values to datetime (dates become midnight)"""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            return parsed.replace(tzinfo=None)
        except ValueError:
            return None
    return None


def to_float(value: Any, default: float = 0.0) -> float:
    """Safe float conversion for Decimal/None/NaN/numpy values"""
    if value is None:
        return default
    try:
        if isinstance(value, Decimal):
            return float(value)
        if pd.isna(value):
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    return int(to_float(value, default))


def format_number(value: Union[int, float, None], decimals: int = 0) -> str:
    """Format number with thousand separator"""
    try:
        if value is None or pd.isna(value):
            return "-"
        if decimals == 0:
            return f"{int(round(float(value))):,}"
        return f"{float(value):,.{decimals}f}"
    except (ValueError, TypeError):
        return "-"


def format_money(amount: Any, currency: Optional[str] = None, decimals: int = 2) -> str:
    """Format amount with currency symbol (or ISO code suffix when unknown)"""
    if amount is None or (not isinstance(amount, str) and pd.isna(amount)):
        return "-"
    value = to_float(amount)
    code = (currency or '').upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    sign = "-" if value < 0 else ""
    if symbol:
        return f"{sign}{symbol}{abs(value):,.{decimals}f}"
    if code:
        return f"{value:,.{decimals}f} {code}"
    return f"{value:,.{decimals}f}"


def format_percent(value: Any, decimals: int = 1) -> str:
    if value is None:
        return "-"
    return f"{to_float(value):.{decimals}f}%"


def format_date(value: Any, format_str: str = "%d %b %Y") -> str:
    """Format date for display"""
    parsed = to_date(value)
    if parsed is None:
        return "-" if not value else str(value)
    return parsed.strftime(format_str)


def format_datetime(value: Any, format_str: str = "%d %b %Y %H:%M") -> str:
    """Format datetime for display"""
    parsed = to_datetime(value)
    if parsed is None:
        return "-" if not value else str(value)
    return parsed.strftime(format_str)


def format_days(days: Optional[int]) -> str:
    """'Today', 'in 3 days', '2 days ago'"""
    if days is None:
        return "-"
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if days == -1:
        return "Yesterday"
    if days > 0:
        return f"in {days} days"
    return f"{abs(days)} days ago"


# ================================================================
# BADGES
# ================================================================

CONTRACT_STATUS_BADGES = {
    'draft': '📝 Draft',
    'active': '✅ Active',
    'expired': '⌛ Expired',
    'cancelled': '❌ Cancelled',
}

DEADLINE_STATUS_BADGES = {
    'pending': '🕒 Pending',
    'met': '✅ Met',
    'missed': '❌ Missed',
    'waived': '➖ Waived',
}

AVAILABILITY_BADGES = {
    'available': '🟢 Available',
    'low': '🟡 Low',
    'sold_out': '🔴 Sold out',
    'unlimited': '♾️ Unlimited',
    'stop_sell': '🟠 Stop sell',
    'blackout': '⚫ Blackout',
}

URGENCY_BADGES = {
    'critical': '🚨 Critical',
    'high': '⚠️ High',
    'medium': '🔔 Medium',
}

ALLOCATION_TYPE_BADGES = {
    'committed': '🔒 Committed',
    'freesale': '🟢 Freesale',
    'on_request': '📨 On request',
    'allotment': '🛏️ Allotment',
    'batch': '📦 Batch',
    'free_sell': '🟢 Free sell',
}


def badge(mapping: dict, value: Optional[str]) -> str:
    """Look up an emoji label, falling back to the raw value"""
    if value is None:
        return "-"
    return mapping.get(value, str(value).replace('_', ' ').title())
