from datetime import date, datetime

import pandas as pd

from utils.common.formatters import (
    to_date, to_datetime, to_float, format_money, format_number, format_days, format_date,
    badge, CONTRACT_STATUS_BADGES
)


def test_to_date_accepts_common_inputs():
    assert to_date('2030-05-01') == date(2030, 5, 1)
    assert to_date('2030-05-01 10:00:00') == date(2030, 5, 1)
    assert to_date(datetime(2030, 5, 1, 8, 30)) == date(2030, 5, 1)
    assert to_date(pd.Timestamp('2030-05-01')) == date(2030, 5, 1)
    assert to_date('') is None
    assert to_date('not a date') is None
    assert to_date(None) is None


def test_to_datetime_turns_dates_into_midnight():
    assert to_datetime(date(2030, 5, 1)) == datetime(2030, 5, 1)
    assert to_datetime('2030-05-01T10:00:00Z') == datetime(2030, 5, 1, 10, 0)


def test_to_float_handles_missing_values():
    assert to_float(None) == 0.0
    assert to_float(float('nan'), 5.0) == 5.0
    assert to_float('12.5') == 12.5
    assert to_float('abc') == 0.0


def test_format_money():
    assert format_money(1234.5, 'EUR') == '€1,234.50'
    assert format_money(-5, 'gbp') == '-£5.00'
    assert format_money(10, 'CHF') == '10.00 CHF'
    assert format_money(None, 'EUR') == '-'


def test_format_number():
    assert format_number(1234567) == '1,234,567'
    assert format_number(1234.567, 2) == '1,234.57'
    assert format_number(None) == '-'


def test_format_days():
    assert format_days(0) == 'Today'
    assert format_days(1) == 'Tomorrow'
    assert format_days(-1) == 'Yesterday'
    assert format_days(5) == 'in 5 days'
    assert format_days(-3) == '3 days ago'
    assert format_days(None) == '-'


def test_format_date():
    assert format_date('2030-05-01') == '01 May 2030'
    assert format_date(None) == '-'


def test_badge_falls_back_to_title_case():
    assert badge(CONTRACT_STATUS_BADGES, 'active') == '✅ Active'
    assert badge(CONTRACT_STATUS_BADGES, 'on_hold') == 'On Hold'
    assert badge(CONTRACT_STATUS_BADGES, None) == '-'
