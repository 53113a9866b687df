"""
Allocation Bucket Rules
========================
Availability, status and summary calculations for per-day allocation
buckets. Pure functions over dicts / DataFrame rows.
"""

from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..common.formatters import to_date, to_float, to_int

ALLOCATION_TYPES = ('committed', 'freesale', 'on_request')

LOW_AVAILABILITY_RATIO = 0.2

MAX_BULK_DAYS = 366


def _is_set(value) -> bool:
    """Quantity set (0 counts as set); None/NaN means unlimited"""
    return value is not None and not pd.isna(value)


def bucket_available(bucket: Dict) -> Optional[int]:
    """quantity - booked - held; None for unlimited buckets. May be negative when oversold."""
    if not _is_set(bucket.get('quantity')):
        return None
    return to_int(bucket.get('quantity')) - to_int(bucket.get('booked')) - to_int(bucket.get('held'))


def bucket_status(bucket: Dict) -> str:
    """
    Availability status of a bucket, first match wins:

    blackout -> stop_sell -> unlimited (no quantity) -> sold_out (available <= 0)
    -> low (available <= 20% of quantity) -> available
    """
    if bucket.get('blackout'):
        return 'blackout'
    if bucket.get('stop_sell'):
        return 'stop_sell'

    available = bucket_available(bucket)
    if available is None:
        return 'unlimited'
    if available <= 0:
        return 'sold_out'
    if available <= to_int(bucket.get('quantity')) * LOW_AVAILABILITY_RATIO:
        return 'low'
    return 'available'


def summarize_buckets(buckets: Iterable[Dict]) -> Dict:
    """
    Totals for the buckets overview strip.

    Unlimited buckets count 0 towards quantity and available. Oversold
    buckets count 0 towards available and are reported in `oversold`.
    """
    summary = {
        'count': 0,
        'total_quantity': 0,
        'total_booked': 0,
        'total_held': 0,
        'total_available': 0,
        'total_value': 0.0,
        'unlimited': 0,
        'oversold': 0,
        'occupancy_pct': 0.0,
    }

    for bucket in buckets:
        summary['count'] += 1
        summary['total_booked'] += to_int(bucket.get('booked'))
        summary['total_held'] += to_int(bucket.get('held'))

        available = bucket_available(bucket)
        if available is None:
            summary['unlimited'] += 1
            continue

        quantity = to_int(bucket.get('quantity'))
        summary['total_quantity'] += quantity
        summary['total_value'] += quantity * to_float(bucket.get('unit_cost'))
        if available < 0:
            summary['oversold'] += 1
        summary['total_available'] += max(available, 0)

    if summary['total_quantity'] > 0:
        used = summary['total_quantity'] - summary['total_available']
        summary['occupancy_pct'] = round(min(used / summary['total_quantity'] * 100, 100.0), 1)

    summary['total_value'] = round(summary['total_value'], 2)
    return summary


def calendar_view(buckets: Iterable[Dict]) -> "OrderedDict[date, List[Dict]]":
    """Buckets grouped by date, dates ascending"""
    grouped: Dict[date, List[Dict]] = {}
    for bucket in buckets:
        day = to_date(bucket.get('date'))
        if day is None:
            continue
        grouped.setdefault(day, []).append(bucket)
    return OrderedDict(sorted(grouped.items()))


def date_range(date_from, date_to) -> List[date]:
    """Every day from date_from to date_to inclusive; empty when reversed"""
    start, end = to_date(date_from), to_date(date_to)
    if start is None or end is None or start > end:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]
