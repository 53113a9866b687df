"""
Allocation pool capacity helpers.
"""

from datetime import date
from typing import Dict, Iterable, Optional

from ..common.formatters import to_date, to_float, to_int


def pool_utilization(total_capacity, booked, held) -> Dict:
    """
    Capacity usage of a pool.

    utilization_percentage counts booked + held against total capacity and is
    capped at 100; is_overbooked tells when usage went past capacity.
    """
    capacity = to_int(total_capacity)
    booked_units = to_int(booked)
    held_units = to_int(held)
    used = booked_units + held_units

    percentage = 0.0
    if capacity > 0:
        percentage = round(min(used / capacity * 100, 100.0), 1)

    return {
        'total_capacity': capacity,
        'booked_units': booked_units,
        'held_units': held_units,
        'available_units': max(capacity - used, 0),
        'utilization_percentage': percentage,
        'is_overbooked': capacity > 0 and used > capacity,
    }


def utilization_color(percentage) -> str:
    """>= 90 red, >= 75 yellow, else green"""
    pct = to_float(percentage)
    if pct >= 90:
        return 'red'
    if pct >= 75:
        return 'yellow'
    return 'green'


def commitment_shortfall(min_commitment, booked) -> int:
    """Units still needed to reach the minimum commitment (0 when met or unset)"""
    if min_commitment is None:
        return 0
    return max(to_int(min_commitment) - to_int(booked), 0)


def days_until_pool_release(pool: Dict, today: Optional[date] = None) -> Optional[int]:
    release_on = to_date(pool.get('release_date'))
    if release_on is None:
        return None
    return (release_on - (today or date.today())).days


def average_utilization(utilizations: Iterable[Dict]) -> float:
    """Mean utilization_percentage across pools (0 for none)"""
    values = [to_float(u.get('utilization_percentage')) for u in utilizations]
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)
