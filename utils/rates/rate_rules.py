"""
Rate Rules
===========
Occupancy pricing, season day-of-week masks and validity checks for
supplier rate plans.
"""

import json
from datetime import date
from itertools import combinations
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..common.formatters import to_date, to_float, to_int

RATE_TYPES = ('supplier_rate', 'master_rate')
INVENTORY_MODELS = ('committed', 'freesale', 'on_request')
PRICING_MODELS = ('fixed', 'base_plus_pax', 'per_person')

DEFAULT_PRIORITY = 100
MIN_PRIORITY = 1
MAX_PRIORITY = 1000

ALL_DAYS_MASK = 127
WEEKDAY_NAMES = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')


# ================================================================
# OCCUPANCY PRICING
# ================================================================

def occupancy_price(occupancy: Dict, pax: int) -> float:
    """
    Price of one unit for `pax` guests.

    fixed: base_amount
    base_plus_pax: base_amount + per_person_amount x guests above min_occupancy
    per_person: per_person_amount x pax (base_amount when no per-person amount)
    """
    model = occupancy.get('pricing_model') or 'fixed'
    base = to_float(occupancy.get('base_amount'))
    per_person = occupancy.get('per_person_amount')

    if model == 'base_plus_pax':
        extra = max(to_int(pax) - to_int(occupancy.get('min_occupancy'), 1), 0)
        return round(base + to_float(per_person) * extra, 2)

    if model == 'per_person':
        if per_person is None or to_float(per_person, None) is None:
            return round(base, 2)
        return round(to_float(per_person) * to_int(pax), 2)

    return round(base, 2)


def find_occupancy(occupancies: Iterable[Dict], pax: int) -> Optional[Dict]:
    """First occupancy row whose [min, max] covers pax"""
    for occupancy in occupancies:
        low = to_int(occupancy.get('min_occupancy'), 1)
        high = to_int(occupancy.get('max_occupancy'), low)
        if low <= pax <= high:
            return occupancy
    return None


# ================================================================
# SEASONS
# ================================================================

def season_applies(season: Dict, day) -> bool:
    """
    Day falls inside the season window and its weekday bit is set.

    dow_mask bit 0 is Monday ... bit 6 is Sunday; 127 means every day.
    """
    day = to_date(day)
    start = to_date(season.get('season_from'))
    end = to_date(season.get('season_to'))
    if day is None or start is None or end is None:
        return False
    if not start <= day <= end:
        return False
    mask = season.get('dow_mask')
    mask = ALL_DAYS_MASK if mask is None else to_int(mask)
    return bool(mask & (1 << day.weekday()))


def dow_mask_from_days(days: Iterable[str]) -> int:
    """['Mon', 'Sat'] -> 33"""
    mask = 0
    for name in days:
        mask |= 1 << WEEKDAY_NAMES.index(name)
    return mask


def describe_dow_mask(mask) -> str:
    mask = ALL_DAYS_MASK if mask is None else to_int(mask)
    if mask == ALL_DAYS_MASK:
        return "All days"
    if mask == 0:
        return "No days"
    return ', '.join(name for i, name in enumerate(WEEKDAY_NAMES) if mask & (1 << i))


# ================================================================
# VALIDITY
# ================================================================

def rate_is_current(rate: Dict, today: Optional[date] = None) -> bool:
    """Active and today within valid_from..valid_to"""
    if rate.get('is_active') is not None and not rate.get('is_active'):
        return False
    today = today or date.today()
    start = to_date(rate.get('valid_from'))
    end = to_date(rate.get('valid_to'))
    if start is None or end is None:
        return False
    return start <= today <= end


def overlapping_rates(rates: Iterable[Dict]) -> List[Tuple[Dict, Dict]]:
    """Pairs of same-variant, same-type rates whose validity windows overlap"""
    rates = [r for r in rates if r.get('is_active') is None or r.get('is_active')]
    overlaps = []
    for a, b in combinations(rates, 2):
        if a.get('product_variant_id') != b.get('product_variant_id'):
            continue
        if (a.get('rate_type') or 'supplier_rate') != (b.get('rate_type') or 'supplier_rate'):
            continue
        a_from, a_to = to_date(a.get('valid_from')), to_date(a.get('valid_to'))
        b_from, b_to = to_date(b.get('valid_from')), to_date(b.get('valid_to'))
        if None in (a_from, a_to, b_from, b_to):
            continue
        if a_from <= b_to and b_from <= a_to:
            overlaps.append((a, b))
    return overlaps


# ================================================================
# JSON COLUMNS
# ================================================================

def dump_list(values: Any) -> str:
    """markets / channels stored as a JSON array"""
    if values is None:
        return '[]'
    if isinstance(values, str):
        values = [v.strip() for v in values.split(',') if v.strip()]
    return json.dumps(list(values))


def load_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default
