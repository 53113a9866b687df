"""
Contract allocation helpers: utilization and inventory roll-ups.
"""

from typing import Dict, Iterable

from ..common.formatters import to_float, to_int


def utilization_rate(sold, total) -> float:
    """sold / total as a percentage, kept within [0, 100]; 0 when total is 0"""
    total = to_float(total)
    if total <= 0:
        return 0.0
    rate = to_float(sold) / total * 100
    return round(min(max(rate, 0.0), 100.0), 1)


def inventory_totals(inventory: Iterable[Dict]) -> Dict[str, int]:
    """Sum of total / available / sold over active inventory lines"""
    totals = {'total_quantity': 0, 'available_quantity': 0, 'sold_quantity': 0}
    for line in inventory:
        if line.get('is_active') is not None and not line.get('is_active'):
            continue
        for key in totals:
            totals[key] += to_int(line.get(key))
    return totals
