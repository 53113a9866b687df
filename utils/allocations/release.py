"""
Release Warnings
=================
An allocation's unsold units go back to the supplier `release_days` before
its validity starts. These helpers find the allocations approaching that
date while units are still unsold, and what to do about them.
"""

from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from ..common.formatters import to_date, to_float, to_int
from .allocation_rules import inventory_totals, utilization_rate

RELEASE_WINDOW_DAYS = 30
HIGH_RISK_LOSS = 50000


def release_date(valid_from, release_days) -> Optional[date]:
    """valid_from - release_days"""
    start = to_date(valid_from)
    if start is None:
        return None
    return start - timedelta(days=to_int(release_days))


def days_until_release(release_on, today: Optional[date] = None) -> Optional[int]:
    day = to_date(release_on)
    if day is None:
        return None
    return (day - (today or date.today())).days


def urgency_level(days_until: int) -> str:
    """critical <= 3 days, high <= 7 days, otherwise medium"""
    if days_until <= 3:
        return 'critical'
    if days_until <= 7:
        return 'high'
    return 'medium'


def build_release_warning(allocation: Dict, inventory: Iterable[Dict] = (),
                          today: Optional[date] = None) -> Dict:
    """
    Warning row for one allocation.

    Inventory lines are used when their total is positive; otherwise the
    allocation's own total counts as fully available with nothing sold.
    """
    totals = inventory_totals(inventory)
    if totals['total_quantity'] > 0:
        total = totals['total_quantity']
        available = totals['available_quantity']
        sold = totals['sold_quantity']
    else:
        total = to_int(allocation.get('total_quantity'))
        available = total
        sold = 0

    cost_per_unit = to_float(allocation.get('cost_per_unit'))
    if not cost_per_unit:
        alloc_total = to_int(allocation.get('total_quantity'))
        alloc_cost = to_float(allocation.get('total_cost'))
        cost_per_unit = alloc_cost / alloc_total if alloc_cost and alloc_total else 0.0

    release_on = release_date(allocation.get('valid_from'), allocation.get('release_days'))
    days = days_until_release(release_on, today)

    return {
        'id': allocation.get('id'),
        'allocation_name': allocation.get('allocation_name'),
        'contract_id': allocation.get('contract_id'),
        'contract_name': allocation.get('contract_name'),
        'supplier_name': allocation.get('supplier_name'),
        'product_id': allocation.get('product_id'),
        'product_name': allocation.get('product_name'),
        'total_quantity': total,
        'available_quantity': available,
        'sold_quantity': sold,
        'total_cost': allocation.get('total_cost'),
        'cost_per_unit': cost_per_unit,
        'currency': allocation.get('currency'),
        'valid_from': to_date(allocation.get('valid_from')),
        'valid_to': to_date(allocation.get('valid_to')),
        'release_days': allocation.get('release_days'),
        'release_date': release_on,
        'days_until_release': days,
        'potential_loss': round(available * cost_per_unit, 2),
        'utilization': utilization_rate(sold, total),
        'urgency': urgency_level(days) if days is not None else None,
    }


def release_warnings(allocations: Iterable[Dict], inventories: Mapping[int, List[Dict]] = None,
                     today: Optional[date] = None,
                     window_days: int = RELEASE_WINDOW_DAYS) -> List[Dict]:
    """
    Warnings for allocations whose release is between yesterday and
    `window_days` ahead and which still have available units. Soonest first.
    """
    inventories = inventories or {}
    warnings = []
    for allocation in allocations:
        if allocation.get('release_days') is None:
            continue
        warning = build_release_warning(allocation, inventories.get(allocation.get('id'), []), today)
        days = warning['days_until_release']
        if days is None:
            continue
        if -1 <= days <= window_days and warning['available_quantity'] > 0:
            warnings.append(warning)

    warnings.sort(key=lambda w: w['days_until_release'])
    return warnings


def release_recommendations(warning: Dict) -> List[str]:
    """Suggested actions by urgency and sell-through"""
    days = warning.get('days_until_release')
    rate = utilization_rate(warning.get('sold_quantity'), warning.get('total_quantity'))
    recommendations = []

    if days is not None and days <= 3:
        recommendations.append("URGENT: Contact supplier immediately")
        recommendations.append("Consider emergency price reduction")
        recommendations.append("Alert sales team for last-minute push")
    elif days is not None and days <= 7:
        recommendations.append("Schedule supplier call this week")
        if rate < 50:
            recommendations.append("Reduce prices to accelerate sales")
        recommendations.append("Send urgent alert to sales team")
    elif days is not None and days <= 14:
        recommendations.append("Monitor daily and prepare action plan")
        if rate < 30:
            recommendations.append("Consider promotional pricing")
        recommendations.append("Weekly sales team reminder")

    if to_float(warning.get('potential_loss')) > HIGH_RISK_LOSS:
        recommendations.append("High financial risk - prioritize resolution")

    return recommendations


def warnings_summary(warnings: Iterable[Dict]) -> Dict:
    """Counts per urgency plus total potential loss"""
    summary = {'count': 0, 'critical': 0, 'high': 0, 'medium': 0, 'potential_loss': 0.0}
    for warning in warnings:
        summary['count'] += 1
        if warning.get('urgency') in summary:
            summary[warning['urgency']] += 1
        summary['potential_loss'] += to_float(warning.get('potential_loss'))
    summary['potential_loss'] = round(summary['potential_loss'], 2)
    return summary
