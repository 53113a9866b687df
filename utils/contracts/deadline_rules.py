"""
Deadline Rules
===============
Pure date arithmetic for contract deadlines.
"""

from datetime import date, datetime
from typing import Dict, Iterable, Optional

from ..common.formatters import to_date, to_datetime, to_float

DEADLINE_STATUSES = ('pending', 'met', 'missed', 'waived')
PENALTY_TYPES = ('none', 'fixed', 'percentage')
REF_TYPES = ('contract', 'version')

DEADLINE_TYPES = (
    'payment',
    'rooming_list',
    'release',
    'deposit',
    'final_numbers',
    'contract_signature',
    'other',
)


def is_overdue(deadline: Dict, now: Optional[datetime] = None) -> bool:
    """Pending and deadline_date already behind `now`"""
    if deadline.get('status') != 'pending':
        return False
    due = to_datetime(deadline.get('deadline_date'))
    if due is None:
        return False
    return due < (now or datetime.now())


def days_until(deadline_date, today: Optional[date] = None) -> Optional[int]:
    """Whole days from today to the deadline (negative when passed)"""
    due = to_date(deadline_date)
    if due is None:
        return None
    return (due - (today or date.today())).days


def deadline_summary(deadlines: Iterable[Dict], now: Optional[datetime] = None) -> Dict[str, int]:
    """Counts for the deadlines stats strip"""
    summary = {'total': 0, 'overdue': 0}
    summary.update({status: 0 for status in DEADLINE_STATUSES})

    for deadline in deadlines:
        summary['total'] += 1
        status = deadline.get('status')
        if status in summary:
            summary[status] += 1
        if is_overdue(deadline, now):
            summary['overdue'] += 1
    return summary


def penalty_amount(deadline: Dict, contract_value: Optional[float] = None) -> float:
    """
    Penalty owed if the deadline is missed.

    fixed: penalty_value as-is; percentage: share of the contract value;
    none (or unknown contract value for percentage): 0.
    """
    penalty_type = deadline.get('penalty_type') or 'none'
    value = to_float(deadline.get('penalty_value'))

    if penalty_type == 'fixed':
        return value
    if penalty_type == 'percentage' and contract_value:
        return round(to_float(contract_value) * value / 100, 2)
    return 0.0


def deadline_urgency(deadline: Dict, now: Optional[datetime] = None) -> str:
    """Row highlight: overdue / due_soon (within 7 days) / normal / closed"""
    if deadline.get('status') != 'pending':
        return 'closed'
    if is_overdue(deadline, now):
        return 'overdue'
    today = (now or datetime.now()).date()
    remaining = days_until(deadline.get('deadline_date'), today)
    if remaining is not None and remaining <= 7:
        return 'due_soon'
    return 'normal'
