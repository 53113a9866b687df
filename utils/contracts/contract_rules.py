"""
Contract Rules
===============
Pure helpers for contract numbering, display status and list statistics.
No database access here; everything takes plain dicts / rows.
"""

import re
import secrets
import string
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, Optional

from ..common.formatters import to_date, to_float

CONTRACT_STATUSES = ('draft', 'active', 'expired', 'cancelled')
CONTRACT_TYPES = ('net_rate', 'commissionable', 'allocation', 'on_request')

EXPIRING_SOON_DAYS = 30


def generate_supplier_code(name: str) -> str:
    """
    Supplier code from name.

    One word: first 6 characters. Two words: first 3 of each.
    More: first 2 of each of the first three words.
    """
    cleaned = re.sub(r'[^A-Za-z0-9\s]', '', name or '').upper()
    words = [w for w in cleaned.split() if w]

    if not words:
        return 'SUP'
    if len(words) == 1:
        return words[0][:6]
    if len(words) == 2:
        return words[0][:3] + words[1][:3]
    return ''.join(w[:2] for w in words[:3])


def generate_contract_number(supplier_code: str, today: Optional[date] = None) -> str:
    """CON-{SUPPLIERCODE}-{YYYYMM}-{XXXX}"""
    today = today or date.today()
    alphabet = string.ascii_uppercase + string.digits
    suffix = ''.join(secrets.choice(alphabet) for _ in range(4))
    return f"CON-{supplier_code}-{today.year}{today.month:02d}-{suffix}"


def effective_status(contract: Dict, today: Optional[date] = None) -> str:
    """Stored status, except an active contract past valid_to reads as expired"""
    today = today or date.today()
    status = contract.get('status') or 'draft'
    valid_to = to_date(contract.get('valid_to'))
    if status == 'active' and valid_to and valid_to < today:
        return 'expired'
    return status


def days_to_expiry(contract: Dict, today: Optional[date] = None) -> Optional[int]:
    today = today or date.today()
    valid_to = to_date(contract.get('valid_to'))
    if valid_to is None:
        return None
    return (valid_to - today).days


def is_expiring_soon(contract: Dict, today: Optional[date] = None,
                     days: int = EXPIRING_SOON_DAYS) -> bool:
    """Active contract whose validity ends within `days`"""
    if effective_status(contract, today) != 'active':
        return False
    remaining = days_to_expiry(contract, today)
    return remaining is not None and 0 <= remaining <= days


def summarize_contracts(contracts: Iterable[Dict], today: Optional[date] = None) -> Dict:
    """Counts per effective status and total contract value per currency"""
    stats = {
        'total_contracts': 0,
        'active_contracts': 0,
        'expired_contracts': 0,
        'draft_contracts': 0,
        'cancelled_contracts': 0,
        'expiring_soon': 0,
        'total_value': {},
    }
    values = defaultdict(float)

    for contract in contracts:
        stats['total_contracts'] += 1
        status = effective_status(contract, today)
        key = f"{status}_contracts"
        if key in stats:
            stats[key] += 1
        if is_expiring_soon(contract, today):
            stats['expiring_soon'] += 1
        if status != 'cancelled' and contract.get('total_cost') is not None:
            values[contract.get('currency') or 'EUR'] += to_float(contract.get('total_cost'))

    stats['total_value'] = dict(values)
    return stats


def contract_status_display(contract: Dict, today: Optional[date] = None) -> Dict:
    """Effective status plus the expiring-soon flag for list rows and detail headers"""
    return {
        'status': effective_status(contract, today),
        'expiring_soon': is_expiring_soon(contract, today),
        'days_to_expiry': days_to_expiry(contract, today),
    }
