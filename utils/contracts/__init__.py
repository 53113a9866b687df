"""
Supplier Contracts
===================
Contract metadata, numbering and deadlines.
"""

from .contract_rules import (
    CONTRACT_STATUSES,
    CONTRACT_TYPES,
    generate_supplier_code,
    generate_contract_number,
    effective_status,
    contract_status_display,
    is_expiring_soon,
    summarize_contracts,
)
from .deadline_rules import (
    DEADLINE_STATUSES,
    DEADLINE_TYPES,
    PENALTY_TYPES,
    is_overdue,
    days_until,
    deadline_summary,
    penalty_amount,
    deadline_urgency,
)
from .contract_validators import ContractValidator, DeadlineValidator
from .contract_data import ContractData
from .contract_service import ContractService
from .deadline_data import DeadlineData
from .deadline_service import DeadlineService

__all__ = [
    'CONTRACT_STATUSES',
    'CONTRACT_TYPES',
    'generate_supplier_code',
    'generate_contract_number',
    'effective_status',
    'contract_status_display',
    'is_expiring_soon',
    'summarize_contracts',
    'DEADLINE_STATUSES',
    'DEADLINE_TYPES',
    'PENALTY_TYPES',
    'is_overdue',
    'days_until',
    'deadline_summary',
    'penalty_amount',
    'deadline_urgency',
    'ContractValidator',
    'DeadlineValidator',
    'ContractData',
    'ContractService',
    'DeadlineData',
    'DeadlineService',
]
