"""
Contract & Deadline Validators
===============================
Validation rules applied before any contract or deadline write.
"""

import logging
from datetime import date
from typing import Dict, Optional

from ..common.formatters import to_float
from ..common.results import ValidationResult
from ..common.validation import (
    check_required, check_date, check_date_range, check_currency, check_choice, check_number
)
from .contract_rules import CONTRACT_STATUSES, CONTRACT_TYPES
from .deadline_rules import DEADLINE_STATUSES, PENALTY_TYPES, REF_TYPES

logger = logging.getLogger(__name__)

MAX_CONTRACT_DAYS = 3 * 365


class ContractValidator:
    """Validator for contract create/update"""

    def validate_contract(self, data: Dict, today: Optional[date] = None) -> ValidationResult:
        """
        Validate contract payload.

        Rules:
        1. supplier, contract_name, valid_from and valid_to are required
        2. valid_from <= valid_to
        3. currency is a 3-letter code
        4. total_cost >= 0, commission_rate within 0..100
        5. status / contract_type within their enums
        Warnings: validity already over, validity longer than 3 years.
        """
        result = ValidationResult(is_valid=True)
        today = today or date.today()

        check_required(result, data.get('supplier_id'), "Supplier")
        check_required(result, data.get('contract_name'), "Contract name")
        valid_from = check_date(result, data.get('valid_from'), "Valid from")
        valid_to = check_date(result, data.get('valid_to'), "Valid to")
        check_date_range(result, valid_from, valid_to)

        check_currency(result, data.get('currency'))
        check_number(result, data.get('total_cost'), "Total cost", minimum=0)
        check_number(result, data.get('commission_rate'), "Commission rate", minimum=0, maximum=100)

        check_choice(result, data.get('status') or 'draft', CONTRACT_STATUSES, "Status")
        check_choice(result, data.get('contract_type'), CONTRACT_TYPES, "Contract type", required=False)

        if data.get('contract_type') == 'commissionable' and data.get('commission_rate') in (None, ''):
            result.add_warning("Commissionable contract has no commission rate")

        if valid_from and valid_to and result.is_valid:
            if valid_to < today:
                result.add_warning(f"Contract validity already ended on {valid_to}")
            if (valid_to - valid_from).days > MAX_CONTRACT_DAYS:
                result.add_warning("Contract runs longer than 3 years")

        return result

    def validate_status_change(self, contract: Dict, new_status: str) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        if contract is None:
            result.add_error("Contract not found")
            return result

        check_choice(result, new_status, CONTRACT_STATUSES, "Status")
        if new_status == contract.get('status'):
            result.add_error(f"Contract is already {new_status}")
        if contract.get('status') == 'cancelled' and new_status == 'active':
            result.add_warning("Re-activating a cancelled contract")
        return result


class DeadlineValidator:
    """Validator for contract deadlines"""

    def validate_deadline(self, data: Dict, partial: bool = False) -> ValidationResult:
        """
        Validate deadline payload. With partial=True (updates) only the
        fields present are checked.
        """
        result = ValidationResult(is_valid=True)

        def present(key):
            return not partial or key in data

        if present('ref_type'):
            check_choice(result, data.get('ref_type') or 'contract', REF_TYPES, "Reference type")
        if not partial:
            check_required(result, data.get('ref_id'), "Contract")
        if present('deadline_type'):
            check_required(result, data.get('deadline_type'), "Deadline type")
        if present('deadline_date'):
            check_date(result, data.get('deadline_date'), "Deadline date")
        if present('penalty_type'):
            check_choice(result, data.get('penalty_type') or 'none', PENALTY_TYPES, "Penalty type")
        if present('penalty_value'):
            check_number(result, data.get('penalty_value') or 0, "Penalty value", minimum=0)
        if present('status'):
            check_choice(result, data.get('status') or 'pending', DEADLINE_STATUSES, "Status")

        if data.get('penalty_type') == 'percentage' and to_float(data.get('penalty_value')) > 100:
            result.add_error("Percentage penalty cannot exceed 100%")
        if data.get('penalty_type') in ('fixed', 'percentage') and not data.get('penalty_value'):
            result.add_warning("Penalty type set but penalty value is 0")

        return result
