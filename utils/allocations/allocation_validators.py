"""
Allocation Validators
======================
Checks for buckets, contract allocations, inventory lines and pools.
"""

import logging
from typing import Dict, Optional

from ..common.formatters import to_date, to_int
from ..common.results import ValidationResult
from ..common.validation import (
    check_required, check_date, check_date_range, check_currency, check_choice, check_number
)
from .bucket_rules import ALLOCATION_TYPES, MAX_BULK_DAYS

logger = logging.getLogger(__name__)

CONTRACT_ALLOCATION_TYPES = ('allotment', 'batch', 'free_sell', 'on_request')
POOL_TYPES = ('shared_allotment', 'freesale_pool', 'committed_block')
POOL_STATUSES = ('active', 'inactive')


def _check_min_max(result: ValidationResult, data: Dict, low_key: str, high_key: str, label: str):
    low = check_number(result, data.get(low_key), f"Min {label}", minimum=1, integer=True)
    high = check_number(result, data.get(high_key), f"Max {label}", minimum=1, integer=True)
    if low is not None and high is not None and low > high:
        result.add_error(f"Min {label} cannot exceed max {label}")


class BucketValidator:
    """Validator for allocation buckets"""

    def _validate_common(self, result: ValidationResult, data: Dict):
        check_required(result, data.get('product_variant_id'), "Product variant")
        check_choice(result, data.get('allocation_type') or 'committed', ALLOCATION_TYPES, "Allocation type")
        check_number(result, data.get('quantity'), "Quantity", minimum=0, integer=True)
        check_number(result, data.get('unit_cost') or 0, "Unit cost", minimum=0)
        check_currency(result, data.get('currency'))
        check_number(result, data.get('release_period_hours'), "Release period (hours)",
                     minimum=0, integer=True)
        _check_min_max(result, data, 'min_stay_days', 'max_stay_days', "stay")
        _check_min_max(result, data, 'min_occupancy', 'max_occupancy', "occupancy")

        if data.get('blackout') and data.get('stop_sell'):
            result.add_warning("Blackout already blocks sales; stop-sell is redundant")

    def validate_bucket(self, data: Dict) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        self._validate_common(result, data)
        check_date(result, data.get('date'), "Date")
        return result

    def validate_bulk(self, data: Dict) -> ValidationResult:
        """Bulk create: same fields plus a date range of at most a year"""
        result = ValidationResult(is_valid=True)
        self._validate_common(result, data)
        start = check_date(result, data.get('date_from'), "Date from")
        end = check_date(result, data.get('date_to'), "Date to")
        check_date_range(result, start, end, "Date from", "Date to")

        if start and end and start <= end and (end - start).days + 1 > MAX_BULK_DAYS:
            result.add_error(f"Bulk creation is limited to {MAX_BULK_DAYS} days")
        return result

    def validate_quantity_change(self, bucket: Dict, new_quantity) -> ValidationResult:
        """Quantity cannot drop below what is already booked + held"""
        result = ValidationResult(is_valid=True)
        if new_quantity is None:
            return result
        committed = to_int(bucket.get('booked')) + to_int(bucket.get('held'))
        if to_int(new_quantity) < committed:
            result.add_error(
                f"Quantity ({to_int(new_quantity)}) cannot be lower than booked + held ({committed})"
            )
        return result


class ContractAllocationValidator:
    """Validator for contract allocations and their inventory lines"""

    def validate_allocation(self, data: Dict, contract: Optional[Dict] = None) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        check_required(result, data.get('allocation_name'), "Allocation name")
        check_choice(result, data.get('allocation_type') or 'allotment',
                     CONTRACT_ALLOCATION_TYPES, "Allocation type")
        check_number(result, data.get('total_quantity'), "Total quantity", minimum=0,
                     integer=True, required=True)
        valid_from = check_date(result, data.get('valid_from'), "Valid from")
        valid_to = check_date(result, data.get('valid_to'), "Valid to")
        check_date_range(result, valid_from, valid_to)
        check_number(result, data.get('total_cost'), "Total cost", minimum=0)
        check_number(result, data.get('cost_per_unit'), "Cost per unit", minimum=0)
        check_number(result, data.get('release_days'), "Release days", minimum=0, integer=True)
        check_currency(result, data.get('currency'))

        if contract and valid_from and valid_to:
            contract_from = to_date(contract.get('valid_from'))
            contract_to = to_date(contract.get('valid_to'))
            if contract_from and contract_to and (valid_from < contract_from or valid_to > contract_to):
                result.add_warning("Allocation dates fall outside the contract validity")

        return result

    def validate_inventory(self, data: Dict) -> ValidationResult:
        """available <= total and sold <= total"""
        result = ValidationResult(is_valid=True)

        check_required(result, data.get('product_variant_id'), "Product variant")
        total = check_number(result, data.get('total_quantity'), "Total quantity",
                             minimum=0, integer=True, required=True)
        available = check_number(result, data.get('available_quantity'), "Available quantity",
                                 minimum=0, integer=True)
        sold = check_number(result, data.get('sold_quantity'), "Sold quantity", minimum=0, integer=True)
        check_number(result, data.get('batch_cost_per_unit'), "Cost per unit", minimum=0)
        check_number(result, data.get('minimum_viable_quantity'), "Minimum viable quantity",
                     minimum=0, integer=True)

        if total is not None:
            if available is not None and available > total:
                result.add_error("Available quantity cannot exceed total quantity")
            if sold is not None and sold > total:
                result.add_error("Sold quantity cannot exceed total quantity")
            if available is not None and sold is not None and available + sold > total:
                result.add_warning("Available + sold exceeds total quantity")

        return result


class PoolValidator:
    """Validator for allocation pools"""

    def validate_pool(self, data: Dict) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        check_required(result, data.get('name'), "Pool name")
        check_choice(result, data.get('pool_type'), POOL_TYPES, "Pool type")
        valid_from = check_date(result, data.get('valid_from'), "Valid from")
        valid_to = check_date(result, data.get('valid_to'), "Valid to")
        check_date_range(result, valid_from, valid_to)
        total = check_number(result, data.get('total_capacity'), "Total capacity", minimum=0,
                             integer=True, required=True)
        commitment = check_number(result, data.get('min_commitment'), "Minimum commitment",
                                  minimum=0, integer=True)
        check_number(result, data.get('cutoff_days'), "Cutoff days", minimum=0, integer=True)
        check_date(result, data.get('release_date'), "Release date", required=False)
        check_currency(result, data.get('currency'), required=False)
        check_choice(result, data.get('status') or 'active', POOL_STATUSES, "Status")

        if total is not None and commitment is not None and commitment > total:
            result.add_warning("Minimum commitment exceeds total capacity")

        return result

    def validate_member(self, data: Dict) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        check_required(result, data.get('product_variant_id'), "Product variant")
        check_number(result, data.get('capacity_weight'), "Capacity weight", minimum=0)
        check_number(result, data.get('cost_per_unit'), "Cost per unit", minimum=0)
        check_number(result, data.get('sell_price_per_unit'), "Sell price per unit", minimum=0)
        check_number(result, data.get('priority'), "Priority", minimum=0, integer=True)
        return result
