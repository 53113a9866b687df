"""
Rate plan, occupancy and season validation.
"""

from typing import Dict

from ..common.results import ValidationResult
from ..common.validation import (
    check_required, check_date, check_date_range, check_currency, check_choice, check_number
)
from .rate_rules import (
    RATE_TYPES, INVENTORY_MODELS, PRICING_MODELS, MIN_PRIORITY, MAX_PRIORITY, ALL_DAYS_MASK
)


class RateValidator:
    """Validator for supplier rate plans"""

    def validate_rate_plan(self, data: Dict) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        check_required(result, data.get('product_variant_id'), "Product variant")
        check_currency(result, data.get('currency'))
        valid_from = check_date(result, data.get('valid_from'), "Valid from")
        valid_to = check_date(result, data.get('valid_to'), "Valid to")
        check_date_range(result, valid_from, valid_to)
        check_choice(result, data.get('inventory_model'), INVENTORY_MODELS, "Inventory model")
        check_choice(result, data.get('rate_type') or 'supplier_rate', RATE_TYPES, "Rate type")
        check_number(result, data.get('priority'), "Priority", minimum=MIN_PRIORITY,
                     maximum=MAX_PRIORITY, integer=True)

        return result

    def validate_occupancy(self, data: Dict) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        low = check_number(result, data.get('min_occupancy'), "Min occupancy", minimum=1,
                           integer=True, required=True)
        high = check_number(result, data.get('max_occupancy'), "Max occupancy", minimum=1,
                            integer=True, required=True)
        if low is not None and high is not None and low > high:
            result.add_error("Min occupancy cannot exceed max occupancy")

        model = check_choice(result, data.get('pricing_model'), PRICING_MODELS, "Pricing model")
        base = check_number(result, data.get('base_amount'), "Base amount", minimum=0)
        per_person = check_number(result, data.get('per_person_amount'), "Per person amount", minimum=0)

        if model in ('fixed', 'base_plus_pax') and base is None:
            result.add_error("Base amount is required for this pricing model")
        if model == 'per_person' and per_person is None and base is None:
            result.add_error("Per person amount is required for per-person pricing")
        if model == 'base_plus_pax' and per_person is None:
            result.add_warning("No per person amount: extra guests are free")

        return result

    def validate_season(self, data: Dict) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        start = check_date(result, data.get('season_from'), "Season from")
        end = check_date(result, data.get('season_to'), "Season to")
        check_date_range(result, start, end, "Season from", "Season to")
        mask = check_number(result, data.get('dow_mask'), "Day-of-week mask", minimum=0,
                            maximum=ALL_DAYS_MASK, integer=True)
        if mask == 0:
            result.add_warning("Season applies to no weekday")

        min_stay = check_number(result, data.get('min_stay'), "Min stay", minimum=1, integer=True)
        max_stay = check_number(result, data.get('max_stay'), "Max stay", minimum=1, integer=True)
        if min_stay is not None and max_stay is not None and min_stay > max_stay:
            result.add_error("Min stay cannot exceed max stay")

        return result
