"""
Supplier Rates
===============
Rate plans per contract and product variant, with occupancy-based prices
and day-of-week seasons.
"""

from .rate_rules import (
    RATE_TYPES,
    INVENTORY_MODELS,
    PRICING_MODELS,
    occupancy_price,
    find_occupancy,
    season_applies,
    dow_mask_from_days,
    describe_dow_mask,
    rate_is_current,
    overlapping_rates,
)
from .rate_validators import RateValidator
from .rate_data import RateData
from .rate_service import RateService

__all__ = [
    'RATE_TYPES',
    'INVENTORY_MODELS',
    'PRICING_MODELS',
    'occupancy_price',
    'find_occupancy',
    'season_applies',
    'dow_mask_from_days',
    'describe_dow_mask',
    'rate_is_current',
    'overlapping_rates',
    'RateValidator',
    'RateData',
    'RateService',
]
