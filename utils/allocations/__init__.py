"""
Allocations
============
Per-day allocation buckets, contract allocations with inventory, release
warnings and shared-capacity pools.
"""

from .bucket_rules import (
    ALLOCATION_TYPES,
    bucket_available,
    bucket_status,
    summarize_buckets,
    calendar_view,
    date_range,
)
from .allocation_rules import utilization_rate, inventory_totals
from .release import (
    release_date,
    days_until_release,
    urgency_level,
    build_release_warning,
    release_warnings,
    release_recommendations,
    warnings_summary,
)
from .pool_rules import pool_utilization, utilization_color, commitment_shortfall
from .allocation_validators import (
    BucketValidator,
    ContractAllocationValidator,
    PoolValidator,
    CONTRACT_ALLOCATION_TYPES,
    POOL_TYPES,
)
from .bucket_data import BucketData
from .bucket_service import BucketService
from .allocation_data import ContractAllocationData, ReleaseWarningData
from .allocation_service import ContractAllocationService
from .pool_data import PoolData
from .pool_service import PoolService

__all__ = [
    'ALLOCATION_TYPES',
    'bucket_available',
    'bucket_status',
    'summarize_buckets',
    'calendar_view',
    'date_range',
    'utilization_rate',
    'inventory_totals',
    'release_date',
    'days_until_release',
    'urgency_level',
    'build_release_warning',
    'release_warnings',
    'release_recommendations',
    'warnings_summary',
    'pool_utilization',
    'utilization_color',
    'commitment_shortfall',
    'BucketValidator',
    'ContractAllocationValidator',
    'PoolValidator',
    'CONTRACT_ALLOCATION_TYPES',
    'POOL_TYPES',
    'BucketData',
    'BucketService',
    'ContractAllocationData',
    'ReleaseWarningData',
    'ContractAllocationService',
    'PoolData',
    'PoolService',
]
