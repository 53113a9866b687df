# utils/schema.py
"""
Table definitions for the contract back-office.

Queries elsewhere are plain SQL; these definitions only create the tables
(MySQL in production, SQLite for local runs and tests).

    python -m utils.schema
"""

import logging

from sqlalchemy import (
    MetaData, Table, Column, Integer, SmallInteger, String, Text, Date, DateTime,
    Numeric, Index, func
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()


def _id():
    return Column('id', Integer, primary_key=True, autoincrement=True)


def _flag(name: str, default: int = 0):
    return Column(name, SmallInteger, nullable=False, server_default=str(default))


def _created():
    return Column('created_at', DateTime, server_default=func.current_timestamp())


def _updated():
    return Column('updated_at', DateTime, server_default=func.current_timestamp())


def _money(name: str):
    return Column(name, Numeric(15, 2))


# ==================== ORGANIZATION & USERS ====================

organizations = Table(
    'organizations', metadata,
    _id(),
    Column('name', String(200), nullable=False),
    _created(),
)

users = Table(
    'users', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('username', String(100), nullable=False, unique=True),
    Column('password_hash', String(128), nullable=False),
    Column('password_salt', String(64), nullable=False),
    Column('email', String(200)),
    Column('role', String(50), server_default='user'),
    Column('full_name', String(200)),
    _flag('is_active', 1),
    _flag('delete_flag'),
    Column('last_login', DateTime),
    _created(),
)

# ==================== CATALOG ====================

suppliers = Table(
    'suppliers', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('name', String(200), nullable=False),
    Column('code', String(20)),
    Column('contact_email', String(200)),
    _flag('is_active', 1),
    _created(),
)

products = Table(
    'products', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('supplier_id', Integer),
    Column('name', String(200), nullable=False),
    Column('product_type', String(50)),
    _flag('is_active', 1),
    _created(),
)

product_variants = Table(
    'product_variants', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('product_id', Integer, nullable=False),
    Column('name', String(200), nullable=False),
    Column('code', String(50)),
    _flag('is_active', 1),
    _created(),
)

# ==================== CONTRACTS ====================

contracts = Table(
    'contracts', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('supplier_id', Integer, nullable=False),
    Column('contract_number', String(50), nullable=False),
    Column('contract_name', String(200)),
    Column('contract_type', String(30)),
    Column('valid_from', Date, nullable=False),
    Column('valid_to', Date, nullable=False),
    Column('currency', String(3), nullable=False),
    _money('total_cost'),
    Column('commission_rate', Numeric(5, 2)),
    Column('payment_terms', String(200)),
    Column('cancellation_policy', Text),
    Column('terms_and_conditions', Text),
    Column('notes', Text),
    Column('status', String(20), nullable=False, server_default='draft'),
    _flag('is_deleted'),
    Column('created_by', Integer),
    _created(),
    _updated(),
    Index('ix_contracts_org_supplier_number', 'org_id', 'supplier_id', 'contract_number'),
)

contract_deadlines = Table(
    'contract_deadlines', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('ref_type', String(20), nullable=False, server_default='contract'),
    Column('ref_id', Integer, nullable=False),
    Column('deadline_type', String(50), nullable=False),
    Column('deadline_date', Date, nullable=False),
    Column('penalty_type', String(20), server_default='none'),
    _money('penalty_value'),
    Column('status', String(20), nullable=False, server_default='pending'),
    Column('notes', Text),
    _created(),
    _updated(),
    Index('ix_deadlines_ref', 'ref_type', 'ref_id'),
)

# ==================== ALLOCATIONS ====================

allocation_buckets = Table(
    'allocation_buckets', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('contract_id', Integer, nullable=False),
    Column('supplier_id', Integer),
    Column('product_variant_id', Integer, nullable=False),
    Column('date', Date, nullable=False),
    Column('allocation_type', String(20), nullable=False, server_default='committed'),
    Column('quantity', Integer),
    Column('booked', Integer, nullable=False, server_default='0'),
    Column('held', Integer, nullable=False, server_default='0'),
    _money('unit_cost'),
    Column('currency', String(3)),
    Column('notes', Text),
    _flag('stop_sell'),
    _flag('blackout'),
    Column('release_period_hours', Integer),
    _flag('committed_cost'),
    Column('min_stay_days', Integer),
    Column('max_stay_days', Integer),
    Column('min_occupancy', Integer),
    Column('max_occupancy', Integer),
    _flag('is_deleted'),
    Column('created_by', Integer),
    _created(),
    _updated(),
    Index('ix_buckets_contract_variant_date', 'contract_id', 'product_variant_id', 'date'),
)

contract_allocations = Table(
    'contract_allocations', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('contract_id', Integer, nullable=False),
    Column('product_id', Integer),
    Column('allocation_name', String(200), nullable=False),
    Column('allocation_type', String(20), nullable=False, server_default='allotment'),
    Column('total_quantity', Integer, nullable=False),
    Column('valid_from', Date, nullable=False),
    Column('valid_to', Date, nullable=False),
    _money('total_cost'),
    _money('cost_per_unit'),
    Column('currency', String(3)),
    Column('release_days', Integer),
    Column('notes', Text),
    _flag('is_active', 1),
    Column('created_by', Integer),
    _created(),
    _updated(),
)

allocation_inventory = Table(
    'allocation_inventory', metadata,
    _id(),
    Column('contract_allocation_id', Integer, nullable=False),
    Column('product_variant_id', Integer, nullable=False),
    Column('total_quantity', Integer, nullable=False),
    Column('available_quantity', Integer, nullable=False, server_default='0'),
    Column('sold_quantity', Integer, nullable=False, server_default='0'),
    _money('batch_cost_per_unit'),
    Column('currency', String(3)),
    _flag('is_virtual_capacity'),
    Column('minimum_viable_quantity', Integer),
    Column('notes', Text),
    _flag('is_active', 1),
    _created(),
    _updated(),
)

inventory_pools = Table(
    'inventory_pools', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('supplier_id', Integer),
    Column('name', String(200), nullable=False),
    Column('reference', String(100)),
    Column('pool_type', String(30), nullable=False),
    Column('valid_from', Date, nullable=False),
    Column('valid_to', Date, nullable=False),
    Column('total_capacity', Integer, nullable=False),
    Column('capacity_unit', String(20), server_default='rooms'),
    Column('min_commitment', Integer),
    Column('release_date', Date),
    Column('cutoff_days', Integer),
    Column('currency', String(3)),
    Column('notes', Text),
    Column('status', String(20), nullable=False, server_default='active'),
    Column('created_by', Integer),
    _created(),
    _updated(),
)

pool_variants = Table(
    'pool_variants', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('inventory_pool_id', Integer, nullable=False),
    Column('product_variant_id', Integer, nullable=False),
    Column('capacity_weight', Numeric(8, 2), server_default='1'),
    _money('cost_per_unit'),
    _money('sell_price_per_unit'),
    Column('priority', Integer, server_default='100'),
    _flag('auto_allocate', 1),
    Column('status', String(20), nullable=False, server_default='active'),
    _created(),
)

# ==================== RATES ====================

rate_plans = Table(
    'rate_plans', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('contract_id', Integer, nullable=False),
    Column('supplier_id', Integer),
    Column('product_variant_id', Integer, nullable=False),
    Column('rate_type', String(20), nullable=False, server_default='supplier_rate'),
    Column('currency', String(3), nullable=False),
    Column('valid_from', Date, nullable=False),
    Column('valid_to', Date, nullable=False),
    Column('inventory_model', String(20), nullable=False),
    Column('markets', Text),
    Column('channels', Text),
    Column('priority', Integer, server_default='100'),
    Column('rate_doc', Text),
    _flag('is_active', 1),
    Column('created_by', Integer),
    _created(),
    _updated(),
)

rate_occupancies = Table(
    'rate_occupancies', metadata,
    _id(),
    Column('rate_plan_id', Integer, nullable=False),
    Column('min_occupancy', Integer, nullable=False),
    Column('max_occupancy', Integer, nullable=False),
    Column('pricing_model', String(20), nullable=False, server_default='fixed'),
    _money('base_amount'),
    _money('per_person_amount'),
)

rate_seasons = Table(
    'rate_seasons', metadata,
    _id(),
    Column('rate_plan_id', Integer, nullable=False),
    Column('season_from', Date, nullable=False),
    Column('season_to', Date, nullable=False),
    Column('dow_mask', Integer, server_default='127'),
    Column('min_stay', Integer),
    Column('max_stay', Integer),
    Column('min_pax', Integer),
    Column('max_pax', Integer),
)

# ==================== AUDIT ====================

audit_logs = Table(
    'audit_logs', metadata,
    _id(),
    Column('org_id', Integer, nullable=False),
    Column('user_id', Integer),
    Column('entity_type', String(50), nullable=False),
    Column('entity_id', Integer, nullable=False),
    Column('action', String(30), nullable=False),
    Column('old_values', Text),
    Column('new_values', Text),
    Column('changed_fields', Text),
    _created(),
    Index('ix_audit_entity', 'org_id', 'entity_type', 'entity_id'),
)


def create_schema(engine: Engine):
    """Create missing tables"""
    metadata.create_all(engine)
    logger.info(f"✅ Schema ready ({len(metadata.tables)} tables)")


def drop_schema(engine: Engine):
    metadata.drop_all(engine)
    logger.info("🗑️ Schema dropped")


if __name__ == "__main__":
    from .db import get_db_engine

    create_schema(get_db_engine())
