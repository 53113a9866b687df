"""
Allocation Pool Service
========================
Create pools with their member variants, update, add/remove members and
deactivate.
"""

import logging
from typing import Dict, List

from sqlalchemy import text

from utils.config import config
from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log, diff_values
from ..common.formatters import to_iso_date, to_float
from ..common.results import OperationResult
from .allocation_validators import PoolValidator
from .pool_data import PoolData

logger = logging.getLogger(__name__)

POOL_FIELDS = (
    'supplier_id',
    'name',
    'reference',
    'pool_type',
    'valid_from',
    'valid_to',
    'total_capacity',
    'capacity_unit',
    'min_commitment',
    'release_date',
    'cutoff_days',
    'currency',
    'notes',
)


def _clean_pool(data: Dict) -> Dict:
    payload = {k: data.get(k) for k in POOL_FIELDS if k in data}
    for key in ('valid_from', 'valid_to', 'release_date'):
        if payload.get(key) not in (None, ''):
            payload[key] = to_iso_date(payload[key])
        elif key in payload:
            payload[key] = None
    if payload.get('currency'):
        payload['currency'] = str(payload['currency']).strip().upper()
    if isinstance(payload.get('name'), str):
        payload['name'] = payload['name'].strip()
    return payload


def _member_payload(member: Dict) -> Dict:
    """Member defaults: weight 1.0, priority 100, auto-allocate on"""
    return {
        'product_variant_id': member.get('product_variant_id'),
        'capacity_weight': to_float(member.get('capacity_weight'), 1.0) or 1.0,
        'cost_per_unit': member.get('cost_per_unit'),
        'sell_price_per_unit': member.get('sell_price_per_unit'),
        'priority': member.get('priority') or 100,
        'auto_allocate': int(member.get('auto_allocate', True) is not False),
    }


class PoolService:
    """Business logic for allocation pools"""

    def __init__(self):
        self.engine = get_db_engine()
        self.data = PoolData()
        self.validator = PoolValidator()

    def _clear_caches(self):
        PoolData.clear_cache()
        AuditLogData.clear_cache()

    def _insert_member(self, conn, org_id: int, pool_id: int, member: Dict) -> int:
        result = conn.execute(text("""
            INSERT INTO pool_variants
            (org_id, inventory_pool_id, product_variant_id, capacity_weight, cost_per_unit,
             sell_price_per_unit, priority, auto_allocate, status, created_at)
            VALUES
            (:org_id, :pool_id, :product_variant_id, :capacity_weight, :cost_per_unit,
             :sell_price_per_unit, :priority, :auto_allocate, 'active', CURRENT_TIMESTAMP)
        """), {**member, 'org_id': org_id, 'pool_id': pool_id})
        return result.lastrowid

    def create_pool(self, org_id: int, data: Dict, user_id: int,
                    members: List[Dict] = None) -> OperationResult:
        """
        Create pool and its members.

        A member that fails to insert is logged and reported in
        `failed_members`; the pool itself is still created.
        """
        try:
            payload = _clean_pool(data)
            payload.setdefault('capacity_unit', 'rooms')
            payload['capacity_unit'] = payload.get('capacity_unit') or 'rooms'
            payload['currency'] = payload.get('currency') or config.get_app_setting('DEFAULT_CURRENCY', 'EUR')

            validation = self.validator.validate_pool(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            columns = list(payload.keys())
            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    INSERT INTO inventory_pools
                    (org_id, {', '.join(columns)}, status, created_by, created_at, updated_at)
                    VALUES
                    (:org_id, {', '.join(':' + c for c in columns)}, 'active', :user_id,
                     CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """), {**payload, 'org_id': org_id, 'user_id': user_id})
                pool_id = result.lastrowid

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_pool',
                    entity_id=pool_id,
                    action='create',
                    new_values=payload,
                ))

            added, failed = [], []
            for member in members or []:
                member_data = _member_payload(member)
                member_validation = self.validator.validate_member(member_data)
                if not member_validation.is_valid:
                    logger.warning(f"Skipping pool {pool_id} member: {member_validation.errors}")
                    failed.append(member_data.get('product_variant_id'))
                    continue
                try:
                    with self.engine.begin() as conn:
                        added.append(self._insert_member(conn, org_id, pool_id, member_data))
                except Exception as e:
                    logger.error(f"Error adding variant {member_data['product_variant_id']} to pool {pool_id}: {e}")
                    failed.append(member_data['product_variant_id'])

            self._clear_caches()
            logger.info(f"Created pool {pool_id} with {len(added)} member(s) by user {user_id}")

            message = f"Pool '{payload['name']}' created"
            if failed:
                message += f" ({len(failed)} member(s) could not be added)"

            return OperationResult(
                success=True,
                message=message,
                data={
                    'pool_id': pool_id,
                    'member_ids': added,
                    'failed_members': failed,
                    'warnings': validation.warnings
                }
            )

        except Exception as e:
            logger.error(f"Error creating pool: {e}")
            return OperationResult.failed("create pool", e)

    def update_pool(self, pool_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            pool = self.data.get_pool(pool_id, org_id)
            if not pool:
                return OperationResult.not_found("Pool")

            payload = _clean_pool(data)
            validation = self.validator.validate_pool({**pool, **payload})
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            old_values = {k: pool.get(k) for k in payload}
            for key in ('valid_from', 'valid_to', 'release_date'):
                if old_values.get(key) is not None:
                    old_values[key] = to_iso_date(old_values[key])
            changes = diff_values(old_values, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'pool_id': pool_id, 'changed_fields': []})

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE inventory_pools
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {**changes['new'], 'id': pool_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_pool',
                    entity_id=pool_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            logger.info(f"Updated pool {pool_id} by user {user_id}")
            return OperationResult(
                success=True,
                message="Pool updated",
                data={'pool_id': pool_id, 'changed_fields': list(changes['new'].keys()),
                      'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error updating pool {pool_id}: {e}")
            return OperationResult.failed("update pool", e)

    def add_member(self, pool_id: int, org_id: int, member: Dict, user_id: int) -> OperationResult:
        try:
            pool = self.data.get_pool(pool_id, org_id)
            if not pool:
                return OperationResult.not_found("Pool")

            member_data = _member_payload(member)
            validation = self.validator.validate_member(member_data)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            if self.data.member_exists(pool_id, member_data['product_variant_id']):
                return OperationResult(success=False, message="Variant already in pool",
                                       errors=["This product variant is already a member of the pool"])

            with self.engine.begin() as conn:
                member_id = self._insert_member(conn, org_id, pool_id, member_data)
                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_pool',
                    entity_id=pool_id,
                    action='update',
                    old_values={},
                    new_values={'added_variant_id': member_data['product_variant_id']},
                ))

            self._clear_caches()
            logger.info(f"Added variant {member_data['product_variant_id']} to pool {pool_id} by user {user_id}")
            return OperationResult(success=True, message="Member added",
                                   data={'pool_id': pool_id, 'member_id': member_id})

        except Exception as e:
            logger.error(f"Error adding member to pool {pool_id}: {e}")
            return OperationResult.failed("add pool member", e)

    def remove_member(self, pool_id: int, member_id: int, org_id: int, user_id: int) -> OperationResult:
        """Members are marked inactive, not deleted"""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text("""
                    UPDATE pool_variants
                    SET status = 'inactive'
                    WHERE id = :id AND inventory_pool_id = :pool_id
                    AND org_id = :org_id AND status = 'active'
                """), {'id': member_id, 'pool_id': pool_id, 'org_id': org_id})

                if result.rowcount == 0:
                    return OperationResult.not_found("Pool member")

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_pool',
                    entity_id=pool_id,
                    action='update',
                    old_values={'removed_member_id': member_id},
                    new_values={},
                ))

            self._clear_caches()
            logger.info(f"Removed member {member_id} from pool {pool_id} by user {user_id}")
            return OperationResult(success=True, message="Member removed", data={'pool_id': pool_id})

        except Exception as e:
            logger.error(f"Error removing member {member_id} from pool {pool_id}: {e}")
            return OperationResult.failed("remove pool member", e)

    def deactivate_pool(self, pool_id: int, org_id: int, user_id: int) -> OperationResult:
        try:
            pool = self.data.get_pool(pool_id, org_id)
            if not pool:
                return OperationResult.not_found("Pool")
            if pool.get('status') == 'inactive':
                return OperationResult(success=False, message="Pool is already inactive",
                                       errors=["Pool is already inactive"])

            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE inventory_pools
                    SET status = 'inactive', updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'id': pool_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_pool',
                    entity_id=pool_id,
                    action='status_change',
                    old_values={'status': pool.get('status')},
                    new_values={'status': 'inactive'},
                ))

            self._clear_caches()
            logger.info(f"Deactivated pool {pool_id} by user {user_id}")
            return OperationResult(success=True, message="Pool deactivated", data={'pool_id': pool_id})

        except Exception as e:
            logger.error(f"Error deactivating pool {pool_id}: {e}")
            return OperationResult.failed("deactivate pool", e)
