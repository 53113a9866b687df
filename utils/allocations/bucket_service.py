"""
Allocation Bucket Service
==========================
Single and bulk bucket creation, updates, soft delete and stop-sell /
blackout toggles.
"""

import logging
from typing import Dict, List

from sqlalchemy import text

from utils.config import config
from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log, diff_values
from ..common.formatters import to_date, to_iso_date, to_float
from ..common.results import OperationResult
from ..contracts.contract_data import ContractData
from .allocation_validators import BucketValidator
from .bucket_data import BucketData
from .bucket_rules import date_range
from .pool_data import PoolData

logger = logging.getLogger(__name__)

BUCKET_FIELDS = (
    'product_variant_id',
    'date',
    'allocation_type',
    'quantity',
    'unit_cost',
    'currency',
    'notes',
    'stop_sell',
    'blackout',
    'release_period_hours',
    'committed_cost',
    'min_stay_days',
    'max_stay_days',
    'min_occupancy',
    'max_occupancy',
)

FLAG_FIELDS = ('stop_sell', 'blackout', 'committed_cost')


def _clean_payload(data: Dict) -> Dict:
    """Known fields only, flags as 0/1, dates as ISO strings"""
    payload = {k: data.get(k) for k in BUCKET_FIELDS if k in data}
    if payload.get('date') is not None:
        payload['date'] = to_iso_date(payload['date'])
    for flag in FLAG_FIELDS:
        if flag in payload:
            payload[flag] = int(bool(payload[flag]))
    if payload.get('currency'):
        payload['currency'] = str(payload['currency']).strip().upper()
    if 'unit_cost' in payload:
        payload['unit_cost'] = to_float(payload['unit_cost'])
    return payload


def _with_defaults(payload: Dict) -> Dict:
    payload.setdefault('allocation_type', 'committed')
    payload.setdefault('unit_cost', 0.0)
    payload.setdefault('currency', config.get_app_setting('DEFAULT_CURRENCY', 'EUR'))
    for flag in FLAG_FIELDS:
        payload.setdefault(flag, 0)
    return payload


class BucketService:
    """Business logic for allocation buckets"""

    def __init__(self):
        self.engine = get_db_engine()
        self.data = BucketData()
        self.contracts = ContractData()
        self.validator = BucketValidator()

    def _clear_caches(self):
        # Pool usage is summed from bucket rows
        BucketData.clear_cache()
        PoolData.clear_cache()
        AuditLogData.clear_cache()

    def _insert_bucket(self, conn, org_id: int, contract: Dict, payload: Dict, user_id: int) -> int:
        columns = list(payload.keys())
        result = conn.execute(text(f"""
            INSERT INTO allocation_buckets
            (org_id, contract_id, supplier_id, {', '.join(columns)},
             booked, held, is_deleted, created_by, created_at, updated_at)
            VALUES
            (:org_id, :contract_id, :supplier_id, {', '.join(':' + c for c in columns)},
             0, 0, 0, :user_id, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        """), {
            **payload,
            'org_id': org_id,
            'contract_id': contract['id'],
            'supplier_id': contract['supplier_id'],
            'user_id': user_id,
        })
        return result.lastrowid

    # ================================================================
    # CREATE
    # ================================================================

    def create_bucket(self, contract_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        """One bucket per contract / variant / date. A second one is a conflict."""
        try:
            contract = self.contracts.get_contract(contract_id, org_id)
            if not contract:
                return OperationResult.not_found("Contract")

            payload = _with_defaults(_clean_payload(data))
            validation = self.validator.validate_bucket(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            day = to_date(payload['date'])
            existing = self.data.get_existing_dates(contract_id, payload['product_variant_id'], org_id, day, day)
            if existing:
                return OperationResult(
                    success=False,
                    message="Allocation already exists",
                    errors=[f"An allocation for this variant on {day.isoformat()} already exists"]
                )

            with self.engine.begin() as conn:
                bucket_id = self._insert_bucket(conn, org_id, contract, payload, user_id)
                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_bucket',
                    entity_id=bucket_id,
                    action='create',
                    new_values=payload,
                ))

            self._clear_caches()
            logger.info(f"Created bucket {bucket_id} for contract {contract_id} on {day} by user {user_id}")

            return OperationResult(
                success=True,
                message="Allocation created",
                data={'bucket_id': bucket_id, 'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error creating bucket for contract {contract_id}: {e}")
            return OperationResult.failed("create allocation", e)

    def bulk_create_buckets(self, contract_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        """
        One bucket per day from date_from to date_to (inclusive).

        Days that already have a bucket for the variant are skipped and
        reported in `skipped_dates`.
        """
        try:
            contract = self.contracts.get_contract(contract_id, org_id)
            if not contract:
                return OperationResult.not_found("Contract")

            base = {k: v for k, v in data.items() if k not in ('date_from', 'date_to', 'date')}
            payload = _with_defaults(_clean_payload(base))
            validation = self.validator.validate_bulk({
                **payload,
                'date_from': data.get('date_from'),
                'date_to': data.get('date_to'),
            })
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            days = date_range(data['date_from'], data['date_to'])
            existing = self.data.get_existing_dates(
                contract_id, payload['product_variant_id'], org_id, days[0], days[-1]
            )
            to_create = [d for d in days if d not in existing]
            skipped = [d.isoformat() for d in days if d in existing]

            if not to_create:
                return OperationResult(
                    success=False,
                    message="Nothing to create",
                    errors=["Every date in the range already has an allocation"],
                    data={'created': 0, 'skipped': len(skipped), 'skipped_dates': skipped}
                )

            created_ids: List[int] = []
            with self.engine.begin() as conn:
                for day in to_create:
                    created_ids.append(
                        self._insert_bucket(conn, org_id, contract, {**payload, 'date': day.isoformat()}, user_id)
                    )

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_bucket',
                    entity_id=created_ids[0],
                    action='bulk_create',
                    new_values={
                        **payload,
                        'date_from': to_create[0].isoformat(),
                        'date_to': to_create[-1].isoformat(),
                        'bucket_ids': created_ids,
                    },
                ))

            self._clear_caches()
            logger.info(
                f"Bulk created {len(created_ids)} buckets for contract {contract_id} "
                f"({len(skipped)} skipped) by user {user_id}"
            )

            message = f"Created {len(created_ids)} allocation(s)"
            if skipped:
                message += f", skipped {len(skipped)} existing date(s)"

            return OperationResult(
                success=True,
                message=message,
                data={
                    'created': len(created_ids),
                    'bucket_ids': created_ids,
                    'skipped': len(skipped),
                    'skipped_dates': skipped,
                    'warnings': validation.warnings
                }
            )

        except Exception as e:
            logger.error(f"Error bulk creating buckets for contract {contract_id}: {e}")
            return OperationResult.failed("create bulk allocations", e)

    # ================================================================
    # UPDATE
    # ================================================================

    def update_bucket(self, bucket_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        """Update bucket; quantity may not drop below booked + held"""
        try:
            bucket = self.data.get_bucket(bucket_id, org_id)
            if not bucket:
                return OperationResult.not_found("Allocation")

            payload = _clean_payload(data)
            payload.pop('product_variant_id', None)
            payload.pop('date', None)

            merged = {**bucket, **payload}
            merged['date'] = to_date(bucket.get('date'))
            validation = self.validator.validate_bucket(merged)
            if 'quantity' in payload:
                validation.merge(self.validator.validate_quantity_change(bucket, payload['quantity']))
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            old_values = {k: bucket.get(k) for k in payload}
            changes = diff_values(old_values, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'bucket_id': bucket_id, 'changed_fields': []})

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE allocation_buckets
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {**changes['new'], 'id': bucket_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_bucket',
                    entity_id=bucket_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            logger.info(f"Updated bucket {bucket_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Allocation updated",
                data={'bucket_id': bucket_id, 'changed_fields': list(changes['new'].keys()),
                      'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error updating bucket {bucket_id}: {e}")
            return OperationResult.failed("update allocation", e)

    def bulk_update_flags(self, bucket_ids: List[int], org_id: int, user_id: int,
                          stop_sell: bool = None, blackout: bool = None) -> OperationResult:
        """Set stop-sell and/or blackout on the selected buckets"""
        try:
            updates = {}
            if stop_sell is not None:
                updates['stop_sell'] = int(bool(stop_sell))
            if blackout is not None:
                updates['blackout'] = int(bool(blackout))

            if not bucket_ids or not updates:
                return OperationResult(success=False, message="Nothing to update",
                                       errors=["Select allocations and a flag to change"])

            placeholders = ', '.join(f":id_{i}" for i in range(len(bucket_ids)))
            id_params = {f"id_{i}": bucket_id for i, bucket_id in enumerate(bucket_ids)}
            set_clause = ', '.join(f"{k} = :{k}" for k in updates)

            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    UPDATE allocation_buckets
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE org_id = :org_id AND is_deleted = 0 AND id IN ({placeholders})
                """), {**updates, **id_params, 'org_id': org_id})
                updated = result.rowcount

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_bucket',
                    entity_id=bucket_ids[0],
                    action='bulk_update',
                    new_values={**updates, 'bucket_ids': list(bucket_ids)},
                ))

            self._clear_caches()
            logger.info(f"Bulk updated flags {updates} on {updated} buckets by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Updated {updated} allocation(s)",
                data={'updated': updated}
            )

        except Exception as e:
            logger.error(f"Error bulk updating bucket flags: {e}")
            return OperationResult.failed("update allocations", e)

    # ================================================================
    # DELETE (soft)
    # ================================================================

    def delete_bucket(self, bucket_id: int, org_id: int, user_id: int) -> OperationResult:
        try:
            bucket = self.data.get_bucket(bucket_id, org_id)
            if not bucket:
                return OperationResult.not_found("Allocation")

            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE allocation_buckets
                    SET is_deleted = 1, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'id': bucket_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_bucket',
                    entity_id=bucket_id,
                    action='delete',
                    old_values={k: bucket.get(k) for k in BUCKET_FIELDS},
                ))

            self._clear_caches()
            logger.info(f"Deleted bucket {bucket_id} by user {user_id}")
            return OperationResult(success=True, message="Allocation deleted", data={'bucket_id': bucket_id})

        except Exception as e:
            logger.error(f"Error deleting bucket {bucket_id}: {e}")
            return OperationResult.failed("delete allocation", e)
